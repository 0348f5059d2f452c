"""Primary power selection for converted assets."""

from __future__ import annotations

import logging
import random
from itertools import groupby
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from ..decisions import DecisionOption, DecisionPrompt
from ..models.actors import ConversionDomain, SourceActor
from ..models.powers import POWER_CATEGORIES, PowerCategory, PowerSet, PrimaryPowerMode

log = logging.getLogger(__name__)

# Disciplines and departments share names; engineering has no power.
SKILL_TO_POWERS: Mapping[str, tuple[PowerCategory, ...]] = MappingProxyType(
    {
        "medicine": (PowerCategory.MEDICAL,),
        "security": (PowerCategory.MILITARY, PowerCategory.PERSONAL),
        "conn": (PowerCategory.MILITARY,),
        "science": (PowerCategory.SCIENCE,),
        "command": (PowerCategory.SOCIAL,),
    }
)


def skill_tiers(scores: Mapping[str, int | None]) -> list[tuple[int, list[str]]]:
    """Group skills into tiers of equal score, highest first."""

    ranked = sorted(
        ((key, value or 0) for key, value in scores.items()),
        key=lambda item: item[1],
        reverse=True,
    )
    return [
        (score, [key for key, _ in members])
        for score, members in groupby(ranked, key=lambda item: item[1])
    ]


def tier_candidates(skills: Sequence[str]) -> list[PowerCategory]:
    found: set[PowerCategory] = set()
    for skill in skills:
        found.update(SKILL_TO_POWERS.get(skill.lower(), ()))
    return [category for category in POWER_CATEGORIES if category in found]


class PrimarySelector:
    """Choose the primary power under the configured policy."""

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        prompt: DecisionPrompt | None = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.prompt = prompt

    async def select_primary(
        self,
        mode: PrimaryPowerMode | str,
        source: SourceActor,
        domain: ConversionDomain,
        powers: PowerSet,
    ) -> Optional[PowerCategory]:
        mode = PrimaryPowerMode.from_value(mode)
        if mode is PrimaryPowerMode.HIGHEST:
            return self.highest(source, domain, powers)
        if mode is PrimaryPowerMode.CHOICE:
            return await self.choice(source, powers)
        return self.random_category()

    def random_category(self) -> PowerCategory:
        return self.rng.choice(POWER_CATEGORIES)

    def highest(
        self, source: SourceActor, domain: ConversionDomain, powers: PowerSet
    ) -> PowerCategory:
        """Follow the highest rated mapped skill, descending through tied tiers."""

        for score, skills in skill_tiers(source.ranked_skills(domain)):
            candidates = tier_candidates(skills)
            if not candidates:
                continue
            best = max(powers.value_of(category) for category in candidates)
            leaders = [c for c in candidates if powers.value_of(c) == best]
            choice = self.rng.choice(leaders)
            log.debug(
                "Primary for %s from tier %s %s: %s", source.name, score, skills, choice.value
            )
            return choice
        log.debug("No mapped %s for %s; picking at random", domain.skill_group, source.name)
        return self.random_category()

    async def choice(self, source: SourceActor, powers: PowerSet) -> Optional[PowerCategory]:
        if self.prompt is None:
            return None
        tags = source.descriptive_tags()
        details: list[str] = []
        if tags["traits"]:
            details.append(f"Traits: {', '.join(tags['traits'])}")
        if tags["focuses"]:
            details.append(f"Focuses: {', '.join(tags['focuses'])}")
        if not details:
            details.append("No traits or focuses recorded.")
        options = [
            DecisionOption(
                key=category.value,
                label=f"{category.label} ({powers[category].describe()})",
            )
            for category in POWER_CATEGORIES
        ]
        picked = await self.prompt(
            f"Choose Primary Power: {source.name}",
            options,
            description="Pick the power this asset leads with.",
            details=details,
        )
        if picked is None:
            return None
        try:
            return PowerCategory.from_value(picked)
        except ValueError:
            return None


__all__ = ["PrimarySelector", "SKILL_TO_POWERS", "skill_tiers", "tier_candidates"]
