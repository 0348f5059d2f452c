"""Two stage generation: roll a category, then roll the category's sub-table.

Every stage runs at most once per :meth:`GenerationPipeline.run` call and
degrades instead of raising:

* the category roll failing aborts the run without a report;
* an unrecognised category yields a report holding only the category roll;
* a sub-table failing yields a report scoped to the category;
* an unresolvable actor reference still completes, without an entity.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Protocol, Union

from ..config import TableSettings
from ..decisions import DecisionOption, DecisionPrompt, Notice
from ..errors import (
    DecisionCancelled,
    EntityUnresolvable,
    GenerationError,
    TableNotConfigured,
)
from ..models.actors import Asset, PointOfInterest
from ..models.tables import RollResult
from .classifier import ASSET_CLASSIFIER, POI_CLASSIFIER, CategoryClassifier
from .resolver import RandomTableResolver, TableLookup

log = logging.getLogger(__name__)

GeneratedEntity = Union[Asset, PointOfInterest]


class EntityLookup(Protocol):
    async def get_entity(self, reference_id: str) -> Optional[GeneratedEntity]:
        ...


class PipelineStage(str, Enum):
    START = "start"
    CATEGORY_ROLLED = "category_rolled"
    AWAITING_DECISION = "awaiting_decision"
    CLASSIFIED = "classified"
    SUB_ROLLED = "sub_rolled"
    ENTITY_RESOLVED = "entity_resolved"
    DONE = "done"
    ABORTED = "aborted"
    PARTIAL_FAILURE = "partial_failure"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STAGES


_TERMINAL_STAGES = frozenset(
    {
        PipelineStage.DONE,
        PipelineStage.ABORTED,
        PipelineStage.PARTIAL_FAILURE,
        PipelineStage.CANCELLED,
    }
)


@dataclass(frozen=True, slots=True)
class SubcategoryDisplay:
    label: str
    emoji: str
    colour: int


@dataclass(frozen=True, slots=True)
class GeneratorFamily:
    """Tables, rules and display metadata for one kind of generated entity."""

    key: str
    label: str
    category_slot: str
    category_label: str
    subtable_slots: Mapping[str, str]
    display: Mapping[str, SubcategoryDisplay]
    classifier: CategoryClassifier
    decision_title: str = "Choose a category"
    decision_description: str = ""

    def subcategory_label(self, key: str) -> str:
        display = self.display.get(key)
        return display.label if display else key.replace("_", " ").title()


POI_FAMILY = GeneratorFamily(
    key="poi",
    label="Point of Interest",
    category_slot="poi_type",
    category_label="Point of Interest Type",
    subtable_slots=MappingProxyType(
        {
            "tactical_threat": "tactical_threat",
            "exploration": "exploration",
            "routine": "routine",
            "unknown": "unknown",
        }
    ),
    display=MappingProxyType(
        {
            "tactical_threat": SubcategoryDisplay("Tactical Threat", "⚔️", 0x8B0000),
            "exploration": SubcategoryDisplay("Exploration", "🔭", 0x1E90FF),
            "routine": SubcategoryDisplay("Routine", "📋", 0x2E8B57),
            "unknown": SubcategoryDisplay("Unknown", "❓", 0x4B0082),
        }
    ),
    classifier=POI_CLASSIFIER,
)

ASSET_FAMILY = GeneratorFamily(
    key="asset",
    label="Asset",
    category_slot="asset_type",
    category_label="Asset Type",
    subtable_slots=MappingProxyType(
        {
            "character": "asset_character",
            "ship": "asset_ship",
            "resource": "asset_resource",
        }
    ),
    display=MappingProxyType(
        {
            "character": SubcategoryDisplay("Character", "👤", 0x4A90D9),
            "ship": SubcategoryDisplay("Ship", "🚀", 0xE67E22),
            "resource": SubcategoryDisplay("Resource", "📦", 0x27AE60),
        }
    ),
    classifier=ASSET_CLASSIFIER,
    decision_title="Conditional asset",
    decision_description=(
        "The rolled asset depends on your forces. How many Character assets do "
        "you currently have? Pick the table to roll on."
    ),
)

FAMILIES: Mapping[str, GeneratorFamily] = MappingProxyType(
    {POI_FAMILY.key: POI_FAMILY, ASSET_FAMILY.key: ASSET_FAMILY}
)


@dataclass(slots=True)
class GeneratedReport:
    category_roll: RollResult
    sub_roll: Optional[RollResult] = None
    subcategory_key: Optional[str] = None
    resolved_entity: Optional[GeneratedEntity] = None


@dataclass(slots=True)
class GenerationOutcome:
    family: GeneratorFamily
    stage: PipelineStage
    report: Optional[GeneratedReport] = None
    notices: List[Notice] = field(default_factory=list)
    history: List[PipelineStage] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.stage is PipelineStage.DONE


class GenerationPipeline:
    """Run one generator family against read-only table settings."""

    def __init__(
        self,
        family: GeneratorFamily,
        tables: TableSettings,
        table_lookup: TableLookup,
        entities: EntityLookup,
        *,
        prompt: DecisionPrompt | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.family = family
        self.tables = tables
        self.entities = entities
        self.prompt = prompt
        self.resolver = RandomTableResolver(table_lookup, rng=rng)

    async def run(self) -> GenerationOutcome:
        outcome = GenerationOutcome(family=self.family, stage=PipelineStage.START)
        self._advance(outcome, PipelineStage.START)
        family = self.family

        try:
            category_roll = await self.resolver.resolve(
                self.tables.get(family.category_slot), family.category_label
            )
        except GenerationError as exc:
            outcome.notices.append(_notice_for(exc))
            outcome.notices.append(
                Notice("error", "category_roll_failed", f"Failed to roll the {family.label} type.")
            )
            return self._finish(outcome, PipelineStage.ABORTED)
        self._advance(outcome, PipelineStage.CATEGORY_ROLLED)

        classification = family.classifier.classify(category_roll.result_name)
        if classification.awaiting_decision:
            self._advance(outcome, PipelineStage.AWAITING_DECISION)
            try:
                key = family.classifier.resolve(
                    classification, await self._ask(classification.options)
                )
            except DecisionCancelled as exc:
                outcome.notices.append(Notice(exc.level, "cancelled", exc.notice))
                return self._finish(outcome, PipelineStage.CANCELLED)
        else:
            key = classification.key
        if key is None:
            log.warning(
                "Unrecognised %s type rolled: %s", family.key, classification.normalized_name
            )
            outcome.report = GeneratedReport(category_roll=category_roll)
            outcome.notices.append(
                Notice(
                    "warning",
                    "unknown_type",
                    f"Unknown {family.label} type: {classification.normalized_name}",
                )
            )
            return self._finish(outcome, PipelineStage.PARTIAL_FAILURE)
        self._advance(outcome, PipelineStage.CLASSIFIED)

        report = GeneratedReport(category_roll=category_roll, subcategory_key=key)
        outcome.report = report
        label = family.subcategory_label(key)
        try:
            report.sub_roll = await self.resolver.resolve(
                self.tables.get(family.subtable_slots[key]), label
            )
        except GenerationError as exc:
            outcome.notices.append(_notice_for(exc))
            return self._finish(outcome, PipelineStage.PARTIAL_FAILURE)
        self._advance(outcome, PipelineStage.SUB_ROLLED)

        try:
            report.resolved_entity = await self._dereference(report.sub_roll)
        except EntityUnresolvable as exc:
            log.warning(
                "Could not resolve %s actor from sub-table result. Name: %r, reference: %r",
                family.key,
                exc.name,
                exc.reference_id,
            )
            outcome.notices.append(Notice(exc.level, "entity_not_found", exc.notice))
        else:
            self._advance(outcome, PipelineStage.ENTITY_RESOLVED)
        return self._finish(outcome, PipelineStage.DONE)

    async def _ask(self, options: tuple[str, ...]) -> Optional[str]:
        if self.prompt is None:
            return None
        choices = [
            DecisionOption(
                key=key,
                label=self.family.subcategory_label(key),
                emoji=self.family.display[key].emoji if key in self.family.display else None,
            )
            for key in options
        ]
        return await self.prompt(
            self.family.decision_title,
            choices,
            description=self.family.decision_description,
        )

    async def _dereference(self, roll: RollResult) -> GeneratedEntity:
        reference_id = roll.embedded_reference()
        if not reference_id:
            raise EntityUnresolvable(roll.result_name, None)
        entity = await self.entities.get_entity(reference_id)
        if entity is None:
            raise EntityUnresolvable(roll.result_name, reference_id)
        return entity

    @staticmethod
    def _advance(outcome: GenerationOutcome, stage: PipelineStage) -> None:
        if stage in outcome.history:
            raise RuntimeError(f"Stage {stage.value} already executed")
        outcome.history.append(stage)
        outcome.stage = stage

    def _finish(self, outcome: GenerationOutcome, stage: PipelineStage) -> GenerationOutcome:
        self._advance(outcome, stage)
        for notice in outcome.notices:
            log.info("%s generator notice [%s]: %s", self.family.key, notice.code, notice.message)
        return outcome


def _notice_for(exc: GenerationError) -> Notice:
    code = "table_not_configured" if isinstance(exc, TableNotConfigured) else "table_not_found"
    return Notice(exc.level, code, exc.notice)


__all__ = [
    "ASSET_FAMILY",
    "EntityLookup",
    "FAMILIES",
    "GeneratedReport",
    "GenerationOutcome",
    "GenerationPipeline",
    "GeneratorFamily",
    "PipelineStage",
    "POI_FAMILY",
    "SubcategoryDisplay",
]
