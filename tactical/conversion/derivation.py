"""Power formulas converting source ratings into an asset power set.

CHARACTER powers::

    MEDICAL   = Insight        + Medicine   (focus: Medicine)
    MILITARY  = Daring         + Security   (focus: Security)
    PERSONAL  = Control        + Security   (focus: Security)
    SCIENCE   = Reason         + Science    (focus: Science)
    SOCIAL    = Presence       + Command    (focus: Command)

SHIP powers (starships and small craft)::

    MEDICAL   = Computers      + Medicine   (focus: Medicine)
    MILITARY  = Weapons        + Security   (focus: Security)
    PERSONAL  = Engines        + Conn       (focus: Conn)
    SCIENCE   = Sensors        + Science    (focus: Science)
    SOCIAL    = Communications + Command    (focus: Command)
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from ..models.actors import ConversionDomain, SourceActor
from ..models.powers import POWER_CATEGORIES, PowerCategory, PowerRating, PowerSet


@dataclass(frozen=True, slots=True)
class PowerFormula:
    primary: str
    focus: str


CHARACTER_FORMULAS: Mapping[PowerCategory, PowerFormula] = MappingProxyType(
    {
        PowerCategory.MEDICAL: PowerFormula("insight", "medicine"),
        PowerCategory.MILITARY: PowerFormula("daring", "security"),
        PowerCategory.PERSONAL: PowerFormula("control", "security"),
        PowerCategory.SCIENCE: PowerFormula("reason", "science"),
        PowerCategory.SOCIAL: PowerFormula("presence", "command"),
    }
)

SHIP_FORMULAS: Mapping[PowerCategory, PowerFormula] = MappingProxyType(
    {
        PowerCategory.MEDICAL: PowerFormula("computers", "medicine"),
        PowerCategory.MILITARY: PowerFormula("weapons", "security"),
        PowerCategory.PERSONAL: PowerFormula("engines", "conn"),
        PowerCategory.SCIENCE: PowerFormula("sensors", "science"),
        PowerCategory.SOCIAL: PowerFormula("communications", "command"),
    }
)

FORMULAS: Mapping[ConversionDomain, Mapping[PowerCategory, PowerFormula]] = MappingProxyType(
    {
        ConversionDomain.CHARACTER: CHARACTER_FORMULAS,
        ConversionDomain.SHIP: SHIP_FORMULAS,
    }
)


def _derive(source: SourceActor, domain: ConversionDomain) -> PowerSet:
    formulas = FORMULAS[domain]
    ratings: dict[PowerCategory, PowerRating] = {}
    for category in POWER_CATEGORIES:
        formula = formulas[category]
        primary = source.score(domain.stat_group, formula.primary) or 0
        focus = source.score(domain.skill_group, formula.focus) or 0
        ratings[category] = PowerRating(value=primary + focus, focus=focus)
    return PowerSet(ratings=ratings)


def derive_character_powers(source: SourceActor) -> PowerSet:
    return _derive(source, ConversionDomain.CHARACTER)


def derive_ship_powers(source: SourceActor) -> PowerSet:
    return _derive(source, ConversionDomain.SHIP)


def derive_powers(source: SourceActor, domain: ConversionDomain) -> PowerSet:
    if domain is ConversionDomain.CHARACTER:
        return derive_character_powers(source)
    return derive_ship_powers(source)


__all__ = [
    "CHARACTER_FORMULAS",
    "FORMULAS",
    "PowerFormula",
    "SHIP_FORMULAS",
    "derive_character_powers",
    "derive_powers",
    "derive_ship_powers",
]
