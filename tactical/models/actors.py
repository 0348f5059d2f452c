"""Actors stored in a campaign: conversion sources, assets and points of interest."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ._validation import FieldSpec, MappingSpec, ModelValidator, is_non_empty_str, is_score
from .powers import PowerCategory, PowerSet

CHARACTER_ACTOR_TYPES: frozenset[str] = frozenset({"character"})
SHIP_ACTOR_TYPES: frozenset[str] = frozenset({"starship", "smallcraft"})

# Rated groups read off a source actor, keyed by the name used in payloads.
SCORE_GROUPS: tuple[str, ...] = ("attributes", "disciplines", "systems", "departments")


class ConversionDomain(str, Enum):
    """Kind of source actor, selecting the formula table for conversion."""

    CHARACTER = "character"
    SHIP = "ship"

    @property
    def skill_group(self) -> str:
        return "disciplines" if self is ConversionDomain.CHARACTER else "departments"

    @property
    def stat_group(self) -> str:
        return "attributes" if self is ConversionDomain.CHARACTER else "systems"

    @property
    def label(self) -> str:
        return "Character" if self is ConversionDomain.CHARACTER else "Starship"

    @classmethod
    def for_actor_type(cls, actor_type: str | None) -> Optional["ConversionDomain"]:
        normalized = str(actor_type or "").strip().lower()
        if normalized in CHARACTER_ACTOR_TYPES:
            return cls.CHARACTER
        if normalized in SHIP_ACTOR_TYPES:
            return cls.SHIP
        return None


class AssetType(str, Enum):
    CHARACTER = "character"
    SHIP = "ship"
    RESOURCE = "resource"

    @classmethod
    def from_value(cls, value: "AssetType | str | None") -> "AssetType":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.CHARACTER

    @classmethod
    def for_domain(cls, domain: ConversionDomain) -> "AssetType":
        return cls.CHARACTER if domain is ConversionDomain.CHARACTER else cls.SHIP


def _score_value(raw: Any) -> Optional[int]:
    if isinstance(raw, Mapping):
        raw = raw.get("value")
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def _normalize_scores(raw: Any) -> Dict[str, int]:
    if not isinstance(raw, Mapping):
        return {}
    scores: Dict[str, int] = {}
    for key, value in raw.items():
        score = _score_value(value)
        if score is None:
            continue
        scores[str(key).strip().lower()] = score
    return scores


def _normalize_names(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    return [str(item).strip() for item in raw if str(item).strip()]


@dataclass(slots=True)
class SourceActor:
    """A rated character, starship or small craft that can become an asset."""

    key: str
    name: str
    actor_type: str
    img: str = ""
    folder_id: Optional[str] = None
    attributes: Dict[str, int] = field(default_factory=dict)
    disciplines: Dict[str, int] = field(default_factory=dict)
    systems: Dict[str, int] = field(default_factory=dict)
    departments: Dict[str, int] = field(default_factory=dict)
    traits: List[str] = field(default_factory=list)
    focuses: List[str] = field(default_factory=list)
    trait_text: str = ""

    def __post_init__(self) -> None:
        self.actor_type = str(self.actor_type or "").strip().lower()
        for group in SCORE_GROUPS:
            setattr(self, group, _normalize_scores(getattr(self, group)))
        self.traits = _normalize_names(self.traits)
        self.focuses = _normalize_names(self.focuses)
        self.trait_text = str(self.trait_text or "")
        if self.folder_id is not None:
            self.folder_id = str(self.folder_id).strip() or None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceActor":
        payload = dict(data)
        if "actor_type" not in payload and "type" in payload:
            payload["actor_type"] = payload.pop("type")
        if "folder_id" not in payload and "folder" in payload:
            payload["folder_id"] = payload.pop("folder")
        system = payload.pop("system", None)
        if isinstance(system, Mapping):
            for group in SCORE_GROUPS:
                if group in system:
                    payload.setdefault(group, system[group])
            if "traits" in system and isinstance(system["traits"], str):
                payload.setdefault("trait_text", system["traits"])
        items = payload.pop("items", None)
        if isinstance(items, Sequence) and not isinstance(items, str):
            for item in items:
                if not isinstance(item, Mapping):
                    continue
                kind = str(item.get("type", "")).lower()
                if kind == "trait":
                    payload.setdefault("traits", []).append(item.get("name", ""))
                elif kind == "focus":
                    payload.setdefault("focuses", []).append(item.get("name", ""))
        return cls(**payload)

    @property
    def domain(self) -> Optional[ConversionDomain]:
        return ConversionDomain.for_actor_type(self.actor_type)

    @property
    def is_eligible(self) -> bool:
        return self.domain is not None

    def score(self, group: str, key: str) -> Optional[int]:
        """Return a rated sub-field, or ``None`` when the source lacks it."""

        scores = getattr(self, group, None)
        if not isinstance(scores, Mapping):
            return None
        return scores.get(key)

    def ranked_skills(self, domain: ConversionDomain) -> Dict[str, int]:
        return dict(getattr(self, domain.skill_group))

    def descriptive_tags(self) -> Dict[str, List[str]]:
        traits = list(self.traits)
        if not traits and self.trait_text:
            traits = [part.strip() for part in self.trait_text.split(",") if part.strip()]
        return {"traits": traits, "focuses": list(self.focuses)}

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "actor_type": self.actor_type,
            "img": self.img,
            "traits": list(self.traits),
            "focuses": list(self.focuses),
            "trait_text": self.trait_text,
        }
        if self.folder_id:
            payload["folder_id"] = self.folder_id
        for group in SCORE_GROUPS:
            scores = getattr(self, group)
            if scores:
                payload[group] = dict(scores)
        return payload


class SourceActorValidator(ModelValidator):
    model = SourceActor
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty actor key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty actor name"),
        "attributes": FieldSpec(MappingSpec(str, is_score), "a mapping of ratings", required=False),
        "disciplines": FieldSpec(MappingSpec(str, is_score), "a mapping of ratings", required=False),
        "systems": FieldSpec(MappingSpec(str, is_score), "a mapping of ratings", required=False),
        "departments": FieldSpec(MappingSpec(str, is_score), "a mapping of ratings", required=False),
    }


SourceActor.validator = SourceActorValidator


@dataclass(slots=True)
class Asset:
    """Tactical campaign asset, either generated by a table or converted."""

    key: str
    name: str
    asset_type: AssetType = AssetType.CHARACTER
    img: str = ""
    selected_power: PowerCategory = PowerCategory.MEDICAL
    primary_power: Optional[PowerCategory] = None
    description: str = ""
    powers: PowerSet = field(default_factory=PowerSet)
    folder_id: Optional[str] = None
    source_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.asset_type = AssetType.from_value(self.asset_type)
        self.selected_power = PowerCategory.from_value(
            self.selected_power, default=PowerCategory.MEDICAL
        )
        if self.primary_power in (None, ""):
            self.primary_power = None
        else:
            self.primary_power = PowerCategory.from_value(self.primary_power)
        if not isinstance(self.powers, PowerSet):
            self.powers = PowerSet.from_mapping(self.powers)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Asset":
        return cls(**dict(data))

    @property
    def has_primary_power(self) -> bool:
        return self.asset_type is not AssetType.RESOURCE

    @property
    def total_power(self) -> int:
        return self.powers.total_power

    @property
    def total_focus(self) -> int:
        return self.powers.total_focus

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "asset_type": self.asset_type.value,
            "img": self.img,
            "selected_power": self.selected_power.value,
            "description": self.description,
            "powers": self.powers.to_mapping(),
        }
        if self.primary_power is not None:
            payload["primary_power"] = self.primary_power.value
        if self.folder_id:
            payload["folder_id"] = self.folder_id
        if self.source_id:
            payload["source_id"] = self.source_id
        return payload


class AssetValidator(ModelValidator):
    model = Asset
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty asset key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty asset name"),
        "powers": FieldSpec(MappingSpec(str, dict), "a mapping of power ratings", required=False),
    }


Asset.validator = AssetValidator


@dataclass(slots=True)
class PointOfInterest:
    """Strategic location or objective rolled by the point of interest tables."""

    key: str
    name: str
    img: str = ""
    description: str = ""
    power: PowerCategory = PowerCategory.MILITARY
    difficulty: int = 1
    urgency: int = 1

    def __post_init__(self) -> None:
        self.power = PowerCategory.from_value(self.power, default=PowerCategory.MILITARY)
        self.difficulty = max(1, min(5, int(self.difficulty)))
        self.urgency = max(1, min(5, int(self.urgency)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PointOfInterest":
        return cls(**dict(data))

    def to_mapping(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "img": self.img,
            "description": self.description,
            "power": self.power.value,
            "difficulty": self.difficulty,
            "urgency": self.urgency,
        }


class PointOfInterestValidator(ModelValidator):
    model = PointOfInterest
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty point of interest key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty point of interest name"),
        "difficulty": FieldSpec(int, "an integer from 1 to 5", required=False),
        "urgency": FieldSpec(int, "an integer from 1 to 5", required=False),
    }


PointOfInterest.validator = PointOfInterestValidator


@dataclass(slots=True)
class Folder:
    key: str
    name: str
    parent_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Folder":
        return cls(**dict(data))

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"key": self.key, "name": self.name}
        if self.parent_id:
            payload["parent_id"] = self.parent_id
        return payload


class FolderValidator(ModelValidator):
    model = Folder
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty folder key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty folder name"),
    }


Folder.validator = FolderValidator


__all__ = [
    "Asset",
    "AssetType",
    "ConversionDomain",
    "Folder",
    "PointOfInterest",
    "SourceActor",
]
