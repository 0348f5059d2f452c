"""Power categories and the ratings assets carry in each of them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

POWER_VALUE_MAX = 20
POWER_FOCUS_MAX = 5


class PowerCategory(str, Enum):
    """The five power domains used for tactical resolution."""

    MEDICAL = "medical"
    MILITARY = "military"
    PERSONAL = "personal"
    SCIENCE = "science"
    SOCIAL = "social"

    @property
    def label(self) -> str:
        return self.value.title()

    @classmethod
    def from_value(
        cls, value: "PowerCategory | str | None", *, default: "PowerCategory | None" = None
    ) -> "PowerCategory":
        if isinstance(value, cls):
            return value
        if value is None:
            if default is not None:
                return default
            raise ValueError("Power category cannot be None")
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        if default is not None:
            return default
        raise ValueError(f"Unknown power category: {value}")


POWER_CATEGORIES: Tuple[PowerCategory, ...] = tuple(PowerCategory)


class PrimaryPowerMode(str, Enum):
    """Policy used to flag the primary power of a converted asset."""

    RANDOM = "random"
    HIGHEST = "highest"
    CHOICE = "choice"

    @classmethod
    def from_value(cls, value: "PrimaryPowerMode | str | None") -> "PrimaryPowerMode":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.RANDOM


def _coerce_rating(value: Any, maximum: int) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return max(0, min(maximum, number))


@dataclass(slots=True)
class PowerRating:
    """Rating within a single category; ``None`` marks an unset field."""

    value: Optional[int] = 0
    focus: Optional[int] = 0

    def __post_init__(self) -> None:
        self.value = _coerce_rating(self.value, POWER_VALUE_MAX)
        self.focus = _coerce_rating(self.focus, POWER_FOCUS_MAX)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "PowerRating":
        if not data:
            return cls()
        return cls(value=data.get("value"), focus=data.get("focus"))

    def to_mapping(self) -> Dict[str, int]:
        payload: Dict[str, int] = {}
        if self.value is not None:
            payload["value"] = self.value
        if self.focus is not None:
            payload["focus"] = self.focus
        return payload

    def describe(self) -> str:
        return f"{self.value or 0}/{self.focus or 0}"


@dataclass(slots=True)
class PowerSet:
    """Ratings for every category; missing categories are filled with zeros."""

    ratings: Dict[PowerCategory, PowerRating] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized: Dict[PowerCategory, PowerRating] = {}
        for key, rating in dict(self.ratings).items():
            category = PowerCategory.from_value(key)
            if not isinstance(rating, PowerRating):
                rating = PowerRating.from_mapping(rating)
            normalized[category] = rating
        for category in POWER_CATEGORIES:
            normalized.setdefault(category, PowerRating())
        self.ratings = {category: normalized[category] for category in POWER_CATEGORIES}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "PowerSet":
        return cls(ratings=dict(data or {}))

    def __getitem__(self, category: PowerCategory | str) -> PowerRating:
        return self.ratings[PowerCategory.from_value(category)]

    def __iter__(self) -> Iterator[PowerCategory]:
        return iter(self.ratings)

    def __len__(self) -> int:
        return len(self.ratings)

    def items(self) -> Iterator[tuple[PowerCategory, PowerRating]]:
        return iter(self.ratings.items())

    def value_of(self, category: PowerCategory | str) -> int:
        return self[category].value or 0

    @property
    def total_power(self) -> int:
        return sum(rating.value or 0 for rating in self.ratings.values())

    @property
    def total_focus(self) -> int:
        return sum(rating.focus or 0 for rating in self.ratings.values())

    def to_mapping(self) -> Dict[str, Dict[str, int]]:
        return {category.value: rating.to_mapping() for category, rating in self.items()}


__all__ = [
    "POWER_CATEGORIES",
    "POWER_FOCUS_MAX",
    "POWER_VALUE_MAX",
    "PowerCategory",
    "PowerRating",
    "PowerSet",
    "PrimaryPowerMode",
]
