"""Weighted roll tables and the results they produce."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ._validation import FieldSpec, ModelValidator, SequenceSpec, is_non_empty_str

EMPTY_RESULT_NAME = "No result"

_UUID_LINK_RE = re.compile(r"@UUID\[(?P<uuid>[^\]]+)\]")


def _clean_reference(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class TableEntry:
    """A single weighted outcome of a :class:`RollTable`."""

    name: str
    weight: float = 1.0
    range_low: int = 1
    range_high: int = 1
    reference_id: Optional[str] = None
    description: str = ""

    def __post_init__(self) -> None:
        self.name = str(self.name).strip()
        try:
            weight = float(self.weight)
        except (TypeError, ValueError):
            weight = 0.0
        self.weight = max(0.0, weight)
        low = int(self.range_low)
        high = int(self.range_high)
        if low > high:
            low, high = high, low
        self.range_low = low
        self.range_high = high
        self.reference_id = _clean_reference(self.reference_id)
        self.description = str(self.description or "")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TableEntry":
        payload = dict(data)
        if "range" in payload:
            bounds = payload.pop("range")
            if isinstance(bounds, (list, tuple)) and bounds:
                payload.setdefault("range_low", bounds[0])
                payload.setdefault("range_high", bounds[-1])
        if "reference_id" not in payload:
            for alias in ("document_uuid", "uuid"):
                if alias in payload:
                    payload["reference_id"] = payload.pop(alias)
                    break
        if "description" not in payload and "text" in payload:
            payload["description"] = payload.pop("text")
        return cls(**payload)

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "weight": self.weight,
            "range_low": self.range_low,
            "range_high": self.range_high,
        }
        if self.reference_id:
            payload["reference_id"] = self.reference_id
        if self.description:
            payload["description"] = self.description
        return payload


class TableEntryValidator(ModelValidator):
    model = TableEntry
    fields = {
        "name": FieldSpec(is_non_empty_str, "a non-empty result name"),
        "weight": FieldSpec((int, float), "a numeric weight", required=False),
    }


TableEntry.validator = TableEntryValidator


@dataclass(frozen=True, slots=True)
class TableDraw:
    """Raw outcome of drawing once from a table."""

    roll_total: int
    name: str
    reference_id: Optional[str] = None
    text: str = ""


@dataclass(slots=True)
class RollTable:
    """Rollable table whose entries are drawn proportionally to their weight."""

    key: str
    name: str
    entries: List[TableEntry] = field(default_factory=list)
    description: str = ""

    def __post_init__(self) -> None:
        self.entries = [
            entry if isinstance(entry, TableEntry) else TableEntry.from_dict(entry)
            for entry in self.entries
        ]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RollTable":
        payload = dict(data)
        payload.setdefault("name", payload.get("key", ""))
        return cls(**payload)

    @property
    def total_weight(self) -> float:
        return sum(entry.weight for entry in self.entries)

    def draw(self, rng: random.Random | None = None) -> TableDraw:
        """Draw a single weighted result from the table."""

        rng = rng or random.Random()
        candidates = [entry for entry in self.entries if entry.weight > 0]
        if not candidates:
            return TableDraw(roll_total=0, name=EMPTY_RESULT_NAME)
        (entry,) = rng.choices(candidates, weights=[e.weight for e in candidates], k=1)
        total = rng.randint(entry.range_low, entry.range_high)
        return TableDraw(
            roll_total=total,
            name=entry.name or EMPTY_RESULT_NAME,
            reference_id=entry.reference_id,
            text=entry.description,
        )

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "entries": [entry.to_mapping() for entry in self.entries],
        }
        if self.description:
            payload["description"] = self.description
        return payload


class RollTableValidator(ModelValidator):
    model = RollTable
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty table key"),
        "entries": FieldSpec(SequenceSpec(dict), "a list of entry tables", required=False),
    }


RollTable.validator = RollTableValidator


@dataclass(frozen=True, slots=True)
class RollResult:
    """Immutable outcome of one resolved table draw."""

    roll_total: int
    result_name: str
    resolved_reference_id: Optional[str] = None
    description_text: str = ""

    @classmethod
    def from_draw(cls, draw: TableDraw) -> "RollResult":
        return cls(
            roll_total=int(draw.roll_total),
            result_name=draw.name or EMPTY_RESULT_NAME,
            resolved_reference_id=_clean_reference(draw.reference_id),
            description_text=draw.text or "",
        )

    def embedded_reference(self) -> Optional[str]:
        """Return the linked reference, falling back to a ``@UUID[...]`` in the text."""

        if self.resolved_reference_id:
            return self.resolved_reference_id
        match = _UUID_LINK_RE.search(self.description_text)
        if match:
            return _clean_reference(match.group("uuid"))
        return None


__all__ = [
    "EMPTY_RESULT_NAME",
    "RollResult",
    "RollTable",
    "TableDraw",
    "TableEntry",
]
