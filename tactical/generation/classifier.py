"""Keyword classification of category table results.

Result names on the category tables are free text ("2 Tactical Threats",
"Exploration Encounter").  Each generator family declares an ordered rule
table of keyword sets; the first rule with a keyword contained in the
normalized name wins.  Families may also declare groups of keys that are
ambiguous together, in which case classification suspends until someone
picks one of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from ..errors import DecisionCancelled


class ClassificationStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    AWAITING_DECISION = "awaiting_decision"


@dataclass(frozen=True, slots=True)
class KeywordRule:
    keywords: frozenset[str]
    key: str

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


@dataclass(frozen=True, slots=True)
class Classification:
    status: ClassificationStatus
    normalized_name: str
    key: Optional[str] = None
    options: tuple[str, ...] = ()

    @property
    def awaiting_decision(self) -> bool:
        return self.status is ClassificationStatus.AWAITING_DECISION


@dataclass(frozen=True, slots=True)
class CategoryClassifier:
    rules: tuple[KeywordRule, ...]
    ambiguous_groups: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[Iterable[str], str]],
        *,
        ambiguous: Iterable[Sequence[str]] = (),
    ) -> "CategoryClassifier":
        rules = tuple(
            KeywordRule(frozenset(word.upper() for word in keywords), key)
            for keywords, key in pairs
        )
        return cls(rules=rules, ambiguous_groups=tuple(tuple(group) for group in ambiguous))

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(rule.key for rule in self.rules)

    def classify(self, result_name: str) -> Classification:
        text = str(result_name or "").upper().strip()
        matched = [rule.key for rule in self.rules if rule.matches(text)]
        if not matched:
            return Classification(ClassificationStatus.UNMATCHED, text)
        hits = set(matched)
        for group in self.ambiguous_groups:
            if len(group) > 1 and hits.issuperset(group):
                return Classification(
                    ClassificationStatus.AWAITING_DECISION, text, options=tuple(group)
                )
        return Classification(ClassificationStatus.MATCHED, text, key=matched[0])

    def resolve(self, classification: Classification, decision: Optional[str]) -> str:
        """Resume a suspended classification with an explicit decision."""

        if not classification.awaiting_decision:
            if classification.key is None:
                raise ValueError("Unmatched classifications cannot be resumed")
            return classification.key
        if decision is None or decision not in classification.options:
            raise DecisionCancelled("No category was chosen for the rolled result.")
        return decision


POI_CLASSIFIER = CategoryClassifier.from_pairs(
    [
        (("TACTICAL", "THREAT"), "tactical_threat"),
        (("EXPLORATION",), "exploration"),
        (("ROUTINE",), "routine"),
        (("UNKNOWN",), "unknown"),
    ]
)

ASSET_CLASSIFIER = CategoryClassifier.from_pairs(
    [
        (("CHARACTER",), "character"),
        (("SHIP",), "ship"),
        (("RESOURCE",), "resource"),
    ],
    ambiguous=[("character", "ship")],
)


__all__ = [
    "ASSET_CLASSIFIER",
    "CategoryClassifier",
    "Classification",
    "ClassificationStatus",
    "KeywordRule",
    "POI_CLASSIFIER",
]
