"""Domain models for the tactical campaign bot."""

from __future__ import annotations

from ._validation import ModelValidationError, load_dataclass, validate_dataclass_payload
from .actors import Asset, AssetType, ConversionDomain, Folder, PointOfInterest, SourceActor
from .powers import (
    POWER_CATEGORIES,
    PowerCategory,
    PowerRating,
    PowerSet,
    PrimaryPowerMode,
)
from .tables import EMPTY_RESULT_NAME, RollResult, RollTable, TableDraw, TableEntry

__all__ = [
    "Asset",
    "AssetType",
    "ConversionDomain",
    "EMPTY_RESULT_NAME",
    "Folder",
    "ModelValidationError",
    "POWER_CATEGORIES",
    "PointOfInterest",
    "PowerCategory",
    "PowerRating",
    "PowerSet",
    "PrimaryPowerMode",
    "RollResult",
    "RollTable",
    "SourceActor",
    "TableDraw",
    "TableEntry",
    "load_dataclass",
    "validate_dataclass_payload",
]
