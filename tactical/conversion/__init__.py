"""Conversion of rated actors into tactical campaign assets."""

from __future__ import annotations

from .derivation import derive_character_powers, derive_powers, derive_ship_powers
from .orchestrator import (
    ConversionOrchestrator,
    ConversionResult,
    EligibleFolder,
    FolderConversionSummary,
    SkippedSource,
)
from .selector import PrimarySelector

__all__ = [
    "ConversionOrchestrator",
    "ConversionResult",
    "EligibleFolder",
    "FolderConversionSummary",
    "PrimarySelector",
    "SkippedSource",
    "derive_character_powers",
    "derive_powers",
    "derive_ship_powers",
]
