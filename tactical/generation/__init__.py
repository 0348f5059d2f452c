"""Rollable table generators for points of interest and assets."""

from __future__ import annotations

from .classifier import ASSET_CLASSIFIER, POI_CLASSIFIER, CategoryClassifier, Classification
from .pipeline import (
    ASSET_FAMILY,
    FAMILIES,
    POI_FAMILY,
    GeneratedReport,
    GenerationOutcome,
    GenerationPipeline,
    GeneratorFamily,
    PipelineStage,
)
from .resolver import RandomTableResolver

__all__ = [
    "ASSET_CLASSIFIER",
    "ASSET_FAMILY",
    "CategoryClassifier",
    "Classification",
    "FAMILIES",
    "GeneratedReport",
    "GenerationOutcome",
    "GenerationPipeline",
    "GeneratorFamily",
    "PipelineStage",
    "POI_CLASSIFIER",
    "POI_FAMILY",
    "RandomTableResolver",
]
