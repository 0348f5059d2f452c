"""Convert characters and starships into tactical campaign assets."""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol

from ..decisions import DecisionPrompt
from ..errors import (
    ConversionCancelled,
    FolderNotFound,
    NoEligibleSources,
    TacticalError,
    UnsupportedSource,
)
from ..models.actors import Asset, AssetType, ConversionDomain, Folder, SourceActor
from ..models.powers import PowerCategory, PowerSet, PrimaryPowerMode
from .derivation import derive_powers
from .selector import PrimarySelector

log = logging.getLogger(__name__)

AssetWriter = Callable[[Asset], Awaitable[Asset]]


class SourceDirectory(Protocol):
    def get_folder(self, folder_id: str) -> Optional[Folder]:
        ...

    def iter_folders(self) -> Iterable[Folder]:
        ...

    def sources(self) -> Iterable[SourceActor]:
        ...

    async def create_folder(self, name: str, parent_id: Optional[str]) -> Folder:
        ...


@dataclass(slots=True)
class ConversionResult:
    source_id: str
    derived_power_set: PowerSet
    primary_category: PowerCategory
    asset: Asset


@dataclass(frozen=True, slots=True)
class SkippedSource:
    source_id: str
    name: str
    reason: str


@dataclass(slots=True)
class FolderConversionSummary:
    source_folder: Folder
    destination_folder: Folder
    results: List[ConversionResult] = field(default_factory=list)
    skipped: List[SkippedSource] = field(default_factory=list)

    @property
    def assets(self) -> List[Asset]:
        return [result.asset for result in self.results]


@dataclass(frozen=True, slots=True)
class EligibleFolder:
    folder: Folder
    count: int


def conversion_domain(source: SourceActor) -> ConversionDomain:
    domain = source.domain
    if domain is None:
        raise UnsupportedSource(source.actor_type)
    return domain


def provenance_note(source: SourceActor, domain: ConversionDomain) -> str:
    return f"Converted from {source.name} ({domain.label})."


def destination_folder_name(folder: Folder) -> str:
    return f"{folder.name} Assets"


class ConversionOrchestrator:
    """Derive powers, pick a primary and emit new asset records."""

    def __init__(
        self,
        directory: SourceDirectory,
        *,
        mode: PrimaryPowerMode | str = PrimaryPowerMode.RANDOM,
        writer: AssetWriter | None = None,
        rng: random.Random | None = None,
        prompt: DecisionPrompt | None = None,
    ) -> None:
        self.directory = directory
        self.mode = PrimaryPowerMode.from_value(mode)
        self.writer = writer
        self.selector = PrimarySelector(rng=rng, prompt=prompt)

    def eligible_sources(self) -> dict[ConversionDomain, list[SourceActor]]:
        grouped: dict[ConversionDomain, list[SourceActor]] = {
            domain: [] for domain in ConversionDomain
        }
        for source in self.directory.sources():
            if source.domain is not None:
                grouped[source.domain].append(source)
        return grouped

    def sources_in(self, folder_id: str) -> list[SourceActor]:
        return [
            source
            for source in self.directory.sources()
            if source.folder_id == folder_id and source.is_eligible
        ]

    def eligible_folders(self) -> list[EligibleFolder]:
        eligible: list[EligibleFolder] = []
        for folder in self.directory.iter_folders():
            count = len(self.sources_in(folder.key))
            if count:
                eligible.append(EligibleFolder(folder=folder, count=count))
        return eligible

    async def convert(
        self, source: SourceActor, *, folder_id: Optional[str] = None
    ) -> ConversionResult:
        domain = conversion_domain(source)
        powers = derive_powers(source, domain)
        primary = await self.selector.select_primary(self.mode, source, domain, powers)
        if primary is None:
            raise ConversionCancelled(source.name)
        asset = Asset(
            key=uuid.uuid4().hex,
            name=source.name,
            asset_type=AssetType.for_domain(domain),
            img=source.img,
            selected_power=primary,
            primary_power=primary,
            description=provenance_note(source, domain),
            powers=powers,
            folder_id=folder_id,
            source_id=source.key,
        )
        if self.writer is not None:
            asset = await self.writer(asset)
        log.info(
            "Converted %s %s into asset %s (primary %s)",
            domain.value,
            source.name,
            asset.key,
            primary.value,
        )
        return ConversionResult(
            source_id=source.key,
            derived_power_set=powers,
            primary_category=primary,
            asset=asset,
        )

    async def convert_folder(self, folder_id: str) -> FolderConversionSummary:
        folder = self.directory.get_folder(folder_id)
        if folder is None:
            raise FolderNotFound(folder_id)
        sources = self.sources_in(folder.key)
        if not sources:
            raise NoEligibleSources()

        destination = await self.directory.create_folder(
            destination_folder_name(folder), folder.parent_id
        )
        summary = FolderConversionSummary(source_folder=folder, destination_folder=destination)
        for source in sources:
            try:
                result = await self.convert(source, folder_id=destination.key)
            except TacticalError as exc:
                log.warning("Skipping %s during folder conversion: %s", source.name, exc.notice)
                summary.skipped.append(SkippedSource(source.key, source.name, exc.notice))
                continue
            except Exception as exc:
                log.exception("Failed to convert %s during folder conversion", source.name)
                summary.skipped.append(SkippedSource(source.key, source.name, str(exc)))
                continue
            summary.results.append(result)
        log.info(
            "Converted %s of %s actors from %s into %s",
            len(summary.results),
            len(sources),
            folder.name,
            destination.name,
        )
        return summary


__all__ = [
    "AssetWriter",
    "ConversionOrchestrator",
    "ConversionResult",
    "EligibleFolder",
    "FolderConversionSummary",
    "SkippedSource",
    "SourceDirectory",
    "conversion_domain",
    "destination_folder_name",
    "provenance_note",
]
