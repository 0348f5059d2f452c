"""In-memory campaign registry shared by the generators and the converter."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional, Union

from .config import CampaignSettings
from .models.actors import Asset, Folder, PointOfInterest, SourceActor
from .models.tables import RollTable

log = logging.getLogger(__name__)

RecordWriter = Callable[[str, str, Mapping[str, Any]], Awaitable[None]]


def _reference_tail(reference_id: str) -> str:
    """``Actor.abc123`` style references resolve by their final segment."""

    return reference_id.strip().rsplit(".", 1)[-1]


class CampaignState:
    """Cache of one guild's tables, actors, folders and generated records.

    The registry satisfies the table, entity and source directory lookups used
    by the core.  When ``writer`` is set, records created through it are also
    handed to persistence as ``(collection, key, payload)``.
    """

    def __init__(
        self,
        settings: CampaignSettings | None = None,
        *,
        writer: RecordWriter | None = None,
    ) -> None:
        self.settings = settings or CampaignSettings()
        self.writer = writer
        self.tables: Dict[str, RollTable] = {}
        self.actors: Dict[str, SourceActor] = {}
        self.folders: Dict[str, Folder] = {}
        self.assets: Dict[str, Asset] = {}
        self.pois: Dict[str, PointOfInterest] = {}

    def register_table(self, table: RollTable) -> None:
        self.tables[table.key] = table

    def register_actor(self, actor: SourceActor) -> None:
        self.actors[actor.key] = actor

    def register_folder(self, folder: Folder) -> None:
        self.folders[folder.key] = folder

    def register_asset(self, asset: Asset) -> None:
        self.assets[asset.key] = asset

    def register_poi(self, poi: PointOfInterest) -> None:
        self.pois[poi.key] = poi

    # Table lookup --------------------------------------------------------

    def find_table(self, identifier: str) -> Optional[RollTable]:
        identifier = identifier.strip()
        table = self.tables.get(identifier)
        if table is not None:
            return table
        lowered = identifier.lower()
        for candidate in self.tables.values():
            if candidate.name.lower() == lowered:
                return candidate
        return None

    async def get_table(self, identifier: str) -> Optional[RollTable]:
        return self.find_table(identifier)

    # Entity lookup -------------------------------------------------------

    async def get_entity(
        self, reference_id: str
    ) -> Optional[Union[Asset, PointOfInterest]]:
        for key in dict.fromkeys((reference_id.strip(), _reference_tail(reference_id))):
            entity = self.assets.get(key) or self.pois.get(key)
            if entity is not None:
                return entity
        return None

    # Source directory ----------------------------------------------------

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        return self.folders.get(folder_id)

    def iter_folders(self) -> Iterator[Folder]:
        return iter(sorted(self.folders.values(), key=lambda folder: folder.name.lower()))

    def sources(self) -> Iterator[SourceActor]:
        return iter(sorted(self.actors.values(), key=lambda actor: actor.name.lower()))

    def find_actor(self, identifier: str) -> Optional[SourceActor]:
        actor = self.actors.get(identifier)
        if actor is not None:
            return actor
        lowered = identifier.strip().lower()
        return next(
            (actor for actor in self.actors.values() if actor.name.lower() == lowered), None
        )

    async def create_folder(self, name: str, parent_id: Optional[str]) -> Folder:
        folder = Folder(key=uuid.uuid4().hex, name=name, parent_id=parent_id)
        if self.writer is not None:
            await self.writer("folders", folder.key, folder.to_mapping())
        self.register_folder(folder)
        log.info("Created folder %s (%s)", folder.name, folder.key)
        return folder

    async def save_asset(self, asset: Asset) -> Asset:
        if self.writer is not None:
            await self.writer("assets", asset.key, asset.to_mapping())
        self.register_asset(asset)
        return asset

    def snapshot(self) -> Dict[str, int]:
        return {
            "tables": len(self.tables),
            "actors": len(self.actors),
            "folders": len(self.folders),
            "assets": len(self.assets),
            "pois": len(self.pois),
        }


__all__ = ["CampaignState", "RecordWriter"]
