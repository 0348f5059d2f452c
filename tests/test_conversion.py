from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from tactical.conversion import ConversionOrchestrator
from tactical.decisions import DecisionOption
from tactical.errors import (
    ConversionCancelled,
    DecisionCancelled,
    FolderNotFound,
    NoEligibleSources,
    UnsupportedSource,
)
from tactical.models.actors import AssetType, ConversionDomain, Folder, SourceActor
from tactical.models.powers import PowerCategory, PrimaryPowerMode
from tactical.state import CampaignState


class RecordingWriter:
    def __init__(self) -> None:
        self.writes: list[tuple[str, str, dict[str, Any]]] = []

    async def __call__(self, collection: str, key: str, payload: Mapping[str, Any]) -> None:
        self.writes.append((collection, key, dict(payload)))


class DecliningPrompt:
    """Answers ``science`` for everyone except the named actors."""

    def __init__(self, *declined: str) -> None:
        self.declined = set(declined)
        self.asked: list[str] = []

    async def __call__(
        self,
        title: str,
        options: Sequence[DecisionOption],
        *,
        description: str = "",
        details: Sequence[str] = (),
    ) -> Optional[str]:
        name = title.split(": ", 1)[1]
        self.asked.append(name)
        return None if name in self.declined else "science"


def _crew_member(key: str, name: str, *, folder_id: str | None = "bridge") -> SourceActor:
    return SourceActor(
        key=key,
        name=name,
        actor_type="character",
        img=f"https://example.invalid/{key}.png",
        folder_id=folder_id,
        attributes={"control": 9, "daring": 10, "insight": 8, "presence": 9, "reason": 11},
        disciplines={"command": 2, "security": 3, "science": 4, "medicine": 1, "conn": 2},
    )


def _campaign(writer: RecordingWriter | None = None) -> CampaignState:
    campaign = CampaignState(writer=writer)
    campaign.register_folder(Folder(key="fleet", name="Fleet"))
    campaign.register_folder(Folder(key="bridge", name="Bridge Crew", parent_id="fleet"))
    campaign.register_folder(Folder(key="empty", name="Empty", parent_id="fleet"))
    for key, name in [
        ("kirk", "Kirk"),
        ("spock", "Spock"),
        ("uhura", "Uhura"),
        ("sulu", "Sulu"),
        ("chekov", "Chekov"),
    ]:
        campaign.register_actor(_crew_member(key, name))
    campaign.register_actor(
        SourceActor(key="tribble", name="Tribble", actor_type="npc", folder_id="bridge")
    )
    campaign.register_actor(
        SourceActor(
            key="enterprise",
            name="Enterprise",
            actor_type="starship",
            folder_id="fleet",
            systems={"sensors": 10, "weapons": 9},
            departments={"science": 3, "security": 2},
        )
    )
    campaign.register_actor(
        SourceActor(key="probe", name="Probe", actor_type="npc", folder_id="empty")
    )
    return campaign


def _orchestrator(campaign: CampaignState, mode=PrimaryPowerMode.HIGHEST, prompt=None):
    return ConversionOrchestrator(
        campaign,
        mode=mode,
        writer=campaign.save_asset,
        rng=random.Random(7),
        prompt=prompt,
    )


def test_convert_character_builds_asset_with_provenance() -> None:
    writer = RecordingWriter()
    campaign = _campaign(writer)
    source = campaign.actors["spock"]

    result = asyncio.run(_orchestrator(campaign).convert(source))

    asset = result.asset
    assert result.source_id == "spock"
    assert result.primary_category is PowerCategory.SCIENCE
    assert asset.primary_power is PowerCategory.SCIENCE
    assert asset.selected_power is PowerCategory.SCIENCE
    assert asset.asset_type is AssetType.CHARACTER
    assert asset.name == "Spock"
    assert asset.img == source.img
    assert asset.description == "Converted from Spock (Character)."
    assert asset.powers is result.derived_power_set
    assert asset.powers[PowerCategory.SCIENCE].value == 15
    assert campaign.assets[asset.key] is asset
    assert writer.writes == [("assets", asset.key, asset.to_mapping())]


def test_convert_starship_tags_ship_domain() -> None:
    campaign = _campaign()

    result = asyncio.run(_orchestrator(campaign).convert(campaign.actors["enterprise"]))

    assert result.asset.asset_type is AssetType.SHIP
    assert result.asset.description == "Converted from Enterprise (Starship)."
    assert result.primary_category is PowerCategory.SCIENCE


def test_convert_rejects_unsupported_actor_types() -> None:
    campaign = _campaign()

    with pytest.raises(UnsupportedSource):
        asyncio.run(_orchestrator(campaign).convert(campaign.actors["tribble"]))

    assert campaign.assets == {}


def test_cancelled_choice_aborts_single_conversion() -> None:
    campaign = _campaign()
    orchestrator = _orchestrator(
        campaign, mode=PrimaryPowerMode.CHOICE, prompt=DecliningPrompt("Kirk")
    )

    with pytest.raises(ConversionCancelled) as excinfo:
        asyncio.run(orchestrator.convert(campaign.actors["kirk"]))

    assert isinstance(excinfo.value, DecisionCancelled)
    assert campaign.assets == {}


def test_convert_folder_skips_cancelled_item_and_keeps_the_rest() -> None:
    writer = RecordingWriter()
    campaign = _campaign(writer)
    prompt = DecliningPrompt("Sulu")
    orchestrator = _orchestrator(campaign, mode=PrimaryPowerMode.CHOICE, prompt=prompt)

    summary = asyncio.run(orchestrator.convert_folder("bridge"))

    assert sorted(prompt.asked) == ["Chekov", "Kirk", "Spock", "Sulu", "Uhura"]
    assert len(summary.results) == 4
    assert sorted(asset.name for asset in summary.assets) == ["Chekov", "Kirk", "Spock", "Uhura"]
    assert all(result.primary_category is PowerCategory.SCIENCE for result in summary.results)
    assert [(skipped.source_id, skipped.name) for skipped in summary.skipped] == [("sulu", "Sulu")]
    assert summary.skipped[0].reason == "Conversion of Sulu was cancelled."

    destination = summary.destination_folder
    assert destination.name == "Bridge Crew Assets"
    assert destination.parent_id == "fleet"
    assert campaign.folders[destination.key] is destination
    assert all(asset.folder_id == destination.key for asset in summary.assets)
    assert len(campaign.assets) == 4

    collections = [collection for collection, _, _ in writer.writes]
    assert collections[0] == "folders"
    assert collections.count("assets") == 4


def test_convert_folder_of_unknown_folder_raises() -> None:
    with pytest.raises(FolderNotFound):
        asyncio.run(_orchestrator(_campaign()).convert_folder("nowhere"))


def test_convert_folder_without_eligible_sources_creates_nothing() -> None:
    campaign = _campaign()
    folders_before = dict(campaign.folders)

    with pytest.raises(NoEligibleSources):
        asyncio.run(_orchestrator(campaign).convert_folder("empty"))

    assert campaign.folders == folders_before


def test_eligible_folders_count_only_convertible_actors() -> None:
    campaign = _campaign()

    entries = {entry.folder.key: entry.count for entry in _orchestrator(campaign).eligible_folders()}

    assert entries == {"bridge": 5, "fleet": 1}


def test_eligible_sources_are_grouped_by_domain() -> None:
    campaign = _campaign()

    grouped = _orchestrator(campaign).eligible_sources()

    assert [source.key for source in grouped[ConversionDomain.SHIP]] == ["enterprise"]
    assert len(grouped[ConversionDomain.CHARACTER]) == 5


def test_convert_folder_keeps_going_when_one_save_fails() -> None:
    campaign = _campaign()

    async def flaky_writer(asset):
        if asset.name == "Spock":
            raise ValueError("bad payload")
        return await campaign.save_asset(asset)

    orchestrator = ConversionOrchestrator(
        campaign, mode=PrimaryPowerMode.HIGHEST, writer=flaky_writer, rng=random.Random(7)
    )

    summary = asyncio.run(orchestrator.convert_folder("bridge"))

    assert sorted(asset.name for asset in summary.assets) == ["Chekov", "Kirk", "Sulu", "Uhura"]
    assert [(skipped.source_id, skipped.reason) for skipped in summary.skipped] == [
        ("spock", "bad payload")
    ]
    assert len(campaign.assets) == 4
