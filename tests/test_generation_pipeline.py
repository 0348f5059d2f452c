from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path
from typing import Optional, Sequence

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from tactical.config import TableSettings
from tactical.decisions import DecisionOption
from tactical.generation import ASSET_FAMILY, POI_FAMILY, GenerationPipeline, PipelineStage
from tactical.models.actors import Asset, AssetType, PointOfInterest
from tactical.models.tables import RollTable, TableEntry
from tactical.state import CampaignState


class RecordingCampaign(CampaignState):
    def __init__(self) -> None:
        super().__init__()
        self.requested: list[str] = []

    async def get_table(self, identifier: str) -> Optional[RollTable]:
        self.requested.append(identifier)
        return await super().get_table(identifier)


class ScriptedPrompt:
    def __init__(self, answer: Optional[str]) -> None:
        self.answer = answer
        self.calls: list[tuple[str, list[str]]] = []

    async def __call__(
        self,
        title: str,
        options: Sequence[DecisionOption],
        *,
        description: str = "",
        details: Sequence[str] = (),
    ) -> Optional[str]:
        self.calls.append((title, [option.key for option in options]))
        return self.answer


def _table(key: str, *entries: TableEntry) -> RollTable:
    return RollTable(key=key, name=key.replace("-", " ").title(), entries=list(entries))


def _poi_campaign() -> RecordingCampaign:
    campaign = RecordingCampaign()
    campaign.register_table(_table("poi-type", TableEntry(name="2 Tactical Threats")))
    campaign.register_table(
        _table(
            "threats",
            TableEntry(name="Borg Cube", reference_id="Actor.borg-cube", range_low=1, range_high=6),
        )
    )
    campaign.register_poi(
        PointOfInterest(key="borg-cube", name="Borg Cube", power="military", difficulty=5)
    )
    return campaign


def _run(pipeline: GenerationPipeline):
    return asyncio.run(pipeline.run())


def test_poi_generation_runs_every_stage_once() -> None:
    campaign = _poi_campaign()
    tables = TableSettings(poi_type="poi-type", tactical_threat="threats")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign, rng=random.Random(1)))

    assert outcome.stage is PipelineStage.DONE
    assert outcome.succeeded
    assert outcome.history == [
        PipelineStage.START,
        PipelineStage.CATEGORY_ROLLED,
        PipelineStage.CLASSIFIED,
        PipelineStage.SUB_ROLLED,
        PipelineStage.ENTITY_RESOLVED,
        PipelineStage.DONE,
    ]
    report = outcome.report
    assert report is not None
    assert report.category_roll.result_name == "2 Tactical Threats"
    assert report.subcategory_key == "tactical_threat"
    assert report.sub_roll is not None
    assert 1 <= report.sub_roll.roll_total <= 6
    assert report.resolved_entity is campaign.pois["borg-cube"]
    assert outcome.notices == []
    assert campaign.requested == ["poi-type", "threats"]


def test_missing_category_table_aborts_before_sub_roll() -> None:
    campaign = _poi_campaign()
    tables = TableSettings(poi_type="deleted-table", tactical_threat="threats")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.stage is PipelineStage.ABORTED
    assert outcome.report is None
    assert [notice.code for notice in outcome.notices] == [
        "table_not_found",
        "category_roll_failed",
    ]
    assert outcome.notices[0].level == "error"
    assert campaign.requested == ["deleted-table"]


def test_unconfigured_category_table_aborts_with_warning() -> None:
    campaign = _poi_campaign()

    outcome = _run(GenerationPipeline(POI_FAMILY, TableSettings(), campaign, campaign))

    assert outcome.stage is PipelineStage.ABORTED
    assert outcome.notices[0].code == "table_not_configured"
    assert outcome.notices[0].level == "warning"
    assert campaign.requested == []


def test_unknown_category_keeps_the_category_roll() -> None:
    campaign = _poi_campaign()
    campaign.register_table(_table("odd-types", TableEntry(name="Mystery")))
    tables = TableSettings(poi_type="odd-types", tactical_threat="threats")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.stage is PipelineStage.PARTIAL_FAILURE
    assert outcome.report is not None
    assert outcome.report.category_roll.result_name == "Mystery"
    assert outcome.report.subcategory_key is None
    assert outcome.report.sub_roll is None
    assert [notice.code for notice in outcome.notices] == ["unknown_type"]
    assert campaign.requested == ["odd-types"]


def test_empty_category_table_reports_no_result() -> None:
    campaign = _poi_campaign()
    campaign.register_table(_table("empty"))

    outcome = _run(
        GenerationPipeline(POI_FAMILY, TableSettings(poi_type="empty"), campaign, campaign)
    )

    assert outcome.stage is PipelineStage.PARTIAL_FAILURE
    assert outcome.report is not None
    assert outcome.report.category_roll.result_name == "No result"
    assert outcome.report.category_roll.roll_total == 0


def test_unconfigured_sub_table_keeps_partial_report() -> None:
    campaign = _poi_campaign()
    tables = TableSettings(poi_type="poi-type")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.stage is PipelineStage.PARTIAL_FAILURE
    report = outcome.report
    assert report is not None
    assert report.category_roll.result_name == "2 Tactical Threats"
    assert report.subcategory_key == "tactical_threat"
    assert report.sub_roll is None
    assert report.resolved_entity is None
    assert [notice.code for notice in outcome.notices] == ["table_not_configured"]
    assert "Tactical Threat" in outcome.notices[0].message


def test_unresolvable_entity_still_completes() -> None:
    campaign = _poi_campaign()
    campaign.register_table(
        _table(
            "exploration",
            TableEntry(name="Derelict", reference_id="Actor.missing"),
        )
    )
    campaign.register_table(_table("types", TableEntry(name="Exploration")))
    tables = TableSettings(poi_type="types", exploration="exploration")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.stage is PipelineStage.DONE
    assert PipelineStage.ENTITY_RESOLVED not in outcome.history
    assert outcome.report is not None
    assert outcome.report.sub_roll is not None
    assert outcome.report.resolved_entity is None
    assert [notice.code for notice in outcome.notices] == ["entity_not_found"]


def test_result_without_reference_skips_dereference() -> None:
    campaign = _poi_campaign()
    campaign.register_table(_table("routine", TableEntry(name="Supply run")))
    campaign.register_table(_table("types", TableEntry(name="Routine")))
    tables = TableSettings(poi_type="types", routine="routine")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.stage is PipelineStage.DONE
    assert outcome.report is not None
    assert outcome.report.resolved_entity is None
    assert outcome.notices[0].level == "warning"


def test_reference_embedded_in_result_text_is_followed() -> None:
    campaign = _poi_campaign()
    campaign.register_table(
        _table(
            "unknown",
            TableEntry(name="Signal", description="Investigate @UUID[Actor.borg-cube]{Cube}"),
        )
    )
    campaign.register_table(_table("types", TableEntry(name="Unknown")))
    tables = TableSettings(poi_type="types", unknown="unknown")

    outcome = _run(GenerationPipeline(POI_FAMILY, tables, campaign, campaign))

    assert outcome.report is not None
    assert outcome.report.resolved_entity is campaign.pois["borg-cube"]


def _asset_campaign() -> RecordingCampaign:
    campaign = RecordingCampaign()
    campaign.register_table(_table("asset-type", TableEntry(name="Character or Ship")))
    campaign.register_table(_table("ships", TableEntry(name="Runabout", reference_id="runabout")))
    campaign.register_table(_table("crew", TableEntry(name="Ensign", reference_id="ensign")))
    campaign.register_asset(Asset(key="runabout", name="Runabout", asset_type=AssetType.SHIP))
    campaign.register_asset(Asset(key="ensign", name="Ensign"))
    return campaign


ASSET_TABLES = TableSettings(
    asset_type="asset-type", asset_character="crew", asset_ship="ships"
)


def test_ambiguous_asset_type_follows_the_decision() -> None:
    campaign = _asset_campaign()
    prompt = ScriptedPrompt("ship")

    outcome = _run(
        GenerationPipeline(ASSET_FAMILY, ASSET_TABLES, campaign, campaign, prompt=prompt)
    )

    assert outcome.stage is PipelineStage.DONE
    assert PipelineStage.AWAITING_DECISION in outcome.history
    assert prompt.calls == [("Conditional asset", ["character", "ship"])]
    assert outcome.report is not None
    assert outcome.report.subcategory_key == "ship"
    assert outcome.report.resolved_entity is campaign.assets["runabout"]
    assert campaign.requested == ["asset-type", "ships"]


@pytest.mark.parametrize("prompt", [ScriptedPrompt(None), None])
def test_declined_asset_decision_cancels_the_run(prompt) -> None:
    campaign = _asset_campaign()

    outcome = _run(
        GenerationPipeline(ASSET_FAMILY, ASSET_TABLES, campaign, campaign, prompt=prompt)
    )

    assert outcome.stage is PipelineStage.CANCELLED
    assert outcome.report is None
    assert [notice.code for notice in outcome.notices] == ["cancelled"]
    assert campaign.requested == ["asset-type"]


def test_table_names_resolve_like_keys() -> None:
    campaign = _asset_campaign()
    campaign.register_table(_table("types-by-name", TableEntry(name="Resource")))
    campaign.register_table(RollTable(key="r1", name="Resources", entries=[TableEntry(name="Dilithium")]))
    tables = TableSettings(asset_type="types-by-name", asset_resource="resources")

    outcome = _run(GenerationPipeline(ASSET_FAMILY, tables, campaign, campaign))

    assert outcome.report is not None
    assert outcome.report.sub_roll is not None
    assert outcome.report.sub_roll.result_name == "Dilithium"


def test_concurrent_runs_keep_separate_state() -> None:
    campaign = _poi_campaign()
    tables = TableSettings(poi_type="poi-type", tactical_threat="threats")

    async def _both():
        first = GenerationPipeline(POI_FAMILY, tables, campaign, campaign, rng=random.Random(1))
        second = GenerationPipeline(POI_FAMILY, tables, campaign, campaign, rng=random.Random(2))
        return await asyncio.gather(first.run(), second.run())

    first, second = asyncio.run(_both())

    assert first.stage is second.stage is PipelineStage.DONE
    assert first.report is not second.report
    assert len(first.history) == len(second.history) == 6
