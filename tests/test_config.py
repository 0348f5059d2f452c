from __future__ import annotations

import sys
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from tactical.config import BotConfig, CampaignSettings, TableSettings
from tactical.models.powers import PrimaryPowerMode


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for slot in TableSettings.slots():
        monkeypatch.delenv(f"TACTICAL_TABLE_{slot.upper()}", raising=False)
    for name in ("DISCORD_TOKEN", "TACTICAL_PRIMARY_POWER_MODE", "TACTICAL_DECISION_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_table_settings_cover_nine_slots() -> None:
    assert TableSettings.slots() == (
        "poi_type",
        "tactical_threat",
        "exploration",
        "routine",
        "unknown",
        "asset_type",
        "asset_character",
        "asset_ship",
        "asset_resource",
    )


def test_table_settings_read_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TACTICAL_TABLE_POI_TYPE", " poi-type ")
    clean_env.setenv("TACTICAL_TABLE_ASSET_SHIP", "   ")

    tables = TableSettings.from_env()

    assert tables.poi_type == "poi-type"
    assert tables.asset_ship is None
    assert tables.to_mapping()["poi_type"] == "poi-type"
    assert tables.to_mapping()["asset_ship"] == ""


def test_unknown_slot_is_rejected() -> None:
    with pytest.raises(KeyError):
        TableSettings().get("asset_station")


def test_settings_are_frozen_and_merge_into_new_values() -> None:
    base = CampaignSettings(tables=TableSettings(poi_type="a", routine="b"))

    merged = base.merged(
        {"tables": {"routine": None, "exploration": "c", "bogus": "x"}, "primary_power_mode": "highest"}
    )

    assert merged is not base
    assert merged.tables.poi_type == "a"
    assert merged.tables.routine is None
    assert merged.tables.exploration == "c"
    assert merged.primary_power_mode is PrimaryPowerMode.HIGHEST
    assert base.tables.routine == "b"
    with pytest.raises(FrozenInstanceError):
        base.tables.poi_type = "z"  # type: ignore[misc]


def test_settings_round_trip_through_mapping() -> None:
    settings = CampaignSettings(
        tables=TableSettings(asset_type="types"), primary_power_mode=PrimaryPowerMode.CHOICE
    )

    restored = CampaignSettings().merged(settings.to_mapping())

    assert restored == settings


def test_cleared_slot_survives_reload_over_defaults() -> None:
    defaults = CampaignSettings(tables=TableSettings(poi_type="env-poi", routine="env-routine"))
    cleared = defaults.merged({"tables": {"poi_type": None}})

    stored = cleared.to_mapping()
    reloaded = defaults.merged(stored)

    assert stored["tables"]["poi_type"] == ""
    assert reloaded.tables.poi_type is None
    assert reloaded.tables.routine == "env-routine"


def test_bot_config_requires_token(clean_env: pytest.MonkeyPatch) -> None:
    with pytest.raises(RuntimeError):
        BotConfig.from_env()


def test_bot_config_reads_campaign_defaults(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("DISCORD_TOKEN", "token")
    clean_env.setenv("TACTICAL_PRIMARY_POWER_MODE", "HIGHEST")
    clean_env.setenv("TACTICAL_TABLE_ASSET_TYPE", "asset-types")
    clean_env.setenv("TACTICAL_DECISION_TIMEOUT", "1")

    config = BotConfig.from_env()

    assert config.token == "token"
    assert config.campaign.primary_power_mode is PrimaryPowerMode.HIGHEST
    assert config.campaign.tables.asset_type == "asset-types"
    assert config.decision_timeout == 5.0


def test_bot_config_falls_back_on_bad_values(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("DISCORD_TOKEN", "token")
    clean_env.setenv("TACTICAL_PRIMARY_POWER_MODE", "strongest")
    clean_env.setenv("TACTICAL_DECISION_TIMEOUT", "soon")

    config = BotConfig.from_env()

    assert config.campaign.primary_power_mode is PrimaryPowerMode.RANDOM
    assert config.decision_timeout == 120.0
