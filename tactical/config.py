"""Bot configuration utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from .models.powers import PrimaryPowerMode


def env(name: str, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if value is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _clean_identifier(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class TableSettings:
    """Identifiers of the nine rollable tables used by the generators."""

    poi_type: str | None = None
    tactical_threat: str | None = None
    exploration: str | None = None
    routine: str | None = None
    unknown: str | None = None
    asset_type: str | None = None
    asset_character: str | None = None
    asset_ship: str | None = None
    asset_resource: str | None = None

    def __post_init__(self) -> None:
        for slot in self.slots():
            object.__setattr__(self, slot, _clean_identifier(getattr(self, slot)))

    @classmethod
    def slots(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    @classmethod
    def from_env(cls) -> "TableSettings":
        values = {
            slot: os.getenv(f"TACTICAL_TABLE_{slot.upper()}") for slot in cls.slots()
        }
        return cls(**values)

    def get(self, slot: str) -> str | None:
        if slot not in self.slots():
            raise KeyError(f"Unknown table slot: {slot}")
        return getattr(self, slot)

    def merged(self, overrides: Mapping[str, Any]) -> "TableSettings":
        known = {key: value for key, value in overrides.items() if key in self.slots()}
        return replace(self, **known)

    def to_mapping(self) -> dict[str, str]:
        # An empty string records a cleared slot so it overrides the env default.
        return {slot: self.get(slot) or "" for slot in self.slots()}


@dataclass(frozen=True, slots=True)
class CampaignSettings:
    """Read-only policy handed to each generation or conversion run."""

    tables: TableSettings = field(default_factory=TableSettings)
    primary_power_mode: PrimaryPowerMode = PrimaryPowerMode.RANDOM

    def merged(self, overrides: Mapping[str, Any]) -> "CampaignSettings":
        tables = overrides.get("tables")
        mode = overrides.get("primary_power_mode")
        return CampaignSettings(
            tables=self.tables.merged(tables) if isinstance(tables, Mapping) else self.tables,
            primary_power_mode=(
                PrimaryPowerMode.from_value(mode) if mode else self.primary_power_mode
            ),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "tables": self.tables.to_mapping(),
            "primary_power_mode": self.primary_power_mode.value,
        }


@dataclass(slots=True)
class BotConfig:
    token: str
    campaign: CampaignSettings = field(default_factory=CampaignSettings)
    decision_timeout: float = 120.0

    @classmethod
    def from_env(cls) -> "BotConfig":
        token = env("DISCORD_TOKEN")
        mode = PrimaryPowerMode.from_value(os.getenv("TACTICAL_PRIMARY_POWER_MODE", "random"))
        try:
            decision_timeout = float(os.getenv("TACTICAL_DECISION_TIMEOUT", "120"))
        except ValueError:
            decision_timeout = 120.0
        decision_timeout = max(5.0, decision_timeout)
        return cls(
            token=token,
            campaign=CampaignSettings(
                tables=TableSettings.from_env(),
                primary_power_mode=mode,
            ),
            decision_timeout=decision_timeout,
        )


__all__ = ["BotConfig", "CampaignSettings", "TableSettings"]
