"""Shared helpers for cogs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping

import discord
from discord import app_commands
from discord.ext import commands

from ..config import BotConfig, CampaignSettings
from ..errors import TacticalError
from ..models import ModelValidationError, load_dataclass
from ..models.actors import Asset, Folder, PointOfInterest, SourceActor
from ..models.tables import RollTable
from ..state import CampaignState
from ..storage import DataStore
from ..views import DiscordDecisionPrompt

log = logging.getLogger(__name__)

CAMPAIGN_COLLECTIONS = ("settings", "tables", "actors", "folders", "assets", "pois")

# Serialises the first load of each guild so concurrent commands share one state.
_GUILD_LOAD_LOCKS: Dict[int, asyncio.Lock] = {}


def require_admin() -> app_commands.Check:
    """Check ensuring the invoker administers the guild."""

    async def predicate(interaction: discord.Interaction) -> bool:
        guild = interaction.guild
        if guild is None:
            raise app_commands.CheckFailure("This command can only be used in a guild.")
        user = interaction.user
        member = user if isinstance(user, discord.Member) else guild.get_member(user.id)
        if member is not None and member.guild_permissions.administrator:
            return True
        raise app_commands.CheckFailure("Only server administrators may change campaign settings.")

    return app_commands.check(predicate)


class TacticalCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def store(self) -> DataStore:
        return self.bot.store  # type: ignore[return-value]

    @property
    def config(self) -> BotConfig:
        return self.bot.config  # type: ignore[return-value]

    @property
    def campaigns(self) -> Dict[int, CampaignState]:
        return self.bot.campaigns  # type: ignore[return-value]

    def decision_prompt(self, interaction: discord.Interaction) -> DiscordDecisionPrompt:
        return DiscordDecisionPrompt(interaction, timeout=self.config.decision_timeout)

    async def send_notice(
        self, interaction: discord.Interaction, message: str, *, ephemeral: bool = True
    ) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=ephemeral)
        else:
            await interaction.response.send_message(message, ephemeral=ephemeral)

    async def send_error(self, interaction: discord.Interaction, error: TacticalError) -> None:
        icon = "⚠️" if error.level == "warning" else "⛔"
        await self.send_notice(interaction, f"{icon} {error.notice}")

    def _writer_for(self, guild_id: int) -> Callable:
        async def write(collection: str, key: str, payload: Mapping[str, Any]) -> None:
            await self.store.set(guild_id, collection, key, dict(payload))

        return write

    async def ensure_guild_loaded(self, guild_id: int) -> CampaignState:
        campaign = self.campaigns.get(guild_id)
        if campaign is not None:
            return campaign
        async with _GUILD_LOAD_LOCKS.setdefault(guild_id, asyncio.Lock()):
            campaign = self.campaigns.get(guild_id)
            if campaign is None:
                campaign = await self._load_campaign(guild_id)
                self.campaigns[guild_id] = campaign
        return campaign

    async def _load_campaign(self, guild_id: int) -> CampaignState:
        preload = await self.store.get_many(guild_id, CAMPAIGN_COLLECTIONS)
        settings = self.config.campaign.merged(preload.get("settings", {}))
        campaign = CampaignState(settings, writer=self._writer_for(guild_id))
        loaders: tuple[tuple[str, type, Callable[[Any], None]], ...] = (
            ("tables", RollTable, campaign.register_table),
            ("actors", SourceActor, campaign.register_actor),
            ("folders", Folder, campaign.register_folder),
            ("assets", Asset, campaign.register_asset),
            ("pois", PointOfInterest, campaign.register_poi),
        )
        for collection, cls, register in loaders:
            for key, value in preload.get(collection, {}).items():
                payload = {"key": key, **value}
                try:
                    register(load_dataclass(cls, payload))
                except (ModelValidationError, TypeError, ValueError) as exc:
                    reason = "; ".join(exc.errors) if isinstance(exc, ModelValidationError) else exc
                    log.error(
                        "Failed to load %s '%s' for guild %s: %s",
                        collection,
                        key,
                        guild_id,
                        reason,
                    )
        log.info("Loaded campaign for guild %s: %s", guild_id, campaign.snapshot())
        return campaign

    async def save_settings(self, guild_id: int, settings: CampaignSettings) -> None:
        campaign = await self.ensure_guild_loaded(guild_id)
        campaign.settings = settings
        payload = settings.to_mapping()
        await self.store.bulk_set(guild_id, "settings", payload.items())


__all__ = ["CAMPAIGN_COLLECTIONS", "TacticalCog", "require_admin"]
