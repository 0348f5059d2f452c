from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..conversion import ConversionOrchestrator
from ..embeds import build_conversion_embed, build_folder_summary_embed, describe_folder
from ..errors import TacticalError
from ..state import CampaignState
from .base import TacticalCog

log = logging.getLogger(__name__)

MAX_CHOICES = 25


class ConverterCog(TacticalCog):
    """Turn characters and starships into tactical assets."""

    def _orchestrator(
        self, interaction: discord.Interaction, campaign: CampaignState
    ) -> ConversionOrchestrator:
        return ConversionOrchestrator(
            campaign,
            mode=campaign.settings.primary_power_mode,
            writer=campaign.save_asset,
            prompt=self.decision_prompt(interaction),
        )

    @app_commands.command(name="convert", description="Convert a character or starship into an asset")
    @app_commands.describe(actor="Character, starship or small craft to convert")
    @app_commands.guild_only()
    async def convert(self, interaction: discord.Interaction, actor: str) -> None:
        guild = interaction.guild
        assert guild is not None
        campaign = await self.ensure_guild_loaded(guild.id)
        source = campaign.find_actor(actor)
        if source is None:
            await self.send_notice(interaction, "That actor could not be found.")
            return
        await interaction.response.defer(thinking=True)
        try:
            result = await self._orchestrator(interaction, campaign).convert(source)
        except TacticalError as exc:
            await self.send_error(interaction, exc)
            return
        await interaction.followup.send(embed=build_conversion_embed(result))

    @convert.autocomplete("actor")
    async def convert_actor_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        if interaction.guild is None:
            return []
        campaign = await self.ensure_guild_loaded(interaction.guild.id)
        search = current.strip().lower()
        grouped = self._orchestrator(interaction, campaign).eligible_sources()
        choices: list[app_commands.Choice[str]] = []
        for domain, sources in grouped.items():
            for source in sources:
                if search and search not in source.name.lower():
                    continue
                name = f"{source.name} ({domain.label})"
                choices.append(app_commands.Choice(name=name[:100], value=source.key))
        return choices[:MAX_CHOICES]

    @app_commands.command(
        name="convert_folder", description="Convert every character and starship in a folder"
    )
    @app_commands.describe(folder="Folder holding the actors to convert")
    @app_commands.guild_only()
    async def convert_folder(self, interaction: discord.Interaction, folder: str) -> None:
        guild = interaction.guild
        assert guild is not None
        campaign = await self.ensure_guild_loaded(guild.id)
        await interaction.response.defer(thinking=True)
        try:
            summary = await self._orchestrator(interaction, campaign).convert_folder(folder)
        except TacticalError as exc:
            await self.send_error(interaction, exc)
            return
        await interaction.followup.send(embed=build_folder_summary_embed(summary))

    @convert_folder.autocomplete("folder")
    async def convert_folder_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        if interaction.guild is None:
            return []
        campaign = await self.ensure_guild_loaded(interaction.guild.id)
        search = current.strip().lower()
        choices = [
            app_commands.Choice(name=describe_folder(entry)[:100], value=entry.folder.key)
            for entry in self._orchestrator(interaction, campaign).eligible_folders()
            if not search or search in entry.folder.name.lower()
        ]
        return choices[:MAX_CHOICES]


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ConverterCog(bot))
