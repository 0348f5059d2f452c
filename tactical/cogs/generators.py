from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..embeds import build_generation_embed, format_notices
from ..generation import (
    ASSET_FAMILY,
    POI_FAMILY,
    GenerationOutcome,
    GenerationPipeline,
    GeneratorFamily,
)
from .base import TacticalCog

log = logging.getLogger(__name__)


async def send_outcome(interaction: discord.Interaction, outcome: GenerationOutcome) -> None:
    """Post the report publicly and any notices to the invoker only."""

    notices = format_notices(outcome.notices)
    if outcome.report is None:
        await interaction.followup.send(notices or "Nothing was generated.", ephemeral=True)
        return
    await interaction.followup.send(embed=build_generation_embed(outcome))
    if notices:
        await interaction.followup.send(notices, ephemeral=True)


class GeneratorCog(TacticalCog):
    poi_group = app_commands.Group(name="poi", description="Points of interest")
    asset_group = app_commands.Group(name="asset", description="Campaign assets")

    async def _generate(self, interaction: discord.Interaction, family: GeneratorFamily) -> None:
        guild = interaction.guild
        assert guild is not None
        await interaction.response.defer(thinking=True)
        campaign = await self.ensure_guild_loaded(guild.id)
        pipeline = GenerationPipeline(
            family,
            campaign.settings.tables,
            campaign,
            campaign,
            prompt=self.decision_prompt(interaction),
        )
        outcome = await pipeline.run()
        log.info(
            "%s generation in guild %s finished at %s",
            family.key,
            guild.id,
            outcome.stage.value,
        )
        await send_outcome(interaction, outcome)

    @poi_group.command(name="generate", description="Roll a random point of interest")
    @app_commands.guild_only()
    async def poi_generate(self, interaction: discord.Interaction) -> None:
        await self._generate(interaction, POI_FAMILY)

    @asset_group.command(name="generate", description="Roll a random asset")
    @app_commands.guild_only()
    async def asset_generate(self, interaction: discord.Interaction) -> None:
        await self._generate(interaction, ASSET_FAMILY)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(GeneratorCog(bot))
