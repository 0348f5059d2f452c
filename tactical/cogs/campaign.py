from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..config import TableSettings
from ..models.powers import PrimaryPowerMode
from .base import TacticalCog, require_admin

log = logging.getLogger(__name__)

TABLE_SLOT_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=slot.replace("_", " ").title(), value=slot)
    for slot in TableSettings.slots()
]

PRIMARY_MODE_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=mode.value.title(), value=mode.value) for mode in PrimaryPowerMode
]


class CampaignCog(TacticalCog):
    campaign_group = app_commands.Group(
        name="campaign", description="Configure the tactical campaign"
    )

    @campaign_group.command(name="tables", description="Show the configured generator tables")
    @app_commands.guild_only()
    async def campaign_tables(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        assert guild is not None
        campaign = await self.ensure_guild_loaded(guild.id)
        settings = campaign.settings
        lines = []
        for slot in settings.tables.slots():
            identifier = settings.tables.get(slot)
            table = campaign.find_table(identifier) if identifier else None
            if identifier is None:
                status = "*not configured*"
            elif table is None:
                status = f"`{identifier}` (missing)"
            else:
                status = f"{table.name} ({len(table.entries)} entries)"
            lines.append(f"**{slot}**: {status}")
        embed = discord.Embed(
            title="Campaign tables",
            description="\n".join(lines),
            colour=0x5865F2,
        )
        embed.set_footer(text=f"Primary power mode: {settings.primary_power_mode.value}")
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @campaign_group.command(name="set_table", description="Point a generator slot at a table")
    @app_commands.describe(slot="Generator slot", table="Table key or name; leave empty to clear")
    @app_commands.choices(slot=TABLE_SLOT_CHOICES)
    @app_commands.guild_only()
    @require_admin()
    async def campaign_set_table(
        self, interaction: discord.Interaction, slot: str, table: str | None = None
    ) -> None:
        guild = interaction.guild
        assert guild is not None
        campaign = await self.ensure_guild_loaded(guild.id)
        identifier = (table or "").strip() or None
        if identifier is not None and campaign.find_table(identifier) is None:
            await self.send_notice(interaction, f"No table named `{identifier}` is loaded.")
            return
        settings = campaign.settings.merged({"tables": {slot: identifier}})
        await self.save_settings(guild.id, settings)
        log.info("Guild %s set table %s to %s", guild.id, slot, identifier)
        message = f"{slot} now rolls on `{identifier}`." if identifier else f"{slot} cleared."
        await self.send_notice(interaction, message)

    @campaign_set_table.autocomplete("table")
    async def campaign_table_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        if interaction.guild is None:
            return []
        campaign = await self.ensure_guild_loaded(interaction.guild.id)
        search = current.strip().lower()
        return [
            app_commands.Choice(name=table.name[:100], value=table.key)
            for table in campaign.tables.values()
            if not search or search in table.name.lower() or search in table.key.lower()
        ][:25]

    @campaign_group.command(
        name="primary_mode", description="Choose how converted assets pick their primary power"
    )
    @app_commands.choices(mode=PRIMARY_MODE_CHOICES)
    @app_commands.guild_only()
    @require_admin()
    async def campaign_primary_mode(self, interaction: discord.Interaction, mode: str) -> None:
        guild = interaction.guild
        assert guild is not None
        campaign = await self.ensure_guild_loaded(guild.id)
        settings = campaign.settings.merged({"primary_power_mode": mode})
        await self.save_settings(guild.id, settings)
        await self.send_notice(
            interaction, f"Primary power mode set to **{settings.primary_power_mode.value}**."
        )

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await self.send_notice(interaction, str(error))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(CampaignCog(bot))
