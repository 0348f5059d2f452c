"""Entry point for the tactical campaign Discord bot."""

from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .config import BotConfig
from .state import CampaignState
from .storage import DataStore

log = logging.getLogger(__name__)

EXTENSIONS = (
    "tactical.cogs.generators",
    "tactical.cogs.converter",
    "tactical.cogs.campaign",
)


class TacticalCampaignBot(commands.Bot):
    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents)
        self.config = config
        self.campaigns: dict[int, CampaignState] = {}
        self.store = DataStore()
        self._synced = False

    async def setup_hook(self) -> None:
        for extension in EXTENSIONS:
            await self.load_extension(extension)

    async def on_ready(self) -> None:
        if not self._synced:
            await self.tree.sync()
            self._synced = True
            log.info("Application commands synced")
        if self.user:
            log.info("Connected as %s (%s)", self.user, self.user.id)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self.tree.sync(guild=guild)
        log.info("Synced application commands for guild %s (%s)", guild.name, guild.id)

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self.campaigns.pop(guild.id, None)


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = BotConfig.from_env()
    bot = TacticalCampaignBot(config)
    async with bot:
        await bot.start(config.token)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
