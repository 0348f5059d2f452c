"""Discord UI components for campaign decisions."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence

import discord

from .decisions import DecisionOption

log = logging.getLogger(__name__)

# Options fill rows 0-3 of the view; row 4 is kept for the cancel button.
MAX_DECISION_OPTIONS = 20
CANCEL_ROW = 4


class OwnedView(discord.ui.View):
    """Base view that restricts interactions to a single Discord user."""

    def __init__(self, owner_id: int | None, *, timeout: float = 120.0) -> None:
        super().__init__(timeout=timeout)
        self.owner_id = owner_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:  # type: ignore[override]
        if self.owner_id is None or interaction.user.id == self.owner_id:
            return True
        await interaction.response.send_message(
            "Only the officer who issued this command may answer it.",
            ephemeral=True,
        )
        return False


class DecisionButton(discord.ui.Button["DecisionView"]):
    def __init__(self, option: DecisionOption, *, row: int | None = None) -> None:
        super().__init__(
            label=option.label[:80],
            emoji=option.emoji,
            style=discord.ButtonStyle.primary,
            row=row,
        )
        self.option_key = option.key

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        assert self.view is not None
        await self.view.settle(interaction, self.option_key)


class DecisionView(OwnedView):
    """One button per option plus Cancel; resolves a future with the picked key.

    Cancelling or letting the view time out resolves the future with ``None``.
    """

    def __init__(
        self,
        owner_id: int | None,
        options: Sequence[DecisionOption],
        *,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(owner_id, timeout=timeout)
        self.message: Optional[discord.Message] = None
        self._result: asyncio.Future[Optional[str]] = asyncio.get_running_loop().create_future()
        for index, option in enumerate(options[:MAX_DECISION_OPTIONS]):
            self.add_item(DecisionButton(option, row=index // 5))
        self.remove_item(self.cancel_button)
        self.cancel_button.row = CANCEL_ROW
        self.add_item(self.cancel_button)

    def disable_all_items(self) -> None:
        for child in self.children:
            child.disabled = True

    async def wait_for_result(self) -> Optional[str]:
        return await self._result

    async def settle(self, interaction: discord.Interaction, key: Optional[str]) -> None:
        if not self._result.done():
            self._result.set_result(key)
        self.disable_all_items()
        if interaction.response.is_done():
            await interaction.edit_original_response(view=self)
        else:
            await interaction.response.edit_message(view=self)
        self.stop()

    async def on_timeout(self) -> None:
        if not self._result.done():
            self._result.set_result(None)
        self.disable_all_items()
        if self.message:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                log.debug("Could not disable expired decision view", exc_info=True)
        self.stop()

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary, emoji="✖️")
    async def cancel_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:  # type: ignore[override]
        await self.settle(interaction, None)


def build_decision_embed(
    title: str, description: str = "", details: Iterable[str] = ()
) -> discord.Embed:
    embed = discord.Embed(title=title, description=description or None, colour=0x5865F2)
    lines = [line for line in details if line]
    if lines:
        embed.add_field(name="Details", value="\n".join(lines)[:1024], inline=False)
    return embed


class DiscordDecisionPrompt:
    """Ask the invoking user to decide through an ephemeral button view."""

    def __init__(self, interaction: discord.Interaction, *, timeout: float = 120.0) -> None:
        self.interaction = interaction
        self.timeout = timeout

    async def __call__(
        self,
        title: str,
        options: Sequence[DecisionOption],
        *,
        description: str = "",
        details: Sequence[str] = (),
    ) -> Optional[str]:
        view = DecisionView(self.interaction.user.id, options, timeout=self.timeout)
        embed = build_decision_embed(title, description, details)
        if self.interaction.response.is_done():
            view.message = await self.interaction.followup.send(
                embed=embed, view=view, ephemeral=True, wait=True
            )
        else:
            await self.interaction.response.send_message(embed=embed, view=view, ephemeral=True)
            view.message = await self.interaction.original_response()
        picked = await view.wait_for_result()
        log.debug("Decision %r answered with %r", title, picked)
        return picked


__all__ = [
    "DecisionButton",
    "DecisionView",
    "DiscordDecisionPrompt",
    "OwnedView",
    "build_decision_embed",
]
