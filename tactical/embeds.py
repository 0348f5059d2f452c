"""Embed builders for generator reports and conversion results."""

from __future__ import annotations

from typing import Iterable

import discord

from .conversion.orchestrator import ConversionResult, EligibleFolder, FolderConversionSummary
from .decisions import Notice
from .generation.pipeline import GenerationOutcome
from .models.actors import Asset, PointOfInterest
from .models.powers import POWER_CATEGORIES, PowerSet
from .models.tables import RollResult

NEUTRAL_COLOUR = 0x95A5A6
FAILURE_COLOUR = 0x992D22
CONVERSION_COLOUR = 0x5865F2

NOTICE_ICONS = {"error": "⛔", "warning": "⚠️"}


def format_roll(roll: RollResult) -> str:
    text = f"**{roll.result_name}** (rolled {roll.roll_total})"
    if roll.description_text and not roll.resolved_reference_id:
        text = f"{text}\n{roll.description_text[:300]}"
    return text


def format_powers(powers: PowerSet, primary=None) -> str:
    lines = []
    for category in POWER_CATEGORIES:
        marker = " ★" if category is primary else ""
        lines.append(f"{category.label}: {powers[category].describe()}{marker}")
    return "\n".join(lines)


def format_notices(notices: Iterable[Notice]) -> str:
    return "\n".join(
        f"{NOTICE_ICONS.get(notice.level, 'ℹ️')} {notice.message}" for notice in notices
    )


def _entity_field(embed: discord.Embed, entity: Asset | PointOfInterest) -> None:
    if isinstance(entity, PointOfInterest):
        value = (
            f"Power: {entity.power.label}\n"
            f"Difficulty: {entity.difficulty} · Urgency: {entity.urgency}"
        )
    else:
        value = format_powers(entity.powers, entity.primary_power)
    if entity.description:
        value = f"{entity.description[:300]}\n{value}"
    embed.add_field(name=entity.name, value=value[:1024], inline=False)
    if entity.img:
        embed.set_thumbnail(url=entity.img)


def build_generation_embed(outcome: GenerationOutcome) -> discord.Embed:
    family = outcome.family
    report = outcome.report
    if report is None:
        embed = discord.Embed(
            title=f"{family.label} generation failed",
            description=format_notices(outcome.notices) or None,
            colour=FAILURE_COLOUR,
        )
        return embed

    display = family.display.get(report.subcategory_key or "")
    if display is not None:
        title = f"{display.emoji} {family.label}: {display.label}"
        colour = display.colour
    else:
        title = f"{family.label}: {report.category_roll.result_name}"
        colour = NEUTRAL_COLOUR
    embed = discord.Embed(title=title, colour=colour)
    embed.add_field(name=family.category_label, value=format_roll(report.category_roll), inline=False)
    if report.sub_roll is not None:
        embed.add_field(
            name=family.subcategory_label(report.subcategory_key or ""),
            value=format_roll(report.sub_roll),
            inline=False,
        )
    if report.resolved_entity is not None:
        _entity_field(embed, report.resolved_entity)
    return embed


def build_conversion_embed(result: ConversionResult) -> discord.Embed:
    asset = result.asset
    embed = discord.Embed(
        title=f"Asset created: {asset.name}",
        description=asset.description,
        colour=CONVERSION_COLOUR,
    )
    embed.add_field(name="Primary Power", value=result.primary_category.label, inline=True)
    embed.add_field(name="Type", value=asset.asset_type.value.title(), inline=True)
    embed.add_field(
        name="Powers",
        value=format_powers(result.derived_power_set, result.primary_category),
        inline=False,
    )
    if asset.img:
        embed.set_thumbnail(url=asset.img)
    return embed


def build_folder_summary_embed(summary: FolderConversionSummary) -> discord.Embed:
    embed = discord.Embed(
        title=f"Converted {summary.source_folder.name}",
        description=(
            f"Created {len(summary.results)} asset(s) in **{summary.destination_folder.name}**."
        ),
        colour=CONVERSION_COLOUR,
    )
    if summary.results:
        lines = [
            f"• {result.asset.name}: {result.primary_category.label}"
            for result in summary.results
        ]
        embed.add_field(name="Assets", value="\n".join(lines)[:1024], inline=False)
    if summary.skipped:
        lines = [f"• {skipped.name}: {skipped.reason}" for skipped in summary.skipped]
        embed.add_field(name="Skipped", value="\n".join(lines)[:1024], inline=False)
    return embed


def describe_folder(entry: EligibleFolder) -> str:
    return f"{entry.folder.name} ({entry.count} eligible)"


__all__ = [
    "build_conversion_embed",
    "build_folder_summary_embed",
    "build_generation_embed",
    "describe_folder",
    "format_notices",
    "format_powers",
    "format_roll",
]
