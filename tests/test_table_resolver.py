from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from tactical.errors import GenerationError, TableNotConfigured, TableNotFound
from tactical.generation.resolver import RandomTableResolver
from tactical.models.tables import RollResult, RollTable, TableDraw, TableEntry
from tactical.state import CampaignState


def _campaign(*tables: RollTable) -> CampaignState:
    campaign = CampaignState()
    for table in tables:
        campaign.register_table(table)
    return campaign


@pytest.mark.parametrize("identifier", [None, "", "   "])
def test_blank_identifier_is_not_configured(identifier: str | None) -> None:
    resolver = RandomTableResolver(_campaign())

    with pytest.raises(TableNotConfigured) as excinfo:
        asyncio.run(resolver.resolve(identifier, "Point of Interest Type"))

    assert excinfo.value.level == "warning"
    assert excinfo.value.notice == "The Point of Interest Type table is not configured."


def test_unknown_identifier_is_not_found() -> None:
    resolver = RandomTableResolver(_campaign())

    with pytest.raises(TableNotFound) as excinfo:
        asyncio.run(resolver.resolve("gone", "Routine"))

    assert isinstance(excinfo.value, GenerationError)
    assert excinfo.value.identifier == "gone"
    assert excinfo.value.level == "error"


def test_resolve_returns_single_draw_details() -> None:
    table = RollTable(
        key="crew",
        name="Crew",
        entries=[
            TableEntry(
                name="Ensign",
                range_low=3,
                range_high=4,
                reference_id="  Actor.ensign ",
                description="Fresh from the academy",
            )
        ],
    )
    resolver = RandomTableResolver(_campaign(table), rng=random.Random(5))

    result = asyncio.run(resolver.resolve("crew", "Character"))

    assert result.result_name == "Ensign"
    assert result.roll_total in (3, 4)
    assert result.resolved_reference_id == "Actor.ensign"
    assert result.description_text == "Fresh from the academy"


def test_draws_follow_entry_weights() -> None:
    table = RollTable(
        key="weighted",
        name="Weighted",
        entries=[
            TableEntry(name="Common", weight=3),
            TableEntry(name="Rare", weight=1),
            TableEntry(name="Never", weight=0),
        ],
    )
    rng = random.Random(42)

    names = [table.draw(rng).name for _ in range(4000)]

    assert "Never" not in names
    share = names.count("Common") / len(names)
    assert 0.70 < share < 0.80


def test_zero_weight_table_draws_empty_result() -> None:
    table = RollTable(key="dead", name="Dead", entries=[TableEntry(name="Nothing", weight=0)])

    draw = table.draw(random.Random(1))

    assert draw == TableDraw(roll_total=0, name="No result")


def test_entry_aliases_are_accepted() -> None:
    entry = TableEntry.from_dict(
        {"name": "Cube", "range": [5, 2], "document_uuid": "Actor.cube", "text": "Resistance"}
    )

    assert (entry.range_low, entry.range_high) == (2, 5)
    assert entry.reference_id == "Actor.cube"
    assert entry.description == "Resistance"


def test_roll_result_blank_reference_becomes_none() -> None:
    result = RollResult.from_draw(TableDraw(roll_total=2, name="", reference_id="  "))

    assert result.result_name == "No result"
    assert result.resolved_reference_id is None
    assert result.embedded_reference() is None
