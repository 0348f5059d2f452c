"""Resolve configured table identifiers into single weighted draws."""

from __future__ import annotations

import logging
import random
from typing import Optional, Protocol

from ..errors import TableNotConfigured, TableNotFound
from ..models.tables import RollResult, RollTable

log = logging.getLogger(__name__)


class TableLookup(Protocol):
    async def get_table(self, identifier: str) -> Optional[RollTable]:
        ...


class RandomTableResolver:
    """Roll exactly once on the table an identifier points at.

    Failures are raised as :class:`TableNotConfigured` when no identifier was
    configured and :class:`TableNotFound` when the identifier does not
    dereference to a table.  Nothing is retried.
    """

    def __init__(self, tables: TableLookup, *, rng: random.Random | None = None) -> None:
        self._tables = tables
        self._rng = rng or random.Random()

    async def resolve(self, identifier: str | None, label: str) -> RollResult:
        identifier = (identifier or "").strip()
        if not identifier:
            log.warning("Table not configured: %s", label)
            raise TableNotConfigured(label)
        table = await self._tables.get_table(identifier)
        if table is None:
            log.warning("Table not found: %s (%s)", label, identifier)
            raise TableNotFound(label, identifier)
        result = RollResult.from_draw(table.draw(self._rng))
        log.debug(
            "Rolled %s on %s (%s): %s", result.roll_total, label, identifier, result.result_name
        )
        return result


__all__ = ["RandomTableResolver", "TableLookup"]
