"""Human decisions and user-facing notices shared by generators and converters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True, slots=True)
class DecisionOption:
    key: str
    label: str
    emoji: str | None = None


class DecisionPrompt(Protocol):
    """Ask someone to pick one option; ``None`` means they declined."""

    async def __call__(
        self,
        title: str,
        options: Sequence[DecisionOption],
        *,
        description: str = "",
        details: Sequence[str] = (),
    ) -> Optional[str]:
        ...


@dataclass(frozen=True, slots=True)
class Notice:
    level: str
    code: str
    message: str


__all__ = ["DecisionOption", "DecisionPrompt", "Notice"]
