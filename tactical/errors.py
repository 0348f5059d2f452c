"""Recoverable failures raised by the generators and the converter.

Every error carries a ``notice`` meant for the person who ran the command and
a ``level`` describing how loudly it should be surfaced.  None of them are
fatal: the worst outcome is that no new entity is produced for the call.
"""

from __future__ import annotations


class TacticalError(Exception):
    """Base class for campaign failures that surface as user notices."""

    level = "error"

    def __init__(self, notice: str) -> None:
        super().__init__(notice)
        self.notice = notice


class GenerationError(TacticalError):
    """A table could not be rolled."""

    def __init__(self, notice: str, *, label: str, identifier: str | None) -> None:
        super().__init__(notice)
        self.label = label
        self.identifier = identifier


class TableNotConfigured(GenerationError):
    level = "warning"

    def __init__(self, label: str) -> None:
        super().__init__(
            f"The {label} table is not configured.", label=label, identifier=None
        )


class TableNotFound(GenerationError):
    def __init__(self, label: str, identifier: str) -> None:
        super().__init__(
            f"The {label} table could not be found.", label=label, identifier=identifier
        )


class EntityUnresolvable(TacticalError):
    level = "warning"

    def __init__(self, name: str, reference_id: str | None) -> None:
        super().__init__(f"Could not find the actor for '{name}'.")
        self.name = name
        self.reference_id = reference_id


class UnsupportedSource(TacticalError):
    level = "warning"

    def __init__(self, actor_type: str) -> None:
        super().__init__(f"Actors of type '{actor_type or 'unknown'}' cannot be converted.")
        self.actor_type = actor_type


class DecisionCancelled(TacticalError):
    level = "warning"

    def __init__(self, notice: str = "The decision was cancelled.") -> None:
        super().__init__(notice)


class ConversionCancelled(DecisionCancelled):
    def __init__(self, source_name: str) -> None:
        super().__init__(f"Conversion of {source_name} was cancelled.")
        self.source_name = source_name


class FolderNotFound(TacticalError):
    def __init__(self, folder_id: str) -> None:
        super().__init__("That folder no longer exists.")
        self.folder_id = folder_id


class NoEligibleSources(TacticalError):
    level = "warning"

    def __init__(self) -> None:
        super().__init__("There are no characters or starships to convert.")


__all__ = [
    "ConversionCancelled",
    "DecisionCancelled",
    "EntityUnresolvable",
    "FolderNotFound",
    "GenerationError",
    "NoEligibleSources",
    "TableNotConfigured",
    "TableNotFound",
    "TacticalError",
    "UnsupportedSource",
]
