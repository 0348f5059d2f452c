"""Create the per-guild campaign directories."""

from __future__ import annotations

FROM_VERSION = 0
TO_VERSION = 1
DESCRIPTION = "Create campaign record directories"


def apply(context) -> None:  # type: ignore[no-untyped-def]
    for collection in context.config.values():
        if collection.migration_key != context.collection.migration_key:
            continue
        if not collection.per_record:
            continue
        directory = collection.record_directory(context.base, guild_id=context.guild_id)
        directory.mkdir(parents=True, exist_ok=True)
        context.log(f"prepared {directory.name}/")
