"""Administrative CLI helpers for campaign data management."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

import tomllib

from .models import ModelValidationError, load_dataclass
from .models.actors import Asset, Folder, PointOfInterest, SourceActor
from .models.tables import RollTable
from .storage import DataStore

RECORD_MODELS: Mapping[str, type] = {
    "tables": RollTable,
    "actors": SourceActor,
    "folders": Folder,
    "assets": Asset,
    "pois": PointOfInterest,
}


def parse_content(
    payload: Mapping[str, Any],
) -> tuple[dict[str, dict[str, Any]], list[str]]:
    """Validate a content document into ``{collection: {key: record}}``.

    Invalid records are reported and left out; everything else is returned in
    the shape the datastore persists.
    """

    records: dict[str, dict[str, Any]] = {}
    problems: list[str] = []
    for collection, model in RECORD_MODELS.items():
        section = payload.get(collection)
        if section is None:
            continue
        if not isinstance(section, Mapping):
            problems.append(f"[{collection}] must be a table of records")
            continue
        for key, value in section.items():
            if not isinstance(value, Mapping):
                problems.append(f"{collection}.{key}: expected a table")
                continue
            try:
                record = load_dataclass(model, {"key": str(key), **value})
            except ModelValidationError as exc:
                problems.append(f"{collection}.{key}: {'; '.join(exc.errors)}")
                continue
            except (TypeError, ValueError) as exc:
                problems.append(f"{collection}.{key}: {exc}")
                continue
            records.setdefault(collection, {})[record.key] = record.to_mapping()
    return records, problems


async def _import_records(
    store: DataStore,
    guild_id: str,
    records: Mapping[str, Mapping[str, Any]],
    settings: Mapping[str, Any] | None,
) -> None:
    for collection, entries in records.items():
        await store.bulk_set(guild_id, collection, entries.items())
    if settings:
        await store.bulk_set(guild_id, "settings", settings.items())


def _command_import(args: argparse.Namespace) -> int:
    source = Path(args.input).resolve()
    try:
        with source.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError:
        print(f"Content file not found: {source}", file=sys.stderr)
        return 2
    except tomllib.TOMLDecodeError as exc:
        print(f"Invalid TOML in {source}: {exc}", file=sys.stderr)
        return 2

    records, problems = parse_content(payload)
    for problem in problems:
        print(f"[WARNING] {problem}", file=sys.stderr)
    if problems and not args.force:
        print("Aborted; fix the records above or pass --force to skip them.", file=sys.stderr)
        return 1

    settings = payload.get("settings")
    if settings is not None and not isinstance(settings, Mapping):
        print("[settings] must be a table", file=sys.stderr)
        return 1
    store = DataStore(storage_root=Path(args.data_root).resolve() if args.data_root else None)
    asyncio.run(_import_records(store, str(args.guild), records, settings))
    for collection, entries in sorted(records.items()):
        print(f"Imported {len(entries)} {collection} record(s) into guild {args.guild}")
    return 0


def _command_list(args: argparse.Namespace) -> int:
    store = DataStore(storage_root=Path(args.data_root).resolve() if args.data_root else None)

    async def _collect() -> dict[str, Mapping[str, Any]]:
        return await store.get_many(str(args.guild), ("settings", *RECORD_MODELS))

    buckets = asyncio.run(_collect())
    print(f"Guild {args.guild} ({store.storage_root}):")
    for name, bucket in buckets.items():
        print(f"  - {name}: {len(bucket)} record(s)")
    return 0


def _command_validate(args: argparse.Namespace) -> int:
    store = DataStore(storage_root=Path(args.data_root).resolve() if args.data_root else None)

    async def _collect() -> dict[str, Mapping[str, Any]]:
        return await store.get_many(str(args.guild), RECORD_MODELS)

    _, problems = parse_content(asyncio.run(_collect()))
    for problem in problems:
        print(f"[ERROR] {problem}")
    if problems:
        return 1
    print("All records are valid.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Administrative utilities for campaign data.")
    parser.add_argument(
        "--data-root",
        help="Storage root holding data/guilds (default: TACTICAL_DATA_ROOT or the checkout)",
    )

    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="Show stored campaign collections")
    list_parser.add_argument("--guild", required=True, help="Guild ID to inspect")
    list_parser.set_defaults(func=_command_list)

    validate_parser = subparsers.add_parser(
        "validate",
        aliases=["lint"],
        help="Check stored records against the campaign models",
    )
    validate_parser.add_argument("--guild", required=True, help="Guild ID to validate")
    validate_parser.set_defaults(func=_command_validate)

    import_parser = subparsers.add_parser(
        "import-content",
        help="Load tables, actors, folders and points of interest from a TOML file",
    )
    import_parser.add_argument("--guild", required=True, help="Guild ID receiving the content")
    import_parser.add_argument("--input", required=True, help="Path to the content TOML file")
    import_parser.add_argument(
        "--force",
        action="store_true",
        help="Import the valid records even when others fail validation",
    )
    import_parser.set_defaults(func=_command_import)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        return 0
    return args.func(args)


__all__ = ["build_parser", "main", "parse_content"]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
