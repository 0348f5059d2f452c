"""TOML persistence for campaign content, laid out by ``config/storage.toml``.

Every collection named in the storage configuration maps to either a single
document (one TOML file, optionally scoped to a section) or a directory of
per-record files.  Each guild keeps a ``schema_version.toml`` next to its data
and the :class:`VersionManager` replays ``migrations/<collection>/`` scripts
until the stored version matches the configured one.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import math
import os
import re
import tempfile
from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, MutableMapping, Optional
from urllib.parse import quote, unquote

import tomllib

log = logging.getLogger(__name__)

_STORAGE_LOCK = asyncio.Lock()

_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _is_site_packages(path: Path) -> bool:
    parts = {part.lower() for part in path.parts}
    return "site-packages" in parts or "dist-packages" in parts


def resolve_storage_root(package_root: Path) -> Path:
    """Pick the directory that holds mutable campaign data.

    ``TACTICAL_DATA_ROOT`` (or ``TACTICAL_STORAGE_ROOT``) wins when set.  An
    installed or read-only package stores its data in the working directory;
    a checkout keeps it beside the sources.
    """

    override = os.getenv("TACTICAL_DATA_ROOT") or os.getenv("TACTICAL_STORAGE_ROOT")
    if override:
        return Path(override).expanduser().resolve()
    if _is_site_packages(package_root) or not os.access(package_root, os.W_OK):
        return Path.cwd().resolve()
    return package_root


# ---------------------------------------------------------------------------
# TOML encoding
# ---------------------------------------------------------------------------


def _plain(value: Any) -> Any:
    """Reduce ``value`` to types TOML can hold, dropping ``None`` entries."""

    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_plain(item) for item in value if item is not None]
        if isinstance(value, (set, frozenset)):
            items.sort(key=repr)
        return items
    if isinstance(value, Enum):
        return _plain(value.value)
    if isinstance(value, bool) or isinstance(value, (str, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0.0
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf8", "replace")
    return str(value)


def _key(name: str) -> str:
    return name if _BARE_KEY_RE.match(name) else _quote_string(name)


def _quote_string(value: str) -> str:
    escapes = {
        "\\": "\\\\",
        '"': '\\"',
        "\b": "\\b",
        "\t": "\\t",
        "\n": "\\n",
        "\f": "\\f",
        "\r": "\\r",
    }
    out: list[str] = []
    for char in value:
        if char in escapes:
            out.append(escapes[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    return '"' + "".join(out) + '"'


def _is_table_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(
        isinstance(item, Mapping) for item in value
    )


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = repr(value)
        return text if any(mark in text for mark in ".eE") else f"{text}.0"
    if isinstance(value, str):
        return _quote_string(value)
    if isinstance(value, list):
        return "[" + ", ".join(_format_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        inner = ", ".join(f"{_key(k)} = {_format_value(v)}" for k, v in value.items())
        return "{ " + inner + " }" if inner else "{}"
    return _quote_string(str(value))


def _emit_table(
    data: Mapping[str, Any], path: tuple[str, ...], lines: list[str]
) -> None:
    scalars = sorted(
        (k, v) for k, v in data.items() if not isinstance(v, Mapping) and not _is_table_array(v)
    )
    tables = sorted((k, v) for k, v in data.items() if isinstance(v, Mapping))
    arrays = sorted((k, v) for k, v in data.items() if _is_table_array(v))

    for key, value in scalars:
        lines.append(f"{_key(key)} = {_format_value(value)}")
    for key, value in tables:
        header = ".".join(_key(part) for part in (*path, key))
        if lines and lines[-1]:
            lines.append("")
        lines.append(f"[{header}]")
        _emit_table(value, (*path, key), lines)
    for key, items in arrays:
        header = ".".join(_key(part) for part in (*path, key))
        for item in items:
            if lines and lines[-1]:
                lines.append("")
            lines.append(f"[[{header}]]")
            for sub_key, sub_value in sorted(item.items()):
                lines.append(f"{_key(sub_key)} = {_format_value(sub_value)}")


def toml_dumps(data: Mapping[str, Any]) -> str:
    plain = _plain(data)
    if not isinstance(plain, Mapping):
        raise TypeError("A TOML document must be a mapping")
    lines: list[str] = []
    _emit_table(plain, (), lines)
    return "\n".join(lines) + "\n"


def _read_toml(path: Path) -> Any:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return None
    except (tomllib.TOMLDecodeError, OSError) as exc:
        log.error("Unreadable TOML at %s: %s", path, exc)
        return None


def _write_toml(path: Path, payload: Mapping[str, Any]) -> None:
    """Write ``payload`` through a temporary file so readers never see half a file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    text = toml_dumps(payload)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf8", dir=path.parent, delete=False
        ) as handle:
            temp_path = Path(handle.name)
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Collection layout
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CollectionConfig:
    name: str
    path: str
    version: int
    section: str | None = None
    version_scope: str | None = None
    migration_key: str | None = None

    @property
    def per_record(self) -> bool:
        return "{key}" in self.path

    @property
    def per_guild(self) -> bool:
        return "{guild_id}" in self.path or "{guild_id}" in (self.version_scope or "")

    def _format(self, template: str, **values: str | None) -> str:
        mapping: dict[str, str] = {}
        for name, value in values.items():
            if "{" + name + "}" not in template:
                continue
            if value is None:
                raise ValueError(f"Collection {self.name!r} requires a {name}")
            mapping[name] = value
        return template.format(**mapping)

    def resolve_path(
        self, base: Path, *, guild_id: str | None = None, key: str | None = None
    ) -> Path:
        return base / self._format(self.path, guild_id=guild_id, key=key)

    def resolve_scope_path(self, base: Path, *, guild_id: str | None = None) -> Path:
        template = self.version_scope or str(Path(self.path).parent)
        return (base / self._format(template, guild_id=guild_id)).resolve()

    def record_directory(self, base: Path, *, guild_id: str | None = None) -> Path:
        if not self.per_record:
            raise ValueError(f"Collection {self.name!r} is a single document")
        return self.resolve_path(base, guild_id=guild_id, key="_").parent


def load_storage_config(path: Path) -> dict[str, CollectionConfig]:
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise RuntimeError(f"Missing storage configuration at {path}") from exc

    raw = payload.get("collections")
    if not isinstance(raw, Mapping):
        raise RuntimeError("storage configuration must define a [collections] table")

    collections: dict[str, CollectionConfig] = {}
    for name, options in raw.items():
        if not isinstance(options, Mapping):
            continue
        template = str(options.get("path", "")).strip()
        if not template:
            raise RuntimeError(f"Collection {name!r} is missing a path entry")
        section = options.get("section")
        scope = options.get("version_scope")
        collections[str(name)] = CollectionConfig(
            name=str(name),
            path=template,
            version=int(options.get("version", 0)),
            section=str(section) if section is not None else None,
            version_scope=str(scope) if scope is not None else None,
            migration_key=str(options.get("migration") or name),
        )
    return collections


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class MigrationModule:
    from_version: int
    to_version: int
    apply: Callable[["MigrationContext"], None]
    description: str


@dataclass(slots=True)
class MigrationContext:
    guild_id: str | None
    collection: CollectionConfig
    config: Mapping[str, CollectionConfig]
    base: Path
    scope_path: Path

    def log(self, message: str) -> None:
        log.info("[migration:%s] %s", self.collection.migration_key, message)


class MissingMigrationError(RuntimeError):
    pass


class VersionManager:
    """Bring each guild's stored collections up to the configured version."""

    def __init__(
        self,
        *,
        base: Path,
        collections: Mapping[str, CollectionConfig],
        migrations_base: Path,
    ) -> None:
        self._base = base
        self._collections = collections
        self._migrations_base = migrations_base
        self._versions: dict[tuple[str, str | None], int] = {}
        self._modules: dict[str, list[MigrationModule]] = {}

    def ensure(self, collection: CollectionConfig, guild_id: str | None) -> None:
        migration_key = collection.migration_key or collection.name
        scope = (migration_key, guild_id)
        current = self._versions.get(scope)
        if current is None:
            current = self._read_version(collection, guild_id)
            self._versions[scope] = current
        if current >= collection.version:
            return

        steps = {module.from_version: module for module in self._load(migration_key)}
        plan: list[MigrationModule] = []
        version = current
        while version < collection.version:
            step = steps.get(version)
            if step is None:
                raise MissingMigrationError(
                    f"No migration for {migration_key!r} from version {version} "
                    f"to {collection.version}"
                )
            plan.append(step)
            version = step.to_version

        scope_path = collection.resolve_scope_path(self._base, guild_id=guild_id)
        scope_path.mkdir(parents=True, exist_ok=True)
        context = MigrationContext(
            guild_id=guild_id,
            collection=collection,
            config=self._collections,
            base=self._base,
            scope_path=scope_path,
        )
        for step in plan:
            context.log(f"{step.from_version} -> {step.to_version}: {step.description}")
            step.apply(context)
        self._write_version(collection, guild_id, version)
        self._versions[scope] = version

    def _versions_file(self, collection: CollectionConfig, guild_id: str | None) -> Path:
        return collection.resolve_scope_path(self._base, guild_id=guild_id) / "schema_version.toml"

    def _read_version(self, collection: CollectionConfig, guild_id: str | None) -> int:
        payload = _read_toml(self._versions_file(collection, guild_id))
        if not isinstance(payload, Mapping):
            return 0
        recorded = payload.get("collections")
        if not isinstance(recorded, Mapping):
            return 0
        try:
            return int(recorded.get(collection.migration_key or collection.name, 0))
        except (TypeError, ValueError):
            return 0

    def _write_version(
        self, collection: CollectionConfig, guild_id: str | None, version: int
    ) -> None:
        path = self._versions_file(collection, guild_id)
        payload = _read_toml(path)
        if not isinstance(payload, MutableMapping):
            payload = {}
        recorded = payload.get("collections")
        if not isinstance(recorded, MutableMapping):
            recorded = payload["collections"] = {}
        recorded[collection.migration_key or collection.name] = int(version)
        _write_toml(path, payload)

    def _load(self, migration_key: str) -> list[MigrationModule]:
        cached = self._modules.get(migration_key)
        if cached is not None:
            return cached
        modules: list[MigrationModule] = []
        directory = self._migrations_base / migration_key
        for path in sorted(directory.glob("*.py")) if directory.is_dir() else ():
            if path.name.startswith("__"):
                continue
            spec = importlib.util.spec_from_file_location(
                f"migrations.{migration_key}.{path.stem}", path
            )
            if spec is None or spec.loader is None:
                continue
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            from_version = getattr(module, "FROM_VERSION", None)
            to_version = getattr(module, "TO_VERSION", None)
            apply = getattr(module, "apply", None)
            if not isinstance(from_version, int) or not isinstance(to_version, int):
                log.warning("Ignoring migration %s without version markers", path)
                continue
            if not callable(apply):
                log.warning("Ignoring migration %s without an apply()", path)
                continue
            modules.append(
                MigrationModule(
                    from_version=from_version,
                    to_version=to_version,
                    apply=apply,
                    description=str(getattr(module, "DESCRIPTION", path.stem)),
                )
            )
        modules.sort(key=lambda module: module.from_version)
        self._modules[migration_key] = modules
        return modules


# ---------------------------------------------------------------------------
# DataStore
# ---------------------------------------------------------------------------


class DataStore:
    """Asynchronous, lock-serialised access to the configured collections."""

    def __init__(
        self,
        *,
        package_root: Path | None = None,
        storage_root: Path | None = None,
    ) -> None:
        self._package_root = package_root or Path(__file__).resolve().parent.parent
        self._storage_root = storage_root or resolve_storage_root(self._package_root)
        self._collections = load_storage_config(
            self._package_root / "config" / "storage.toml"
        )
        self._versions = VersionManager(
            base=self._storage_root,
            collections=self._collections,
            migrations_base=self._package_root / "migrations",
        )

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    async def get(self, guild_id: int | str | None, collection: str) -> Mapping[str, Any]:
        async with _STORAGE_LOCK:
            config = self._collection(collection)
            return MappingProxyType(self._read(config, self._guild_key(guild_id, config)))

    async def get_many(
        self, guild_id: int | str | None, collections: Iterable[str]
    ) -> dict[str, Mapping[str, Any]]:
        async with _STORAGE_LOCK:
            result: dict[str, Mapping[str, Any]] = {}
            for name in dict.fromkeys(collections):
                config = self._collection(name)
                result[name] = MappingProxyType(
                    self._read(config, self._guild_key(guild_id, config))
                )
            return result

    async def get_record(
        self, guild_id: int | str | None, collection: str, key: str
    ) -> Optional[dict[str, Any]]:
        async with _STORAGE_LOCK:
            config = self._collection(collection)
            guild_key = self._guild_key(guild_id, config)
            if not config.per_record:
                value = self._read(config, guild_key).get(str(key))
                return deepcopy(value) if isinstance(value, Mapping) else None
            self._versions.ensure(config, guild_key)
            payload = _read_toml(self._record_path(config, guild_key, str(key)))
            return dict(payload) if isinstance(payload, MutableMapping) else None

    async def set(
        self, guild_id: int | str | None, collection: str, key: str, value: Any
    ) -> None:
        await self.bulk_set(guild_id, collection, [(key, value)])

    async def bulk_set(
        self,
        guild_id: int | str | None,
        collection: str,
        values: Iterable[tuple[str, Any]],
    ) -> None:
        async with _STORAGE_LOCK:
            config = self._collection(collection)
            guild_key = self._guild_key(guild_id, config)
            items = [(str(key), deepcopy(value)) for key, value in values]
            self._versions.ensure(config, guild_key)
            if config.per_record:
                for key, value in items:
                    _write_toml(self._record_path(config, guild_key, key), value)
                return
            document, section = self._load_document(config, guild_key)
            section.update(items)
            _write_toml(config.resolve_path(self._storage_root, guild_id=guild_key), document)

    async def delete(self, guild_id: int | str | None, collection: str, key: str) -> None:
        async with _STORAGE_LOCK:
            config = self._collection(collection)
            guild_key = self._guild_key(guild_id, config)
            self._versions.ensure(config, guild_key)
            if config.per_record:
                self._record_path(config, guild_key, str(key)).unlink(missing_ok=True)
                return
            document, section = self._load_document(config, guild_key)
            if section.pop(str(key), None) is not None:
                _write_toml(
                    config.resolve_path(self._storage_root, guild_id=guild_key), document
                )

    def _collection(self, name: str) -> CollectionConfig:
        try:
            return self._collections[name]
        except KeyError as exc:
            raise KeyError(f"Unknown collection: {name}") from exc

    @staticmethod
    def _guild_key(guild_id: int | str | None, config: CollectionConfig) -> str | None:
        if guild_id is None:
            if config.per_guild:
                raise ValueError(f"Collection {config.name!r} requires a guild id")
            return None
        return str(guild_id)

    def _read(self, config: CollectionConfig, guild_id: str | None) -> dict[str, Any]:
        self._versions.ensure(config, guild_id)
        if config.per_record:
            directory = config.record_directory(self._storage_root, guild_id=guild_id)
            records: dict[str, Any] = {}
            if directory.is_dir():
                for path in sorted(directory.glob("*.toml")):
                    payload = _read_toml(path)
                    if isinstance(payload, MutableMapping):
                        records[unquote(path.stem)] = payload
            return records
        _, section = self._load_document(config, guild_id)
        return dict(section)

    def _load_document(
        self, config: CollectionConfig, guild_id: str | None
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        payload = _read_toml(config.resolve_path(self._storage_root, guild_id=guild_id))
        if not isinstance(payload, MutableMapping):
            payload = {}
        if not config.section:
            return payload, payload
        section = payload.get(config.section)
        if not isinstance(section, MutableMapping):
            section = payload[config.section] = {}
        return payload, section

    def _record_path(self, config: CollectionConfig, guild_id: str | None, key: str) -> Path:
        directory = config.record_directory(self._storage_root, guild_id=guild_id)
        return directory / f"{quote(key, safe='')}.toml"


__all__ = [
    "CollectionConfig",
    "DataStore",
    "MissingMigrationError",
    "load_storage_config",
    "resolve_storage_root",
    "toml_dumps",
]
