from __future__ import annotations

from pathlib import Path

import sys
import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from tactical.storage import CollectionConfig, load_storage_config, resolve_storage_root


def test_resolve_storage_root_prefers_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    override = tmp_path / "custom"
    monkeypatch.setenv("TACTICAL_DATA_ROOT", str(override))
    monkeypatch.delenv("TACTICAL_STORAGE_ROOT", raising=False)

    result = resolve_storage_root(Path("/ignored/base"))

    assert result == override.resolve()


def test_resolve_storage_root_accepts_storage_alias(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("TACTICAL_DATA_ROOT", raising=False)
    monkeypatch.setenv("TACTICAL_STORAGE_ROOT", str(tmp_path / "alias"))

    assert resolve_storage_root(Path("/ignored/base")) == (tmp_path / "alias").resolve()


def test_resolve_storage_root_handles_site_packages(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("TACTICAL_DATA_ROOT", raising=False)
    monkeypatch.delenv("TACTICAL_STORAGE_ROOT", raising=False)
    package_root = tmp_path / "lib" / "python3.12" / "site-packages" / "tactical"
    package_root.mkdir(parents=True)

    working_dir = tmp_path / "runtime"
    working_dir.mkdir()
    monkeypatch.chdir(working_dir)

    result = resolve_storage_root(package_root)

    assert result == working_dir.resolve()


def test_resolve_storage_root_defaults_to_package_root(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("TACTICAL_DATA_ROOT", raising=False)
    monkeypatch.delenv("TACTICAL_STORAGE_ROOT", raising=False)
    package_root = tmp_path / "tactical"
    package_root.mkdir()

    result = resolve_storage_root(package_root)

    assert result == package_root


def test_collection_paths_follow_layout(tmp_path: Path) -> None:
    collections = load_storage_config(PROJECT_BASE / "config" / "storage.toml")

    assets = collections["assets"]
    settings = collections["settings"]

    assert assets.per_record and not settings.per_record
    assert assets.resolve_path(tmp_path, guild_id="7", key="a1") == (
        tmp_path / "data" / "guilds" / "7" / "assets" / "a1.toml"
    )
    assert settings.section == "settings"
    assert settings.resolve_scope_path(tmp_path, guild_id="7") == (
        tmp_path / "data" / "guilds" / "7"
    ).resolve()
    assert {config.migration_key for config in collections.values()} == {"campaign"}


def test_collection_requires_guild_for_scoped_paths(tmp_path: Path) -> None:
    config = CollectionConfig(name="pois", path="data/guilds/{guild_id}/pois/{key}.toml", version=1)

    with pytest.raises(ValueError):
        config.resolve_path(tmp_path, key="p1")
    with pytest.raises(ValueError):
        CollectionConfig(name="folders", path="folders.toml", version=1).record_directory(tmp_path)
