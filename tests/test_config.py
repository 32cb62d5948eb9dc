from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest
from fsspec.implementations.memory import MemoryFileSystem

from pydevcache.config import CacheConfig, default_cache_dir
from pydevcache.data_types import DEFAULT_TTLS, TTL_DEFAULT, DataType, ttl_for
from pydevcache.exceptions import CacheConfigError
from pydevcache.factory import open_cache

_ENV_VARS = (
    "PYDEVCACHE_DIR",
    "PYDEVCACHE_ENABLED",
    "PYDEVCACHE_CLEANUP_INTERVAL",
    "PYDEVCACHE_ORPHAN_TEMP_MAX_AGE",
)


class _MkdirFailingFS(MemoryFileSystem):
    cachable = False

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        raise PermissionError(13, "mkdir denied", path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

    config = CacheConfig.from_env()

    assert config.cache_dir == tmp_path / "pydevcache"
    assert config.enabled is True
    assert config.cleanup_interval == timedelta(hours=24)
    assert config.orphan_temp_max_age == timedelta(hours=1)


def test_default_cache_dir_without_xdg(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("XDG_CACHE_HOME", raising=False)

    assert default_cache_dir() == Path.home() / ".cache" / "pydevcache"


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PYDEVCACHE_DIR", str(tmp_path / "devcache"))
    monkeypatch.setenv("PYDEVCACHE_ENABLED", "off")
    monkeypatch.setenv("PYDEVCACHE_CLEANUP_INTERVAL", "3600")
    monkeypatch.setenv("PYDEVCACHE_ORPHAN_TEMP_MAX_AGE", "90")

    config = CacheConfig.from_env()

    assert config.cache_dir == tmp_path / "devcache"
    assert config.enabled is False
    assert config.cleanup_interval == timedelta(hours=1)
    assert config.orphan_temp_max_age == timedelta(seconds=90)


def test_from_env_keyword_overrides_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PYDEVCACHE_DIR", "/somewhere/else")
    monkeypatch.setenv("PYDEVCACHE_ENABLED", "0")

    config = CacheConfig.from_env(cache_dir=str(tmp_path), enabled=True)

    assert config.cache_dir == tmp_path
    assert config.enabled is True


@pytest.mark.parametrize("value", ["soon", "-5"])
def test_from_env_rejects_bad_intervals(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("PYDEVCACHE_CLEANUP_INTERVAL", value)

    with pytest.raises(CacheConfigError, match="PYDEVCACHE_CLEANUP_INTERVAL"):
        CacheConfig.from_env()


def test_ttl_table_and_overrides() -> None:
    assert set(DEFAULT_TTLS) == set(DataType)
    assert ttl_for(DataType.DEVICE_INFO) == timedelta(hours=24)
    assert ttl_for(DataType.SCHEDULES) == timedelta(minutes=5)
    assert ttl_for(DataType.INPUTS) == timedelta(minutes=10)
    assert ttl_for("protocols/mqtt") == timedelta(hours=1)
    assert ttl_for("something/new") == TTL_DEFAULT

    config = CacheConfig(ttl_overrides={"wifi": 60})
    assert config.ttl(DataType.WIFI) == timedelta(minutes=1)
    assert config.ttl(DataType.CLOUD) == timedelta(minutes=30)


def test_open_cache_disabled_returns_none() -> None:
    assert open_cache(CacheConfig(enabled=False)) is None


def test_open_cache_unusable_directory_returns_none(root: str) -> None:
    assert open_cache(CacheConfig(cache_dir=Path(root)), fs=_MkdirFailingFS()) is None


def test_open_cache_runs_throttled_cleanup(memfs: MemoryFileSystem, root: str) -> None:
    memfs.makedirs(f"{root}/wifi", exist_ok=True)
    memfs.pipe_file(
        f"{root}/wifi/kitchen.json",
        json.dumps(
            {
                "version": 1,
                "device": "kitchen",
                "data_type": "wifi",
                "cached_at": "2020-01-01T00:00:00Z",
                "expires_at": "2020-01-01T00:30:00Z",
                "data": {},
            }
        ).encode(),
    )

    cache = open_cache(CacheConfig(cache_dir=Path(root)), fs=memfs)

    assert cache is not None
    assert cache.path == root
    assert not memfs.exists(f"{root}/wifi/kitchen.json")
    assert cache.read_meta().last_cleanup.year >= 2026
