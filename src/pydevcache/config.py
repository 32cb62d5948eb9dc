"""Cache configuration for pydevcache."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydevcache.data_types import ttl_for
from pydevcache.exceptions import CacheConfigError
from pydevcache.store import DEFAULT_ORPHAN_TEMP_MAX_AGE

APP_DIR_NAME = "pydevcache"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_seconds(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise CacheConfigError(f"{key} must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise CacheConfigError(f"{key} must not be negative, got {raw!r}")
    return value


def default_cache_dir() -> Path:
    """``$XDG_CACHE_HOME/pydevcache``, falling back to ``~/.cache/pydevcache``."""
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / APP_DIR_NAME


@dataclasses.dataclass(frozen=True)
class CacheConfig:
    """Cache configuration.

    Parameters
    ----------
    cache_dir : Path
        Cache root directory.
    enabled : bool
        When false, :func:`pydevcache.factory.open_cache` returns ``None``
        and consumers run uncached.
    cleanup_interval_seconds : float
        Minimum time between expired-entry sweeps. Defaults to 24 hours.
    orphan_temp_max_age_seconds : float
        Age after which interrupted-write temp files are swept.
    ttl_overrides : Mapping[str, float]
        Per data type TTLs in seconds, overriding the built-in table.
    """

    cache_dir: Path = dataclasses.field(default_factory=default_cache_dir)
    enabled: bool = True
    cleanup_interval_seconds: float = 24 * 3600
    orphan_temp_max_age_seconds: float = DEFAULT_ORPHAN_TEMP_MAX_AGE.total_seconds()
    ttl_overrides: Mapping[str, float] = dataclasses.field(default_factory=dict)

    @property
    def cleanup_interval(self) -> timedelta:
        return timedelta(seconds=self.cleanup_interval_seconds)

    @property
    def orphan_temp_max_age(self) -> timedelta:
        return timedelta(seconds=self.orphan_temp_max_age_seconds)

    def ttl(self, data_type: str) -> timedelta:
        """TTL for *data_type*, honouring :attr:`ttl_overrides`."""
        return ttl_for(data_type, self.ttl_overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> CacheConfig:
        """Create configuration from ``PYDEVCACHE_*`` environment variables.

        Explicit keyword arguments override environment values. Invalid
        numeric values raise :class:`CacheConfigError`.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        cache_dir = env.get("PYDEVCACHE_DIR")
        if cache_dir:
            config_kwargs["cache_dir"] = Path(cache_dir).expanduser()

        if "enabled" not in overrides:
            config_kwargs["enabled"] = _env_bool(env.get("PYDEVCACHE_ENABLED"), True)

        interval = _env_seconds(env, "PYDEVCACHE_CLEANUP_INTERVAL")
        if interval is not None:
            config_kwargs["cleanup_interval_seconds"] = interval

        orphan_age = _env_seconds(env, "PYDEVCACHE_ORPHAN_TEMP_MAX_AGE")
        if orphan_age is not None:
            config_kwargs["orphan_temp_max_age_seconds"] = orphan_age

        if "cache_dir" in overrides and not isinstance(overrides["cache_dir"], Path):
            overrides["cache_dir"] = Path(overrides["cache_dir"]).expanduser()

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
