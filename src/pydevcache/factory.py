"""Cache construction for applications."""

from __future__ import annotations

import logging

from fsspec import AbstractFileSystem

from pydevcache.config import CacheConfig
from pydevcache.exceptions import DeviceCacheError
from pydevcache.store import FileCache

_logger = logging.getLogger(__name__)


def open_cache(config: CacheConfig | None = None, *, fs: AbstractFileSystem | None = None) -> FileCache | None:
    """Open the file cache described by *config* and run a throttled cleanup.

    Returns ``None`` when caching is disabled or the cache directory cannot
    be created; applications then run without a cache. Cleanup failures
    are logged and never prevent the cache from being returned.
    """
    config = config or CacheConfig.from_env()
    if not config.enabled:
        _logger.debug("File cache disabled by configuration")
        return None

    try:
        cache = FileCache(config.cache_dir, fs=fs, orphan_temp_max_age=config.orphan_temp_max_age)
    except DeviceCacheError:
        _logger.debug("Initializing file cache at %s failed", config.cache_dir, exc_info=True)
        return None

    try:
        removed = cache.cleanup_if_needed(config.cleanup_interval)
    except DeviceCacheError:
        _logger.debug("Cache cleanup failed", exc_info=True)
    else:
        if removed:
            _logger.debug("Cache cleanup removed %d expired entries", removed)
    return cache
