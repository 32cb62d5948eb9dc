"""pydevcache - File-backed stale-while-revalidate cache for networked device data."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pydevcache")
except PackageNotFoundError:
    __version__ = "0+local"
from pydevcache.config import CacheConfig, default_cache_dir
from pydevcache.coordinator import RefreshCoordinator
from pydevcache.data_types import DEFAULT_TTLS, DataType, ttl_for
from pydevcache.exceptions import (
    CacheCleanupError,
    CacheConfigError,
    CacheEncodeError,
    CacheIOError,
    DeviceCacheError,
    DeviceFetchError,
)
from pydevcache.factory import open_cache
from pydevcache.messages import CacheHit, CacheMessage, CacheMiss, RefreshComplete, decode_payload
from pydevcache.models import Entry, Meta, Stats
from pydevcache.store import CURRENT_VERSION, FileCache, sanitize_filename

__all__ = [
    "__version__",
    "CURRENT_VERSION",
    "CacheCleanupError",
    "CacheConfig",
    "CacheConfigError",
    "CacheEncodeError",
    "CacheHit",
    "CacheIOError",
    "CacheMessage",
    "CacheMiss",
    "DEFAULT_TTLS",
    "DataType",
    "DeviceCacheError",
    "DeviceFetchError",
    "Entry",
    "FileCache",
    "Meta",
    "RefreshComplete",
    "RefreshCoordinator",
    "Stats",
    "decode_payload",
    "default_cache_dir",
    "open_cache",
    "sanitize_filename",
    "ttl_for",
]
