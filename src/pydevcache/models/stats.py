"""Derived cache statistics."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pydevcache.models._base import CacheBaseModel


class Stats(CacheBaseModel):
    """Read-only snapshot computed by a full enumeration of the cache root.

    ``oldest_entry`` and ``newest_entry`` are ``None`` for an empty cache.
    ``total_size_bytes`` is the sum of on-disk file sizes, not payload sizes.
    """

    total_entries: int = 0
    total_size_bytes: int = 0
    expired_entries: int = 0
    device_count: int = 0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    type_counts: dict[str, int] = Field(default_factory=dict)
