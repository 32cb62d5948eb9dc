"""Persisted and derived cache records."""

from pydevcache.models._base import ZERO_TIME, CacheBaseModel, CacheTimestamp, ensure_utc
from pydevcache.models.entry import Entry
from pydevcache.models.meta import Meta
from pydevcache.models.stats import Stats

__all__ = [
    "CacheBaseModel",
    "CacheTimestamp",
    "Entry",
    "Meta",
    "Stats",
    "ZERO_TIME",
    "ensure_utc",
]
