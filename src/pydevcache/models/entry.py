"""Cached entry envelope."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from pydantic import Field, StrictInt, TypeAdapter

from pydevcache import policy
from pydevcache.models._base import CacheBaseModel, CacheTimestamp

T = TypeVar("T")


class Entry(CacheBaseModel):
    """One cached ``(device, data_type)`` record.

    Parameters
    ----------
    version : int
        Format version written by the producer. Any value other than the
        store's current version invalidates the entry.
    device : str
        Device name used in the cache key.
    device_id : str
        Stable device identifier that survives renames. Omitted from the
        persisted JSON when empty.
    data_type : str
        Data type half of the cache key.
    cached_at, expires_at : datetime
        Write time and expiry instant. ``expires_at - cached_at`` is the TTL.
    data : Any
        The payload as an already JSON-encoded value. The store never
        looks inside it.
    """

    version: StrictInt
    device: str
    device_id: str = ""
    data_type: str
    cached_at: CacheTimestamp
    expires_at: CacheTimestamp
    data: Any = Field(default=None)

    def age(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the entry was cached."""
        return policy.age(now or datetime.now(UTC), self.cached_at)

    @property
    def ttl(self) -> timedelta:
        """Total lifetime fixed at write time."""
        return policy.ttl(self.cached_at, self.expires_at)

    def is_expired(self, now: datetime | None = None) -> bool:
        return policy.is_expired(now or datetime.now(UTC), self.expires_at)

    def needs_refresh(self, now: datetime | None = None) -> bool:
        """Whether the entry is past half of its TTL and should be refreshed in the background."""
        return policy.needs_refresh(now or datetime.now(UTC), self.cached_at, self.expires_at)

    def decode(self, type_: type[T]) -> T:
        """Validate the payload into *type_* (a pydantic model, dataclass, or typing construct)."""
        return TypeAdapter(type_).validate_python(self.data)
