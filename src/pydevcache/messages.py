"""Messages delivered by the refresh coordinator.

A consumer asking for ``(device, data_type)`` receives either a
:class:`CacheHit` or a :class:`CacheMiss` right away, and a
:class:`RefreshComplete` whenever a fetch (blocking or background)
finishes. Every message carries its key so consumers can drop messages
meant for a device they no longer display.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

T = TypeVar("T")


def decode_payload(data: Any, type_: type[T]) -> T:
    """Validate a cached or freshly fetched payload into *type_*.

    Cached payloads come back as plain JSON values; fetched payloads are
    whatever the fetch function returned. Both validate the same way.
    """
    return TypeAdapter(type_).validate_python(data)


class CacheHit(BaseModel):
    """A cached entry exists (fresh or stale).

    ``needs_refresh`` is set once the entry is past half of its TTL,
    including entries that have already hard-expired.
    """

    model_config = ConfigDict(frozen=True)

    device: str
    data_type: str
    data: Any = None
    cached_at: datetime
    needs_refresh: bool = False

    def decode(self, type_: type[T]) -> T:
        return decode_payload(self.data, type_)


class CacheMiss(BaseModel):
    """No usable cached entry; the consumer should fetch and cache."""

    model_config = ConfigDict(frozen=True)

    device: str
    data_type: str


class RefreshComplete(BaseModel):
    """A fetch finished.

    On success ``data`` holds the fetched payload and ``cached_at`` the
    write time (``None`` when the write-back failed or caching is off). On
    failure ``error`` holds the exception raised by the fetch function.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    device: str
    data_type: str
    data: Any = None
    cached_at: datetime | None = None
    error: BaseException | None = Field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    def decode(self, type_: type[T]) -> T:
        return decode_payload(self.data, type_)


CacheMessage = CacheHit | CacheMiss | RefreshComplete
