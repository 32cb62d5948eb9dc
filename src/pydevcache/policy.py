"""Expiry policy.

Pure time arithmetic over an entry's two timestamps. The TTL is never
stored separately: it is ``expires_at - cached_at`` as fixed at write time.
"""

from __future__ import annotations

from datetime import datetime, timedelta

#: Fraction of the TTL after which an entry should be refreshed in the background.
REFRESH_THRESHOLD = 0.5


def age(now: datetime, cached_at: datetime) -> timedelta:
    return now - cached_at


def ttl(cached_at: datetime, expires_at: datetime) -> timedelta:
    return expires_at - cached_at


def is_expired(now: datetime, expires_at: datetime) -> bool:
    """An entry is expired strictly after its expiry instant."""
    return now > expires_at


def needs_refresh(now: datetime, cached_at: datetime, expires_at: datetime) -> bool:
    """Return True once more than half of the entry's lifetime has elapsed.

    Independent of :func:`is_expired`: a hard-expired entry is always past
    the threshold and therefore also needs a refresh.
    """
    return age(now, cached_at) > ttl(cached_at, expires_at) * REFRESH_THRESHOLD
