"""Custom exception hierarchy for pydevcache."""

from __future__ import annotations


class DeviceCacheError(Exception):
    """Base exception for all pydevcache errors."""


class CacheConfigError(DeviceCacheError):
    """Invalid or missing configuration."""


class CacheIOError(DeviceCacheError):
    """Filesystem failure other than "does not exist".

    Missing files are never errors for reads and deletes; they are cache
    misses. Everything else (permission denied, disk unavailable, a failed
    rename) is surfaced through this exception, chained from the original
    :class:`OSError`.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        operation: str = "",
    ) -> None:
        self.path = path
        self.operation = operation
        super().__init__(message)


class CacheCleanupError(CacheIOError):
    """A cleanup sweep was aborted by a removal failure.

    Entries removed before the failure stay removed; ``removed`` reports
    how many there were.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        removed: int = 0,
    ) -> None:
        self.removed = removed
        super().__init__(message, path=path, operation="cleanup")


class CacheEncodeError(DeviceCacheError):
    """Payload could not be serialized to JSON.

    Raised before any filesystem mutation takes place.
    """


class DeviceFetchError(DeviceCacheError):
    """A device fetch helper failed (network, non-200, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        device: str = "",
        method: str = "",
        status_code: int | None = None,
    ) -> None:
        self.device = device
        self.method = method
        self.status_code = status_code
        super().__init__(message)
