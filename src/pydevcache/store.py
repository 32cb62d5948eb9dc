"""File-backed device data cache.

The filesystem is the only source of truth: there is no in-memory index,
and every operation touches disk. Layout under the cache root::

    <root>/<data_type>/<sanitized device>.json        one entry
    <root>/<data_type>/<sanitized device>.json.tmp    in-flight write
    <root>/meta.json                                  cleanup watermark

Entries are written atomically (temp file + rename), so readers never see
a partially written file. Corrupt or version-mismatched entries are
deleted when read.
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

from fsspec import AbstractFileSystem
from fsspec.implementations.local import LocalFileSystem

from pydevcache._codec import decode_entry, decode_meta, encode_entry, encode_meta, encode_payload
from pydevcache._rwlock import RWLock
from pydevcache.exceptions import CacheCleanupError, CacheIOError
from pydevcache.models import Entry, Meta, Stats, ensure_utc

_logger = logging.getLogger(__name__)

#: Cache format version. Increment when the envelope changes to invalidate old caches.
CURRENT_VERSION = 1

META_FILENAME = "meta.json"
ENTRY_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"

#: Temp files older than this are treated as left behind by a crashed writer.
DEFAULT_ORPHAN_TEMP_MAX_AGE = timedelta(hours=1)

_UNSAFE_FILENAME_CHARS = str.maketrans({ch: "_" for ch in '/\\:*?"<>|'})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def sanitize_filename(name: str) -> str:
    """Replace ``/ \\ : * ? " < > |`` with ``_``; everything else is kept as-is."""
    return name.translate(_UNSAFE_FILENAME_CHARS)


class FileCache:
    """Durable ``(device, data_type)`` key-value cache with TTL expiry.

    Thread-safe: reads (``get``, ``get_with_expired``, ``stats``,
    ``read_meta``) share a lock; mutations take it exclusively. The lock is
    per instance, not per key.

    Parameters
    ----------
    base_path : str or os.PathLike
        Cache root. Created (with parents) if missing.
    fs : fsspec.AbstractFileSystem, optional
        Filesystem to store entries on. Defaults to the local disk; tests
        pass ``MemoryFileSystem``.
    clock : callable, optional
        Returns the current aware datetime.
    orphan_temp_max_age : timedelta
        Age after which :meth:`cleanup` removes temp files left behind by
        interrupted writes.
    """

    def __init__(
        self,
        base_path: str | os.PathLike[str],
        *,
        fs: AbstractFileSystem | None = None,
        clock: Callable[[], datetime] = _utcnow,
        orphan_temp_max_age: timedelta = DEFAULT_ORPHAN_TEMP_MAX_AGE,
    ) -> None:
        self._fs = fs if fs is not None else LocalFileSystem()
        root = self._fs._strip_protocol(os.fspath(base_path))
        if len(root) > 1:
            root = root.rstrip("/")
        self._root = root
        self._clock = clock
        self._orphan_temp_max_age = orphan_temp_max_age
        self._lock = RWLock()

        try:
            self._fs.makedirs(self._root, exist_ok=True)
        except OSError as exc:
            raise CacheIOError(
                f"failed to create cache directory {self._root}: {exc}",
                path=self._root,
                operation="mkdir",
            ) from exc

    @property
    def path(self) -> str:
        """Base cache directory."""
        return self._root

    def now(self) -> datetime:
        """Current time according to the cache's clock."""
        return self._clock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, device: str, data_type: str) -> Entry | None:
        """Return the entry if present and not expired.

        Missing, expired, corrupt and version-mismatched entries are all
        ``None``; the last two are also deleted. Only filesystem failures
        raise (:class:`CacheIOError`).
        """
        with self._lock.read():
            return self._read_entry(device, data_type, include_expired=False)

    def get_with_expired(self, device: str, data_type: str) -> Entry | None:
        """Like :meth:`get` but also returns expired entries.

        Used to show stale data while a refresh is in progress.
        """
        with self._lock.read():
            return self._read_entry(device, data_type, include_expired=True)

    def _read_entry(self, device: str, data_type: str, *, include_expired: bool) -> Entry | None:
        path = self._entry_path(device, data_type)
        try:
            raw = self._fs.cat_file(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheIOError(f"failed to read cache file: {exc}", path=path, operation="read") from exc

        try:
            entry = decode_entry(raw)
        except ValueError:
            self._discard(path, "corrupt")
            return None

        if entry.version != CURRENT_VERSION:
            self._discard(path, f"version {entry.version}")
            return None

        if not include_expired and entry.is_expired(self._clock()):
            return None
        return entry

    def _discard(self, path: str, reason: str) -> None:
        """Best-effort removal of an unusable entry file."""
        _logger.debug("Removing %s cache file %s", reason, path)
        try:
            self._fs.rm_file(path)
        except FileNotFoundError:
            pass
        except OSError:
            _logger.debug("Failed to remove %s cache file %s", reason, path, exc_info=True)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, device: str, data_type: str, data: Any, ttl: timedelta) -> Entry:
        """Store *data* for ``(device, data_type)`` for *ttl*, replacing any previous entry."""
        return self.set_with_id(device, "", data_type, data, ttl)

    def set_with_id(self, device: str, device_id: str, data_type: str, data: Any, ttl: timedelta) -> Entry:
        """Store *data* together with a stable device identifier.

        The identifier helps recognise cached data after a device rename.
        Returns the entry as written. Raises :class:`CacheEncodeError` before
        touching the filesystem when *data* is not JSON-serializable.
        """
        payload = encode_payload(data)
        now = self._clock()
        entry = Entry(
            version=CURRENT_VERSION,
            device=device,
            device_id=device_id,
            data_type=data_type,
            cached_at=now,
            expires_at=now + ttl,
            data=payload,
        )
        raw = encode_entry(entry)
        path = self._entry_path(device, data_type)
        with self._lock.write():
            self._atomic_write(path, raw)
        return entry

    def _atomic_write(self, path: str, raw: bytes) -> None:
        """Write *raw* to ``<path>.tmp`` and rename it over *path*.

        On a failed rename the previous file is left untouched and the temp
        file is removed on a best-effort basis.
        """
        parent = posixpath.dirname(path)
        try:
            self._fs.makedirs(parent, exist_ok=True)
        except OSError as exc:
            raise CacheIOError(
                f"failed to create cache directory: {exc}", path=parent, operation="mkdir"
            ) from exc

        tmp_path = path + TEMP_SUFFIX
        try:
            self._fs.pipe_file(tmp_path, raw)
        except OSError as exc:
            raise CacheIOError(f"failed to write cache file: {exc}", path=tmp_path, operation="write") from exc

        try:
            self._fs.mv(tmp_path, path)
        except OSError as exc:
            try:
                self._fs.rm_file(tmp_path)
            except OSError:
                _logger.debug("Failed to remove temp cache file %s", tmp_path, exc_info=True)
            raise CacheIOError(f"failed to rename cache file: {exc}", path=path, operation="rename") from exc

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, device: str, data_type: str) -> None:
        """Remove one entry. An already-absent entry is not an error."""
        path = self._entry_path(device, data_type)
        with self._lock.write():
            self._remove(path, operation="invalidate")

    def invalidate_device(self, device: str) -> None:
        """Remove every entry whose stored ``device`` field equals *device*.

        Matching uses the decoded field rather than the file name, so two
        device names that sanitize to the same file name are told apart.
        """
        with self._lock.write():
            for path, entry in self._iter_entries():
                if entry.device == device:
                    self._remove(path, operation="invalidate_device")

    def invalidate_all(self) -> None:
        """Remove everything under the cache root, keeping the root itself."""
        with self._lock.write():
            try:
                children = self._fs.ls(self._root, detail=False)
            except FileNotFoundError:
                return
            except OSError as exc:
                raise CacheIOError(
                    f"failed to read cache directory: {exc}", path=self._root, operation="invalidate_all"
                ) from exc

            for child in children:
                child = child.rstrip("/")
                if child == self._root:
                    continue
                try:
                    self._fs.rm(child, recursive=True)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise CacheIOError(
                        f"failed to remove {child}: {exc}", path=child, operation="invalidate_all"
                    ) from exc

    def _remove(self, path: str, *, operation: str) -> None:
        try:
            self._fs.rm_file(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheIOError(f"failed to remove cache file: {exc}", path=path, operation=operation) from exc

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def stats(self) -> Stats:
        """Compute statistics by walking every entry file.

        Unreadable, corrupt and un-stat-able files are skipped silently.
        """
        with self._lock.read():
            now = self._clock()
            stats = Stats()
            devices: set[str] = set()

            for path, entry in self._iter_entries():
                try:
                    size = int(self._fs.info(path)["size"])
                except (OSError, KeyError, TypeError, ValueError):
                    continue

                stats.total_entries += 1
                stats.total_size_bytes += size
                stats.type_counts[entry.data_type] = stats.type_counts.get(entry.data_type, 0) + 1
                devices.add(entry.device)

                if entry.is_expired(now):
                    stats.expired_entries += 1
                if stats.oldest_entry is None or entry.cached_at < stats.oldest_entry:
                    stats.oldest_entry = entry.cached_at
                if stats.newest_entry is None or entry.cached_at > stats.newest_entry:
                    stats.newest_entry = entry.cached_at

            stats.device_count = len(devices)
            return stats

    def _iter_entries(self) -> Iterator[tuple[str, Entry]]:
        """Yield ``(path, entry)`` for every decodable entry file under the root.

        Skips the meta file, temp files, non-JSON files, and anything that
        cannot be read or decoded. Callers must hold the lock.
        """
        for path in self._fs.find(self._root):
            if not path.endswith(ENTRY_SUFFIX) or path.endswith(TEMP_SUFFIX + ENTRY_SUFFIX):
                continue
            if self._is_meta(path):
                continue
            try:
                raw = self._fs.cat_file(path)
            except OSError:
                continue
            try:
                entry = decode_entry(raw)
            except ValueError:
                continue
            yield path, entry

    def _is_meta(self, path: str) -> bool:
        return path == self._meta_path()

    def _entry_path(self, device: str, data_type: str) -> str:
        return posixpath.join(self._root, data_type, sanitize_filename(device) + ENTRY_SUFFIX)

    def _meta_path(self) -> str:
        return posixpath.join(self._root, META_FILENAME)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were removed.

        A removal failure aborts the sweep with :class:`CacheCleanupError`;
        entries removed before it stay removed. Temp files older than the
        orphan threshold are swept as well (best effort, not counted).
        """
        with self._lock.write():
            now = self._clock()
            removed = 0
            for path, entry in self._iter_entries():
                if not entry.is_expired(now):
                    continue
                try:
                    self._fs.rm_file(path)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    raise CacheCleanupError(
                        f"failed to remove expired cache file {path}: {exc}", path=path, removed=removed
                    ) from exc
                removed += 1

            self._sweep_orphan_temps(now)
            return removed

    def _sweep_orphan_temps(self, now: datetime) -> None:
        suffix = ENTRY_SUFFIX + TEMP_SUFFIX
        for path in self._fs.find(self._root):
            if not path.endswith(suffix):
                continue
            try:
                modified = ensure_utc(self._fs.modified(path))
            except (OSError, NotImplementedError):
                continue
            if now - modified <= self._orphan_temp_max_age:
                continue
            try:
                self._fs.rm_file(path)
            except FileNotFoundError:
                continue
            except OSError:
                _logger.debug("Failed to remove orphaned temp file %s", path, exc_info=True)
                continue
            _logger.debug("Removed orphaned temp file %s", path)

    def read_meta(self) -> Meta:
        """Load ``meta.json``.

        A missing or corrupt file yields a fresh record (cleanup never ran).
        Other read failures raise :class:`CacheIOError`.
        """
        path = self._meta_path()
        with self._lock.read():
            try:
                raw = self._fs.cat_file(path)
            except FileNotFoundError:
                return Meta(version=CURRENT_VERSION)
            except OSError as exc:
                raise CacheIOError(f"failed to read meta file: {exc}", path=path, operation="read_meta") from exc

        try:
            return decode_meta(raw)
        except ValueError:
            _logger.debug("Ignoring corrupt cache meta file %s", path)
            return Meta(version=CURRENT_VERSION)

    def write_meta(self, meta: Meta) -> None:
        raw = encode_meta(meta)
        with self._lock.write():
            self._atomic_write(self._meta_path(), raw)

    def cleanup_if_needed(self, interval: timedelta) -> int:
        """Run :meth:`cleanup` unless one ran less than *interval* ago.

        Returns 0 when skipped. The watermark is persisted on a best-effort
        basis: failing to write it does not fail the call.
        """
        try:
            meta = self.read_meta()
        except CacheIOError:
            _logger.debug("Reading cache meta failed; running cleanup anyway", exc_info=True)
            meta = Meta(version=CURRENT_VERSION)

        if self._clock() - meta.last_cleanup < interval:
            return 0

        removed = self.cleanup()
        try:
            self.write_meta(Meta(version=CURRENT_VERSION, last_cleanup=self._clock()))
        except CacheIOError:
            _logger.debug("Writing cache meta failed", exc_info=True)
        return removed
