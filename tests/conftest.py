from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from fsspec.implementations.memory import MemoryFileSystem

from pydevcache.store import FileCache


class FakeClock:
    """Manually advanced clock for deterministic expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memfs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def root() -> str:
    # MemoryFileSystem state is process-wide; give every test its own root.
    return f"/cache-{uuid.uuid4().hex}"


@pytest.fixture
def cache(memfs: MemoryFileSystem, root: str, clock: FakeClock) -> FileCache:
    return FileCache(root, fs=memfs, clock=clock)
