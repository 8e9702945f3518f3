"""Shared test fixtures."""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from workshop_jobs.core.cache import LocalCache  # noqa: E402
from workshop_jobs.core.lifecycle import JobLifecycle  # noqa: E402
from workshop_jobs.core.state import AppState  # noqa: E402
from workshop_jobs.store.base import StoreError  # noqa: E402
from workshop_jobs.store.connection import DatabaseConnection  # noqa: E402
from workshop_jobs.store.schema import initialize_store  # noqa: E402
from workshop_jobs.store.sqlite_store import SqliteStore  # noqa: E402


class FakeClock:
    """Deterministic clock; call it like ``utc_now``."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.now += timedelta(minutes=minutes, seconds=seconds)


class FlakyStore(SqliteStore):
    """SqliteStore whose calls can be made to fail per (method, target)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures: set[tuple[str, str]] = set()

    def _maybe_fail(self, method: str, target: str):
        if (method, target) in self.failures:
            raise StoreError(f"{method} on {target} failed", target)

    def select(self, collection):
        self._maybe_fail("select", collection)
        return super().select(collection)

    def update(self, collection, patch, match):
        self._maybe_fail("update", collection)
        return super().update(collection, patch, match)

    def delete(self, collection, match):
        self._maybe_fail("delete", collection)
        return super().delete(collection, match)

    def remove(self, bucket, paths):
        self._maybe_fail("remove", bucket)
        return super().remove(bucket, paths)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def db(tmp_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(tmp_path / "test.db")
    initialize_store(conn)
    return conn


@pytest.fixture
def store(db, tmp_path):
    return FlakyStore(db, tmp_path / "storage")


@pytest.fixture
def cache(store):
    return LocalCache(store)


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def lifecycle(store, cache, clock):
    return JobLifecycle(store, cache, clock, require_odometer=True)


@pytest.fixture
def job(lifecycle):
    """An open job with an odometer reading, ready to be closed."""
    created = lifecycle.create_job(
        "Service", customer="Anna Muster", vehicle="VW Golf", plate="zh 123"
    )
    lifecycle.save_job_meta(created.id, odometer_km=120500)
    return lifecycle.cache.job(created.id)
