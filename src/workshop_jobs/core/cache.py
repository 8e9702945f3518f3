"""LocalCache — in-memory snapshot of every store collection.

The cache is never patched: after each mutation the whole snapshot is
fetched again and swapped in with a single assignment, so readers see
either the old data or the new data, never a mix.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional

from workshop_jobs.store.base import (
    ENTRIES,
    ITEMS,
    JOBS,
    PHOTOS,
    SIGNATURES,
    RemoteStore,
    StoreError,
)
from workshop_jobs.store.models import (
    JOB_DONE,
    JOB_OPEN,
    Item,
    Job,
    Photo,
    Signature,
    TimeEntry,
)

logger = logging.getLogger(__name__)

# A failure loading any of these aborts the reload
MANDATORY_COLLECTIONS = (JOBS, ENTRIES, SIGNATURES)
# These may be missing on a partially provisioned store
OPTIONAL_COLLECTIONS = (ITEMS, PHOTOS)


@dataclass(frozen=True)
class JobStats:
    total: int = 0
    open: int = 0
    done: int = 0
    running: int = 0


@dataclass(frozen=True)
class Snapshot:
    jobs: tuple = ()
    entries: tuple = ()
    signatures: tuple = ()
    items: tuple = ()
    photos: tuple = ()
    stats: JobStats = field(default_factory=JobStats)


def compute_stats(jobs, entries) -> JobStats:
    return JobStats(
        total=len(jobs),
        open=sum(1 for j in jobs if j.status == JOB_OPEN),
        done=sum(1 for j in jobs if j.status == JOB_DONE),
        running=sum(1 for e in entries if e.is_running),
    )


class LocalCache:
    """Owns the snapshot; rebuilt wholesale by ``reload_all``."""

    def __init__(self, store: RemoteStore):
        self.store = store
        self._snapshot = Snapshot()
        self._listeners: list[Callable[[Snapshot], None]] = []

    # ── Reload protocol ─────────────────────────────────────────

    def add_listener(self, callback: Callable[[Snapshot], None]):
        """Call *callback* with the new snapshot after every reload."""
        self._listeners.append(callback)

    def _fetch_optional(self, collection: str) -> list[dict]:
        try:
            return self.store.select(collection)
        except StoreError as e:
            logger.debug("Treating %s as empty: %s", collection, e)
            return []

    def reload_all(self) -> Snapshot:
        """Fetch every collection and replace the snapshot.

        Raises StoreError when a mandatory collection fails; the previous
        snapshot then stays in place.
        """
        with ThreadPoolExecutor(max_workers=5) as pool:
            mandatory = {
                name: pool.submit(self.store.select, name)
                for name in MANDATORY_COLLECTIONS
            }
            optional = {
                name: pool.submit(self._fetch_optional, name)
                for name in OPTIONAL_COLLECTIONS
            }
            rows = {name: fut.result() for name, fut in mandatory.items()}
            rows.update({name: fut.result() for name, fut in optional.items()})

        jobs = tuple(Job.from_row(r) for r in rows[JOBS])
        entries = tuple(TimeEntry.from_row(r) for r in rows[ENTRIES])
        snapshot = Snapshot(
            jobs=jobs,
            entries=entries,
            signatures=tuple(Signature.from_row(r) for r in rows[SIGNATURES]),
            items=tuple(Item.from_row(r) for r in rows[ITEMS]),
            photos=tuple(Photo.from_row(r) for r in rows[PHOTOS]),
            stats=compute_stats(jobs, entries),
        )
        self._snapshot = snapshot
        logger.debug(
            "Reloaded %d jobs, %d entries", len(jobs), len(entries)
        )
        for callback in self._listeners:
            callback(snapshot)
        return snapshot

    # ── Read accessors ──────────────────────────────────────────

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def jobs(self) -> tuple:
        return self._snapshot.jobs

    @property
    def stats(self) -> JobStats:
        return self._snapshot.stats

    def job(self, job_id: Optional[str]) -> Optional[Job]:
        return next((j for j in self._snapshot.jobs if j.id == job_id), None)

    def entries_of(self, job_id: str) -> list[TimeEntry]:
        return [e for e in self._snapshot.entries if e.job_id == job_id]

    def running_entry_of(self, job_id: str) -> Optional[TimeEntry]:
        return next(
            (e for e in self.entries_of(job_id) if e.is_running), None
        )

    def signature_of(self, job_id: str) -> Optional[Signature]:
        return next(
            (s for s in self._snapshot.signatures if s.job_id == job_id), None
        )

    def items_of(self, job_id: str) -> list[Item]:
        return [i for i in self._snapshot.items if i.job_id == job_id]

    def photos_of(self, job_id: str) -> list[Photo]:
        return [p for p in self._snapshot.photos if p.job_id == job_id]

    def id_photo_of(self, job_id: str) -> Optional[Photo]:
        return next(
            (p for p in self.photos_of(job_id) if p.is_id_document), None
        )
