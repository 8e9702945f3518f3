"""TimerEngine — time entries and the live elapsed-time display.

At most one entry per job may be open (``end_ts`` unset).  The check
happens against the local snapshot before anything is written, so it is
a best-effort guard rather than a transaction: two clients could both
pass it.  The bundled SQLite backend backs it up with a partial unique
index; other backends may not.
"""

import logging
import math
from collections import defaultdict
from typing import Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from workshop_jobs.config import Config
from workshop_jobs.core.cache import LocalCache
from workshop_jobs.core.clock import Clock, parse_ts, to_iso, utc_now
from workshop_jobs.core.errors import (
    PreconditionError,
    TimerAlreadyRunningError,
    ValidationError,
)
from workshop_jobs.core.state import AppState
from workshop_jobs.store.base import ENTRIES, RemoteStore
from workshop_jobs.store.models import TimeEntry
from workshop_jobs.utils.formatters import format_clock

logger = logging.getLogger(__name__)


def calculate_duration(start_ts, end_ts=None, now=None) -> int:
    """Whole minutes between start and end (or *now* while running).

    Rounded half up and clamped at zero, so clock skew never yields a
    negative duration.
    """
    start = parse_ts(start_ts)
    if end_ts:
        end = parse_ts(end_ts)
    else:
        end = parse_ts(now) if now is not None else utc_now()
    minutes = (end - start).total_seconds() / 60.0
    return max(0, math.floor(minutes + 0.5))


def total_minutes(entries: Iterable[TimeEntry], now=None) -> int:
    return sum(calculate_duration(e.start_ts, e.end_ts, now) for e in entries)


def minutes_by_worker(entries: Iterable[TimeEntry], now=None) -> dict[str, int]:
    """Per-worker subtotals, in order of first appearance."""
    totals: dict[str, int] = defaultdict(int)
    for e in entries:
        totals[e.worker] += calculate_duration(e.start_ts, e.end_ts, now)
    return dict(totals)


class TimerEngine:
    """Starts and stops time entries against the store."""

    def __init__(self, store: RemoteStore, cache: LocalCache,
                 state: AppState, clock: Clock = utc_now):
        self.store = store
        self.cache = cache
        self.state = state
        self.clock = clock

    def track(self, job_id: Optional[str]) -> Optional[TimeEntry]:
        """Remember the running entry of *job_id* as the one to stop."""
        self.state.running_entry = (
            self.cache.running_entry_of(job_id) if job_id else None
        )
        return self.state.running_entry

    def start(self, job_id: str, worker: str, task: str = "") -> TimeEntry:
        worker = (worker or "").strip()
        if not worker:
            raise ValidationError("Please select a worker")
        job = self.cache.job(job_id)
        if job is None:
            raise PreconditionError("Job not found")
        if job.is_done:
            raise PreconditionError("This job is already closed")
        if self.cache.running_entry_of(job_id) is not None:
            raise TimerAlreadyRunningError(job_id)

        record = self.store.insert(ENTRIES, {
            "job_id": job_id,
            "worker": worker,
            "task": (task or "").strip(),
            "start_ts": to_iso(self.clock()),
            "end_ts": None,
        })
        logger.info("Timer started on job %s by %s", job_id, worker)
        self.cache.reload_all()
        return TimeEntry.from_row(record)

    def stop(self, entry_id: Optional[str] = None) -> Optional[TimeEntry]:
        """Close the tracked running entry (or *entry_id* if it is running).

        Returns None without touching the store when nothing is running.
        """
        entry = self.state.running_entry
        if entry_id is not None:
            entry = next(
                (e for e in self.cache.snapshot.entries
                 if e.id == entry_id and e.is_running),
                None,
            )
        if entry is None:
            return None

        end_ts = to_iso(self.clock())
        self.store.update(ENTRIES, {"end_ts": end_ts}, {"id": entry.id})
        logger.info("Timer stopped on job %s", entry.job_id)
        self.cache.reload_all()
        self.track(self.state.current_job_id)
        return TimeEntry(
            id=entry.id, job_id=entry.job_id, worker=entry.worker,
            task=entry.task, start_ts=entry.start_ts, end_ts=end_ts,
        )


class ElapsedTicker(QObject):
    """Repeating refresh of the running entry's elapsed time.

    One QTimer per ticker; ``start`` always cancels the previous run, so
    a ticker never has more than one live refresh loop.
    """

    elapsed_changed = Signal(str)  # "HH:MM"

    def __init__(self, cache: LocalCache, interval_ms: int = None,
                 clock: Clock = utc_now, parent=None):
        super().__init__(parent)
        self.cache = cache
        self.clock = clock
        self._job_id: Optional[str] = None
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms or Config.TICK_INTERVAL_MS)
        self._timer.timeout.connect(self.tick)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    @property
    def job_id(self) -> Optional[str]:
        return self._job_id

    def start(self, job_id: str):
        self.stop()
        self._job_id = job_id
        self._timer.start()
        self.tick()

    def stop(self):
        self._timer.stop()
        self._job_id = None

    def elapsed_minutes(self) -> Optional[int]:
        if self._job_id is None:
            return None
        entry = self.cache.running_entry_of(self._job_id)
        if entry is None:
            return None
        return calculate_duration(entry.start_ts, None, self.clock())

    def tick(self):
        minutes = self.elapsed_minutes()
        if minutes is not None:
            self.elapsed_changed.emit(format_clock(minutes))
