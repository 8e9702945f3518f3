"""Read-only projections of the cache for list and detail screens."""

from dataclasses import dataclass, field
from typing import Optional

from workshop_jobs.core.cache import LocalCache
from workshop_jobs.core.clock import parse_ts
from workshop_jobs.core.timer import (
    calculate_duration,
    minutes_by_worker,
    total_minutes,
)
from workshop_jobs.store.models import (
    Item,
    Job,
    Photo,
    Signature,
    TimeEntry,
)

STATUS_LABELS = {"open": "Open", "done": "Done"}

_EPOCH = "1970-01-01T00:00:00+00:00"


@dataclass
class JobRow:
    job: Job
    total_minutes: int = 0
    has_running: bool = False

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.job.status, self.job.status)


@dataclass
class CompletedEntry:
    entry: TimeEntry
    minutes: int


@dataclass
class JobDetail:
    job: Job
    running: Optional[TimeEntry] = None
    running_minutes: int = 0
    completed: list[CompletedEntry] = field(default_factory=list)
    total_minutes: int = 0
    by_worker: dict[str, int] = field(default_factory=dict)
    checklist: dict[str, bool] = field(default_factory=dict)
    items: list[Item] = field(default_factory=list)
    items_total: float = 0.0
    id_photo: Optional[Photo] = None
    photos: list[Photo] = field(default_factory=list)
    signature: Optional[Signature] = None

    @property
    def read_only(self) -> bool:
        """Closed jobs hide the time-entry controls."""
        return self.job.is_done

    @property
    def signature_editable(self) -> bool:
        return self.signature is None or not self.signature.signature_data


def _matches(job: Job, query: str) -> bool:
    haystack = " ".join(
        str(v) for v in (job.job_no, job.title, job.customer,
                         job.vehicle, job.plate, job.notes) if v
    ).lower()
    return query in haystack


def job_list(cache: LocalCache, status: str = "all", query: str = "",
             now=None) -> list[JobRow]:
    """Filtered jobs, important first, then newest first."""
    jobs = list(cache.jobs)
    if status != "all":
        jobs = [j for j in jobs if j.status == status]
    query = (query or "").strip().lower()
    if query:
        jobs = [j for j in jobs if _matches(j, query)]

    jobs.sort(key=lambda j: parse_ts(j.created_at or _EPOCH), reverse=True)
    jobs.sort(key=lambda j: not j.important)

    rows = []
    for job in jobs:
        entries = cache.entries_of(job.id)
        rows.append(JobRow(
            job=job,
            total_minutes=total_minutes(entries, now),
            has_running=any(e.is_running for e in entries),
        ))
    return rows


def job_detail(cache: LocalCache, job_id: str,
               now=None) -> Optional[JobDetail]:
    job = cache.job(job_id)
    if job is None:
        return None

    entries = cache.entries_of(job_id)
    running = next((e for e in entries if e.is_running), None)
    completed = sorted(
        (e for e in entries if not e.is_running),
        key=lambda e: parse_ts(e.start_ts), reverse=True,
    )
    items = sorted(cache.items_of(job_id),
                   key=lambda i: parse_ts(i.created_at or _EPOCH))
    photos = cache.photos_of(job_id)

    return JobDetail(
        job=job,
        running=running,
        running_minutes=(
            calculate_duration(running.start_ts, None, now) if running else 0
        ),
        completed=[
            CompletedEntry(e, calculate_duration(e.start_ts, e.end_ts))
            for e in completed
        ],
        total_minutes=total_minutes(entries, now),
        by_worker=minutes_by_worker(entries, now),
        checklist=job.checklist_state(),
        items=items,
        items_total=sum(i.line_total for i in items),
        id_photo=next((p for p in photos if p.is_id_document), None),
        photos=[p for p in photos if not p.is_id_document],
        signature=cache.signature_of(job_id),
    )
