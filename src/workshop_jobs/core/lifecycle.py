"""Job lifecycle — creation, edits, closing, and cascade deletion.

A job moves one way, ``open`` → ``done``.  Closing may require an
odometer reading (the extended workshop setup) and always stops a
running timer first.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Optional

from workshop_jobs.config import Config
from workshop_jobs.core.cache import LocalCache
from workshop_jobs.core.clock import Clock, to_iso, utc_now
from workshop_jobs.core.errors import PreconditionError, ValidationError
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
    CHECKLIST_KEYS,
    JOB_DONE,
    JOB_OPEN,
    PHOTO_KIND_GENERAL,
    PHOTO_KIND_ID,
    Job,
)

logger = logging.getLogger(__name__)


@dataclass
class CleanupStep:
    """One best-effort step of a cascade; its failure is recorded only."""

    name: str
    action: Callable[[], None]

    def run(self) -> Optional[StoreError]:
        try:
            self.action()
        except StoreError as e:
            logger.warning("Cleanup step %s failed: %s", self.name, e)
            return e
        return None


@dataclass
class DeleteReport:
    job_id: str
    skipped: list[tuple[str, StoreError]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped


def _optional_int(value, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number") from None
    if number < 0:
        raise ValidationError(f"{label} cannot be negative")
    return number


def _number(value, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if number != number:
        raise ValidationError(f"{label} must be a number")
    return number


class JobLifecycle:
    """Validates and executes job mutations, then reloads the cache."""

    def __init__(self, store: RemoteStore, cache: LocalCache,
                 clock: Clock = utc_now,
                 require_odometer: Optional[bool] = None,
                 photo_bucket: Optional[str] = None):
        self.store = store
        self.cache = cache
        self.clock = clock
        self.require_odometer = (
            Config.REQUIRE_ODOMETER_TO_CLOSE
            if require_odometer is None else require_odometer
        )
        self.photo_bucket = photo_bucket or Config.PHOTO_BUCKET

    # ── Helpers ─────────────────────────────────────────────────

    def _job(self, job_id: str) -> Job:
        job = self.cache.job(job_id)
        if job is None:
            raise PreconditionError("Job not found")
        return job

    def _open_job(self, job_id: str) -> Job:
        job = self._job(job_id)
        if job.is_done:
            raise PreconditionError("This job is already closed")
        return job

    # ── Create / close ──────────────────────────────────────────

    def create_job(self, title: str, customer: str = "", vehicle: str = "",
                   plate: str = "", job_no: str = "") -> Job:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Please enter a job title")
        record = self.store.insert(JOBS, {
            "title": title,
            "customer": (customer or "").strip(),
            "vehicle": (vehicle or "").strip(),
            "plate": (plate or "").strip().upper(),
            "job_no": (job_no or "").strip(),
            "status": JOB_OPEN,
            "created_at": to_iso(self.clock()),
            "closed_at": None,
        })
        logger.info("Created job %s (%s)", record["id"], title)
        self.cache.reload_all()
        return Job.from_row(record)

    def close(self, job_id: str) -> Job:
        job = self._open_job(job_id)
        if self.require_odometer and not (job.odometer_km or 0) > 0:
            raise PreconditionError(
                "Odometer reading missing. Please enter it on the job."
            )

        running = self.cache.running_entry_of(job_id)
        now = to_iso(self.clock())
        if running is not None:
            # The job closes even if this step fails
            CleanupStep(
                "stop running entry",
                lambda: self.store.update(
                    ENTRIES, {"end_ts": now}, {"id": running.id}
                ),
            ).run()

        self.store.update(
            JOBS, {"status": JOB_DONE, "closed_at": now}, {"id": job_id}
        )
        logger.info("Closed job %s", job_id)
        self.cache.reload_all()
        return self.cache.job(job_id) or job

    # ── Delete ──────────────────────────────────────────────────

    def delete_job(self, job_id: str) -> DeleteReport:
        """Remove the job and everything that references it.

        Dependants are removed best-effort; only the final deletion of the
        job record raises.
        """
        photo_paths = [p.path for p in self.cache.photos_of(job_id)]
        match = {"job_id": job_id}
        steps = [
            CleanupStep("entries",
                        lambda: self.store.delete(ENTRIES, match)),
            CleanupStep("signature",
                        lambda: self.store.delete(SIGNATURES, match)),
            CleanupStep("items",
                        lambda: self.store.delete(ITEMS, match)),
        ]
        if photo_paths:
            steps += [
                CleanupStep("photo objects",
                            lambda: self.store.remove(
                                self.photo_bucket, photo_paths)),
                CleanupStep("photo records",
                            lambda: self.store.delete(PHOTOS, match)),
            ]

        report = DeleteReport(job_id)
        for step in steps:
            error = step.run()
            if error is not None:
                report.skipped.append((step.name, error))

        self.store.delete(JOBS, {"id": job_id})
        logger.info("Deleted job %s (%d cleanup steps skipped)",
                    job_id, len(report.skipped))
        self.cache.reload_all()
        return report

    # ── Job details ─────────────────────────────────────────────

    def set_important(self, job_id: str, important: bool):
        self._job(job_id)
        self.store.update(JOBS, {"important": bool(important)}, {"id": job_id})
        self.cache.reload_all()

    def toggle_important(self, job_id: str) -> bool:
        flag = not self._job(job_id).important
        self.set_important(job_id, flag)
        return flag

    def save_job_meta(self, job_id: str, odometer_km=None,
                      dropoff_at: Optional[str] = None,
                      pickup_at: Optional[str] = None):
        self._job(job_id)
        self.store.update(JOBS, {
            "odometer_km": _optional_int(odometer_km, "Odometer"),
            "dropoff_at": dropoff_at or None,
            "pickup_at": pickup_at or None,
        }, {"id": job_id})
        self.cache.reload_all()

    def save_checklist(self, job_id: str, changes: dict) -> dict:
        job = self._job(job_id)
        known = {key for key, _ in CHECKLIST_KEYS}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValidationError(
                f"Unknown checklist item(s): {', '.join(unknown)}"
            )
        checklist = job.checklist_state()
        checklist.update({k: bool(v) for k, v in changes.items()})
        self.store.update(JOBS, {"checklist": checklist}, {"id": job_id})
        self.cache.reload_all()
        return checklist

    # ── Items ───────────────────────────────────────────────────

    def add_item(self, job_id: str, item_type: str, description: str = "",
                 qty=1, unit_price=0) -> dict:
        self._open_job(job_id)
        item_type = (item_type or "").strip()
        if not item_type:
            raise ValidationError("Please enter an item type")
        record = self.store.insert(ITEMS, {
            "job_id": job_id,
            "item_type": item_type,
            "description": (description or "").strip(),
            "qty": _number(qty, "Quantity"),
            "unit_price": _number(unit_price, "Unit price"),
            "created_at": to_iso(self.clock()),
        })
        self.cache.reload_all()
        return record

    def delete_item(self, item_id: str):
        item = next(
            (i for i in self.cache.snapshot.items if i.id == item_id), None
        )
        if item is None:
            return
        self._open_job(item.job_id)
        self.store.delete(ITEMS, {"id": item_id})
        self.cache.reload_all()

    # ── Photos ──────────────────────────────────────────────────

    def upload_photo(self, job_id: str, filename: str, data: bytes,
                     kind: str = PHOTO_KIND_GENERAL) -> dict:
        """Store a photo; a new ID document replaces the previous one."""
        self._open_job(job_id)
        if not data:
            raise ValidationError("Please choose a file")
        if kind not in (PHOTO_KIND_ID, PHOTO_KIND_GENERAL):
            raise ValidationError(f"Unknown photo kind: {kind}")
        ext = (PurePosixPath(filename or "").suffix.lstrip(".")
               or "jpg").lower()
        stamp = int(self.clock().timestamp() * 1000)
        path = f"{job_id}/{kind}-{stamp}.{ext}"
        self.store.put(self.photo_bucket, path, data, overwrite=True)

        if kind == PHOTO_KIND_ID:
            old = self.cache.id_photo_of(job_id)
            if old is not None:
                # Same path: the put above already replaced the object
                if old.path != path:
                    CleanupStep("previous id object",
                                lambda: self.store.remove(
                                    self.photo_bucket, [old.path])).run()
                CleanupStep("previous id record",
                            lambda: self.store.delete(
                                PHOTOS, {"id": old.id})).run()

        record = self.store.insert(PHOTOS, {
            "job_id": job_id,
            "path": path,
            "kind": kind,
            "created_at": to_iso(self.clock()),
        })
        self.cache.reload_all()
        return record

    def delete_photo(self, photo_id: str):
        photo = next(
            (p for p in self.cache.snapshot.photos if p.id == photo_id), None
        )
        if photo is None:
            return
        self._open_job(photo.job_id)
        CleanupStep("photo object",
                    lambda: self.store.remove(self.photo_bucket, [photo.path])
                    ).run()
        self.store.delete(PHOTOS, {"id": photo_id})
        self.cache.reload_all()

    def photo_url(self, path: str) -> str:
        return self.store.public_url(self.photo_bucket, path)
