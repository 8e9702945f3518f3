"""WorkshopApp — wires store, cache, router and controllers together.

Screens talk only to this object: they call the actions, read the
accessors, and listen to the signals.  Every action turns a failure into
a ``message`` for the user and returns False; nothing here is fatal.
"""

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from workshop_jobs.config import Config
from workshop_jobs.core.cache import LocalCache, Snapshot
from workshop_jobs.core.clock import Clock, utc_now
from workshop_jobs.core.errors import WorkshopError
from workshop_jobs.core.lifecycle import JobLifecycle
from workshop_jobs.core.router import LIST_ROUTE, Route, Router, job_url
from workshop_jobs.core.signature import SignatureCapture
from workshop_jobs.core.state import AppState
from workshop_jobs.core.timer import ElapsedTicker, TimerEngine
from workshop_jobs.core.views import JobDetail, JobRow, job_detail, job_list
from workshop_jobs.store.base import RemoteStore, StoreError

logger = logging.getLogger(__name__)


class WorkshopApp(QObject):
    """Application controller owning the state of one client."""

    message = Signal(str)           # toast text
    route_changed = Signal(object)  # Route
    data_changed = Signal()
    elapsed_changed = Signal(str)   # "HH:MM" of the running entry

    def __init__(self, store: RemoteStore, clock: Clock = utc_now,
                 require_odometer: Optional[bool] = None,
                 initial_path: str = "/", parent=None):
        super().__init__(parent)
        self.store = store
        self.clock = clock
        self.state = AppState()
        self.cache = LocalCache(store)
        self.router = Router(initial_path)
        self.lifecycle = JobLifecycle(
            store, self.cache, clock, require_odometer=require_odometer
        )
        self.timer = TimerEngine(store, self.cache, self.state, clock)
        self.ticker = ElapsedTicker(self.cache, clock=clock, parent=self)
        self.ticker.elapsed_changed.connect(self.elapsed_changed)
        self.signature = SignatureCapture(store, self.cache, clock)

        self.cache.add_listener(self._on_reload)
        self.router.add_listener(self._on_route)

    # ── Wiring ──────────────────────────────────────────────────

    def startup(self) -> bool:
        """Load everything, then show whatever the current path addresses."""
        ok = True
        try:
            self.cache.reload_all()
        except StoreError as e:
            logger.error("Initial load failed: %s", e)
            self.message.emit(f"Could not load data: {e}")
            ok = False
        self.router.refresh()
        return ok

    def _on_reload(self, snapshot: Snapshot):
        route = self.state.route
        if route.is_detail and self.cache.job(route.job_id) is None:
            self._on_route(LIST_ROUTE)
        else:
            self.timer.track(self.state.current_job_id)
        self.data_changed.emit()

    def _on_route(self, route: Route):
        if route.is_detail and self.cache.job(route.job_id) is None:
            route = LIST_ROUTE
        self.state.route = route
        if route.is_detail:
            self.state.current_job_id = route.job_id
            self.timer.track(route.job_id)
            self.ticker.start(route.job_id)
        else:
            self.state.current_job_id = None
            self.state.running_entry = None
            self.ticker.stop()
        self.route_changed.emit(route)

    def _run(self, action: Callable, success: str = "") -> bool:
        try:
            action()
        except StoreError as e:
            logger.warning("Store error: %s", e)
            self.message.emit(f"Error: {e}")
            return False
        except WorkshopError as e:
            self.message.emit(str(e))
            return False
        if success:
            self.message.emit(success)
        return True

    def _job_id(self, job_id: Optional[str]) -> Optional[str]:
        return job_id or self.state.current_job_id

    # ── Navigation ──────────────────────────────────────────────

    def navigate_to(self, path: str) -> Route:
        self.router.navigate(path)
        return self.state.route

    def back(self) -> Route:
        self.router.back()
        return self.state.route

    def forward(self) -> Route:
        self.router.forward()
        return self.state.route

    def job_url(self, job_id: str) -> str:
        return job_url(Config.PUBLIC_BASE_URL, job_id)

    # ── Read accessors ──────────────────────────────────────────

    def entries_of(self, job_id: str):
        return self.cache.entries_of(job_id)

    def signature_of(self, job_id: str):
        return self.cache.signature_of(job_id)

    def items_of(self, job_id: str):
        return self.cache.items_of(job_id)

    def photos_of(self, job_id: str):
        return self.cache.photos_of(job_id)

    def job_list(self, status: str = "all", query: str = "") -> list[JobRow]:
        return job_list(self.cache, status, query, self.clock())

    def current_detail(self) -> Optional[JobDetail]:
        if self.state.current_job_id is None:
            return None
        return job_detail(self.cache, self.state.current_job_id, self.clock())

    # ── Lifecycle actions ───────────────────────────────────────

    def create_job(self, title: str, customer: str = "", vehicle: str = "",
                   plate: str = "", job_no: str = "") -> bool:
        return self._run(
            lambda: self.lifecycle.create_job(
                title, customer, vehicle, plate, job_no
            ),
            "Job created",
        )

    def start_timer(self, worker: str, task: str = "",
                    job_id: Optional[str] = None) -> bool:
        job_id = self._job_id(job_id)
        if job_id is None:
            return False
        return self._run(
            lambda: self.timer.start(job_id, worker, task), "Timer started"
        )

    def stop_timer(self, entry_id: Optional[str] = None) -> bool:
        stopped = []
        ok = self._run(lambda: stopped.append(self.timer.stop(entry_id)))
        if ok and stopped[0] is not None:
            self.message.emit("Timer stopped")
            return True
        return False

    def close_job(self, job_id: Optional[str] = None) -> bool:
        job_id = self._job_id(job_id)
        if job_id is None:
            return False
        if self._run(lambda: self.lifecycle.close(job_id), "Job closed"):
            self.router.refresh()
            return True
        return False

    def delete_job(self, job_id: Optional[str] = None) -> bool:
        job_id = self._job_id(job_id)
        if job_id is None:
            return False
        if self._run(lambda: self.lifecycle.delete_job(job_id), "Job deleted"):
            self.router.navigate("/")
            return True
        return False

    def save_signature(self, signer_name: str,
                       job_id: Optional[str] = None) -> bool:
        job_id = self._job_id(job_id)
        if job_id is None:
            return False
        return self._run(
            lambda: self.signature.save(job_id, signer_name),
            "Signature saved",
        )

    def clear_signature(self):
        self.signature.clear()

    # ── Job details ─────────────────────────────────────────────

    def toggle_important(self, job_id: str) -> bool:
        return self._run(lambda: self.lifecycle.toggle_important(job_id))

    def save_job_meta(self, job_id: str, odometer_km=None,
                      dropoff_at: Optional[str] = None,
                      pickup_at: Optional[str] = None) -> bool:
        return self._run(
            lambda: self.lifecycle.save_job_meta(
                job_id, odometer_km, dropoff_at, pickup_at
            ),
            "Saved",
        )

    def save_checklist(self, job_id: str, changes: dict) -> bool:
        return self._run(
            lambda: self.lifecycle.save_checklist(job_id, changes),
            "Checklist saved",
        )

    def add_item(self, job_id: str, item_type: str, description: str = "",
                 qty=1, unit_price=0) -> bool:
        return self._run(
            lambda: self.lifecycle.add_item(
                job_id, item_type, description, qty, unit_price
            )
        )

    def delete_item(self, item_id: str) -> bool:
        return self._run(lambda: self.lifecycle.delete_item(item_id))

    def upload_photo(self, job_id: str, filename: str, data: bytes,
                     kind: str = "general") -> bool:
        return self._run(
            lambda: self.lifecycle.upload_photo(job_id, filename, data, kind),
            "Photo saved",
        )

    def delete_photo(self, photo_id: str) -> bool:
        return self._run(lambda: self.lifecycle.delete_photo(photo_id))

    def export_report(self, job_id: str,
                      output_path: Optional[str] = None) -> Optional[str]:
        """Write the job's PDF report and return its path."""
        from workshop_jobs.utils.job_report import generate_job_report

        detail = job_detail(self.cache, job_id, self.clock())
        if detail is None:
            self.message.emit("Job not found")
            return None
        return generate_job_report(
            detail,
            company_name=Config.COMPANY_NAME,
            url=self.job_url(job_id),
            photo_url=self.lifecycle.photo_url,
            output_path=output_path,
        )
