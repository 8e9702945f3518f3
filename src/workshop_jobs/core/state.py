"""Application state owned by the controller and shared by reference."""

from dataclasses import dataclass
from typing import Optional

from workshop_jobs.core.router import LIST_ROUTE, Route
from workshop_jobs.store.models import TimeEntry


@dataclass
class AppState:
    current_job_id: Optional[str] = None
    running_entry: Optional[TimeEntry] = None
    route: Route = LIST_ROUTE
