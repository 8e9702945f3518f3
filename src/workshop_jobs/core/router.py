"""Router — maps a URL path to the single entity the view addresses.

View state is always derived from the path alone, whether the path
changed through ``navigate`` or through history (back/forward).
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

VIEW_LIST = "list"
VIEW_DETAIL = "detail"

JOB_ID_PATTERN = re.compile(r"^[0-9a-fA-F-]{36}$")
_JOB_PATH = re.compile(r"^/job/([0-9a-fA-F-]{36})/?$")


@dataclass(frozen=True)
class Route:
    view: str = VIEW_LIST
    job_id: Optional[str] = None

    @property
    def is_detail(self) -> bool:
        return self.view == VIEW_DETAIL


LIST_ROUTE = Route(VIEW_LIST)


def is_job_id(value) -> bool:
    return bool(JOB_ID_PATTERN.match(value or ""))


def parse_path(path: str) -> Route:
    """``/job/<id>`` is a detail route; every other path is the list."""
    m = _JOB_PATH.match(path or "")
    if m:
        return Route(VIEW_DETAIL, m.group(1))
    return LIST_ROUTE


def job_path(job_id: str) -> str:
    return f"/job/{job_id}"


def job_url(base_url: str, job_id: str) -> str:
    return f"{base_url.rstrip('/')}{job_path(job_id)}"


class Router:
    """Owns the history stack and re-derives the route on every change."""

    def __init__(self, initial_path: str = "/"):
        self._history: list[str] = [initial_path]
        self._index = 0
        self._listeners: list[Callable[[Route], None]] = []

    def add_listener(self, callback: Callable[[Route], None]):
        self._listeners.append(callback)

    @property
    def path(self) -> str:
        return self._history[self._index]

    @property
    def current(self) -> Route:
        return parse_path(self.path)

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._history) - 1

    def _changed(self) -> Route:
        route = self.current
        for callback in self._listeners:
            callback(route)
        return route

    def navigate(self, path: str) -> Route:
        """Push *path*, discarding forward history, and re-derive."""
        del self._history[self._index + 1:]
        self._history.append(path)
        self._index += 1
        return self._changed()

    def replace(self, path: str) -> Route:
        """Swap the current history entry without adding a new one."""
        self._history[self._index] = path
        return self._changed()

    def back(self) -> Route:
        if self.can_go_back:
            self._index -= 1
        return self._changed()

    def forward(self) -> Route:
        if self.can_go_forward:
            self._index += 1
        return self._changed()

    def refresh(self) -> Route:
        """Re-derive the route for the current path."""
        return self._changed()
