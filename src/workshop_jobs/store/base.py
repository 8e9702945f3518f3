"""RemoteStore interface — generic CRUD over named collections plus objects.

The engine only talks to the store through this interface.  Every call is
blocking from the caller's point of view and raises ``StoreError`` on
failure; there is no "error value" return path.
"""

from abc import ABC, abstractmethod

from workshop_jobs.core.errors import WorkshopError

# Collection names
JOBS = "jobs"
ENTRIES = "entries"
SIGNATURES = "signatures"
ITEMS = "job_items"
PHOTOS = "job_photos"


class StoreError(WorkshopError):
    """A CRUD or object-storage call failed."""

    def __init__(self, message: str, collection: str = ""):
        super().__init__(message)
        self.collection = collection


class RemoteStore(ABC):
    """Backend contract consumed by the cache and the controllers."""

    # ── Records ─────────────────────────────────────────────────

    @abstractmethod
    def select(self, collection: str) -> list[dict]:
        """Return every record of *collection*."""

    @abstractmethod
    def insert(self, collection: str, record: dict) -> dict:
        """Insert *record* and return it as stored (with its id)."""

    @abstractmethod
    def update(self, collection: str, patch: dict, match: dict):
        """Apply *patch* to every record whose fields equal *match*."""

    @abstractmethod
    def delete(self, collection: str, match: dict):
        """Delete every record whose fields equal *match*."""

    @abstractmethod
    def upsert(self, collection: str, record: dict, on_conflict: str):
        """Insert *record*, replacing the row that shares *on_conflict*."""

    # ── Binary objects ──────────────────────────────────────────

    @abstractmethod
    def put(self, bucket: str, path: str, data: bytes,
            overwrite: bool = False):
        """Store *data* under *path* in *bucket*."""

    @abstractmethod
    def remove(self, bucket: str, paths: list[str]):
        """Remove the objects at *paths*; missing objects are ignored."""

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        """Resolve a URL the object can be displayed from."""
