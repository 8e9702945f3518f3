"""Application setup — logging, the configured store, and the controller."""

import logging

from workshop_jobs.config import Config
from workshop_jobs.core.app import WorkshopApp
from workshop_jobs.store.connection import DatabaseConnection
from workshop_jobs.store.schema import initialize_store
from workshop_jobs.store.sqlite_store import SqliteStore

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None):
    """Apply ``Config.LOG_LEVEL`` (or *level*) to the package loggers."""
    level = getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("workshop_jobs").setLevel(level)


def open_store() -> SqliteStore:
    """Open (and migrate) the store configured in ``Config``."""
    db = DatabaseConnection(Config.DATABASE_PATH)
    initialize_store(db)
    return SqliteStore(db, Config.STORAGE_PATH)


def create_app(initial_path: str = "/", parent=None) -> WorkshopApp:
    """Build the controller on the configured store and load its data."""
    configure_logging()
    app = WorkshopApp(open_store(), initial_path=initial_path, parent=parent)
    app.startup()
    return app
