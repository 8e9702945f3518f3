"""Store schema definition, initialization, and migrations."""

import sqlite3

SCHEMA_VERSION = 2

# v1: the basic workshop with jobs, time entries and signatures
_V1_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    """CREATE TABLE IF NOT EXISTS jobs (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        customer TEXT DEFAULT '',
        vehicle TEXT DEFAULT '',
        plate TEXT DEFAULT '',
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'done')),
        created_at TEXT,
        closed_at TEXT
    )""",

    """CREATE TABLE IF NOT EXISTS entries (
        id TEXT PRIMARY KEY,
        job_id TEXT NOT NULL,
        worker TEXT DEFAULT '',
        task TEXT DEFAULT '',
        start_ts TEXT NOT NULL,
        end_ts TEXT
    )""",
    "CREATE INDEX IF NOT EXISTS idx_entries_job ON entries(job_id)",
    # A job can have a single open entry at a time
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_entries_one_running
        ON entries(job_id) WHERE end_ts IS NULL""",

    """CREATE TABLE IF NOT EXISTS signatures (
        id TEXT PRIMARY KEY,
        job_id TEXT NOT NULL UNIQUE,
        signer_name TEXT NOT NULL,
        signature_data TEXT NOT NULL,
        signed_at TEXT
    )""",
]

# v2: job details, checklist, billable items and photos
_V2_STATEMENTS = [
    "ALTER TABLE jobs ADD COLUMN job_no TEXT DEFAULT ''",
    "ALTER TABLE jobs ADD COLUMN notes TEXT DEFAULT ''",
    "ALTER TABLE jobs ADD COLUMN important INTEGER NOT NULL DEFAULT 0",
    "ALTER TABLE jobs ADD COLUMN odometer_km INTEGER",
    "ALTER TABLE jobs ADD COLUMN dropoff_at TEXT",
    "ALTER TABLE jobs ADD COLUMN pickup_at TEXT",
    "ALTER TABLE jobs ADD COLUMN checklist TEXT DEFAULT '{}'",

    """CREATE TABLE IF NOT EXISTS job_items (
        id TEXT PRIMARY KEY,
        job_id TEXT NOT NULL,
        item_type TEXT DEFAULT 'labor',
        description TEXT DEFAULT '',
        qty REAL NOT NULL DEFAULT 0,
        unit_price REAL NOT NULL DEFAULT 0,
        created_at TEXT
    )""",
    "CREATE INDEX IF NOT EXISTS idx_items_job ON job_items(job_id)",

    """CREATE TABLE IF NOT EXISTS job_photos (
        id TEXT PRIMARY KEY,
        job_id TEXT NOT NULL,
        path TEXT NOT NULL,
        kind TEXT NOT NULL DEFAULT 'general',
        created_at TEXT
    )""",
    "CREATE INDEX IF NOT EXISTS idx_photos_job ON job_photos(job_id)",
]

_MIGRATIONS = {
    1: _V1_STATEMENTS,
    2: _V2_STATEMENTS,
}


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except sqlite3.OperationalError:
        return 0


def get_schema_version(db_connection) -> int:
    with db_connection.get_connection() as conn:
        return _get_schema_version(conn)


def initialize_store(db_connection, target_version: int = SCHEMA_VERSION):
    """Create or migrate the schema up to *target_version*.

    Version 1 is the basic workshop without items and photos; stopping
    there leaves the optional collections unprovisioned.
    """
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)
        for step in range(version + 1, target_version + 1):
            for stmt in _MIGRATIONS[step]:
                conn.execute(stmt)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (step,)
            )
