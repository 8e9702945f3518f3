"""SQLite + filesystem implementation of the RemoteStore interface."""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path

from .base import JOBS, RemoteStore, StoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


class SqliteStore(RemoteStore):
    """Records in SQLite, binary objects as files under a bucket directory."""

    # Columns that need conversion between Python and SQLite values
    JSON_COLUMNS = {JOBS: ("checklist",)}
    BOOL_COLUMNS = {JOBS: ("important",)}

    def __init__(self, db: DatabaseConnection, storage_root: str | Path):
        self.db = db
        self.storage_root = Path(storage_root)

    # ── Helpers ─────────────────────────────────────────────────

    @contextmanager
    def _guard(self, collection: str):
        """Translate driver errors into StoreError."""
        try:
            yield
        except sqlite3.Error as e:
            logger.debug("Store call on %s failed: %s", collection, e)
            raise StoreError(str(e), collection) from e

    @staticmethod
    def _columns(conn, collection: str) -> list[str]:
        rows = conn.execute(f"PRAGMA table_info('{collection}')").fetchall()
        if not rows:
            raise StoreError(
                f'relation "{collection}" does not exist', collection
            )
        return [r["name"] for r in rows]

    def _check_columns(self, conn, collection: str, names) -> None:
        known = set(self._columns(conn, collection))
        unknown = [n for n in names if n not in known]
        if unknown:
            raise StoreError(
                f"Unknown column(s) for {collection}: {', '.join(unknown)}",
                collection,
            )

    def _encode(self, collection: str, record: dict) -> dict:
        out = dict(record)
        for col in self.JSON_COLUMNS.get(collection, ()):
            if col in out and out[col] is not None:
                out[col] = json.dumps(out[col])
        for col in self.BOOL_COLUMNS.get(collection, ()):
            if col in out and out[col] is not None:
                out[col] = 1 if out[col] else 0
        return out

    def _decode(self, collection: str, row) -> dict:
        out = dict(row)
        for col in self.JSON_COLUMNS.get(collection, ()):
            raw = out.get(col)
            if isinstance(raw, str):
                try:
                    out[col] = json.loads(raw)
                except json.JSONDecodeError:
                    out[col] = {}
        for col in self.BOOL_COLUMNS.get(collection, ()):
            if col in out:
                out[col] = bool(out[col])
        return out

    @staticmethod
    def _where(match: dict) -> tuple[str, list]:
        if not match:
            raise StoreError("Refusing to run without a filter")
        clause = " AND ".join(f"{k} = ?" for k in match)
        return clause, list(match.values())

    # ── Records ─────────────────────────────────────────────────

    def select(self, collection: str) -> list[dict]:
        with self._guard(collection), self.db.get_connection() as conn:
            self._columns(conn, collection)
            rows = conn.execute(f"SELECT * FROM {collection}").fetchall()
            return [self._decode(collection, r) for r in rows]

    def insert(self, collection: str, record: dict) -> dict:
        record = dict(record)
        if not record.get("id"):
            record["id"] = str(uuid.uuid4())
        values = self._encode(collection, record)
        with self._guard(collection), self.db.get_connection() as conn:
            self._check_columns(conn, collection, values)
            cols = ", ".join(values)
            marks = ", ".join("?" for _ in values)
            conn.execute(
                f"INSERT INTO {collection} ({cols}) VALUES ({marks})",
                tuple(values.values()),
            )
        return record

    def update(self, collection: str, patch: dict, match: dict):
        values = self._encode(collection, patch)
        where, params = self._where(match)
        with self._guard(collection), self.db.get_connection() as conn:
            self._check_columns(conn, collection, [*values, *match])
            assignments = ", ".join(f"{k} = ?" for k in values)
            conn.execute(
                f"UPDATE {collection} SET {assignments} WHERE {where}",
                (*values.values(), *params),
            )

    def delete(self, collection: str, match: dict):
        where, params = self._where(match)
        with self._guard(collection), self.db.get_connection() as conn:
            self._check_columns(conn, collection, match)
            conn.execute(
                f"DELETE FROM {collection} WHERE {where}", tuple(params)
            )

    def upsert(self, collection: str, record: dict, on_conflict: str):
        record = dict(record)
        if on_conflict not in record:
            raise StoreError(
                f"Upsert record lacks conflict key {on_conflict!r}", collection
            )
        record.setdefault("id", str(uuid.uuid4()))
        values = self._encode(collection, record)
        with self._guard(collection), self.db.get_connection() as conn:
            self._check_columns(conn, collection, values)
            cols = ", ".join(values)
            marks = ", ".join("?" for _ in values)
            # The existing row keeps its id; everything else is replaced
            replaced = ", ".join(
                f"{k} = excluded.{k}" for k in values
                if k not in ("id", on_conflict)
            )
            conn.execute(
                f"INSERT INTO {collection} ({cols}) VALUES ({marks}) "
                f"ON CONFLICT({on_conflict}) DO UPDATE SET {replaced}",
                tuple(values.values()),
            )

    # ── Binary objects ──────────────────────────────────────────

    def _object_path(self, bucket: str, path: str) -> Path:
        base = (self.storage_root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise StoreError(f"Invalid object path: {path}", bucket)
        return target

    def put(self, bucket: str, path: str, data: bytes,
            overwrite: bool = False):
        target = self._object_path(bucket, path)
        if target.exists() and not overwrite:
            raise StoreError("The resource already exists", bucket)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StoreError(str(e), bucket) from e

    def remove(self, bucket: str, paths: list[str]):
        for path in paths:
            target = self._object_path(bucket, path)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(str(e), bucket) from e

    def public_url(self, bucket: str, path: str) -> str:
        return self._object_path(bucket, path).as_uri()

    def exists(self, bucket: str, path: str) -> bool:
        """Whether an object is present (not part of the store contract)."""
        return self._object_path(bucket, path).exists()
