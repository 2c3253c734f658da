# src/taskflow/storage/record_store.py

from __future__ import annotations

import contextlib
import copy
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.ports import Record

logger = logging.getLogger(__name__)

ACCOUNTS = "accounts"
TASKS = "tasks"
SESSION = "session"

COLLECTIONS: frozenset[str] = frozenset({ACCOUNTS, TASKS, SESSION})


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}")


def _clean_records(raw: Any, collection: str) -> list[Record]:
    if not isinstance(raw, list):
        logger.warning("Collection %s is not a list; treating as empty", collection)
        return []
    return [r for r in raw if isinstance(r, dict)]


class SQLiteRecordStore:
    """
    SQLite-backed record store.

    One row per collection, payload stored as a JSON array.
    Writes replace the payload; there is no transaction spanning a caller's
    read-modify-write cycle (last write wins).

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("RecordStore ready db=%s records=%s", self._db_path, self.count_records())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    payload TEXT NOT NULL DEFAULT '[]',
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def read(self, collection: str) -> list[Record]:
        _check_collection(collection)
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT payload FROM collections WHERE name = ?", (collection,)
            ).fetchone()
        finally:
            conn.close()

        if row is None or not row["payload"]:
            return []
        try:
            raw = json.loads(row["payload"])
        except json.JSONDecodeError:
            logger.warning("Collection %s holds invalid JSON; treating as empty", collection)
            return []
        return _clean_records(raw, collection)

    def write(self, collection: str, records: list[Record]) -> None:
        _check_collection(collection)
        payload = json.dumps(list(records), ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO collections(name, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (collection, payload, time.time()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("RecordStore write collection=%s n=%d", collection, len(records))

    def count_records(self) -> int:
        return sum(len(self.read(c)) for c in sorted(COLLECTIONS))


class InMemoryRecordStore:
    """Process-local record store. Records are copied in and out so callers cannot alias them."""

    def __init__(self, initial: dict[str, list[Record]] | None = None) -> None:
        self._data: dict[str, list[Record]] = {}
        for name, records in (initial or {}).items():
            self.write(name, records)

    def read(self, collection: str) -> list[Record]:
        _check_collection(collection)
        return copy.deepcopy(self._data.get(collection, []))

    def write(self, collection: str, records: list[Record]) -> None:
        _check_collection(collection)
        self._data[collection] = copy.deepcopy(list(records))

    def close(self) -> None:
        return
