"""
SQLite persistence layer for the ingestion pipeline.

A single database file (output/erp.db) holds:

  snapshots   One JSON document per store name, overwritten in full on
              every mutation. This is the durable copy the PersistedStore
              rehydrates from at startup.
  upload_log  Append-only history of ingested files (what was uploaded,
              into which collection, how many rows were accepted/rejected).

Absence of a snapshot row means "empty store", never an error.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    name        TEXT PRIMARY KEY,
    payload     TEXT NOT NULL,      -- JSON document
    updated_at  TEXT NOT NULL       -- ISO-8601 UTC
);

CREATE TABLE IF NOT EXISTS upload_log (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp       TEXT    NOT NULL,   -- ISO-8601 UTC
    source_file     TEXT    NOT NULL,
    collection      TEXT    NOT NULL,   -- purchaseOrders | openPurchaseOrders | landingRates
    accepted_count  INTEGER NOT NULL DEFAULT 0,
    rejected_count  INTEGER NOT NULL DEFAULT 0,
    detail          TEXT                -- optional JSON blob
);

CREATE INDEX IF NOT EXISTS idx_upload_timestamp ON upload_log (timestamp DESC);
"""


class Database:
    """Thin wrapper around an SQLite database file for the record store."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, name: str, payload: dict) -> None:
        """Insert or fully replace the named snapshot."""
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO snapshots (name, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    payload    = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (name, json.dumps(payload), datetime.now(timezone.utc).isoformat()),
            )

    def load_snapshot(self, name: str) -> Optional[str]:
        """Return the raw JSON text of the named snapshot, or None if absent."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT payload FROM snapshots WHERE name=?", (name,)
            ).fetchone()
        return row["payload"] if row else None

    def delete_snapshot(self, name: str) -> bool:
        """Remove the named snapshot entirely (the store then rehydrates empty)."""
        with self._conn() as conn:
            conn.execute("DELETE FROM snapshots WHERE name=?", (name,))
            return conn.execute("SELECT changes()").fetchone()[0] > 0

    # ------------------------------------------------------------------
    # Upload history
    # ------------------------------------------------------------------

    def log_upload(
        self,
        source_file: str,
        collection: str,
        accepted_count: int,
        rejected_count: int,
        detail: Optional[dict] = None,
    ) -> None:
        """Append one entry to the upload log."""
        with self._conn() as conn:
            conn.execute(
                """INSERT INTO upload_log
                       (timestamp, source_file, collection, accepted_count, rejected_count, detail)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    datetime.now(timezone.utc).isoformat(),
                    source_file,
                    collection,
                    accepted_count,
                    rejected_count,
                    json.dumps(detail) if detail is not None else None,
                ),
            )

    def get_upload_history(self, limit: int = 50, offset: int = 0) -> list[dict]:
        """Return recent uploads, newest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, timestamp, source_file, collection,
                          accepted_count, rejected_count, detail
                   FROM upload_log
                   ORDER BY timestamp DESC, id DESC
                   LIMIT ? OFFSET ?""",
                (limit, offset),
            ).fetchall()
        return [dict(r) for r in rows]
