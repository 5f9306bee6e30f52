"""
SQLite State Repository

Architectural Intent:
- Persistent registry of tracked resource snapshots using SQLite (stdlib)
- Keeps an append-only history of reconcile operations per address
- Uses WAL mode for concurrent read/write support

Design Decisions:
- Single database file at configurable path (default: lambdaform.db)
- Auto-creates tables on first use
- Snapshots stored as JSON text; timestamps as ISO 8601 strings
"""

from __future__ import annotations
import sqlite3
import json
import logging
from datetime import datetime, UTC
from typing import Optional

logger = logging.getLogger(__name__)


class SQLiteStateRepository:
    """Resource snapshot registry backed by SQLite."""

    def __init__(self, db_path: str = "lambdaform.db"):
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Open database connection and create tables."""
        self._conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.row_factory = sqlite3.Row
        self._create_tables()
        logger.info("State repository connected: %s", self._db_path)

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _create_tables(self) -> None:
        assert self._conn is not None
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS resources (
                address TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                resource_id TEXT NOT NULL,
                state TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS operations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                address TEXT NOT NULL,
                operation TEXT NOT NULL,
                resource_id TEXT DEFAULT '',
                success INTEGER NOT NULL,
                executed_at TEXT NOT NULL,
                details TEXT DEFAULT ''
            );

            CREATE INDEX IF NOT EXISTS idx_resources_kind ON resources(kind);
            CREATE INDEX IF NOT EXISTS idx_operations_address ON operations(address);
        """)

    # -- Resources -----------------------------------------------------------

    def load(self, address: str) -> Optional[dict]:
        """Return the stored snapshot for an address, or None."""
        assert self._conn is not None
        row = self._conn.execute(
            "SELECT state FROM resources WHERE address = ?", (address,)
        ).fetchone()
        return json.loads(row["state"]) if row else None

    def save(self, address: str, kind: str, resource_id: str, state: dict) -> None:
        assert self._conn is not None
        self._conn.execute(
            """INSERT INTO resources (address, kind, resource_id, state, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(address) DO UPDATE SET
                   kind = excluded.kind,
                   resource_id = excluded.resource_id,
                   state = excluded.state,
                   updated_at = excluded.updated_at""",
            (address, kind, resource_id, json.dumps(state),
             datetime.now(UTC).isoformat()),
        )
        self._conn.commit()
        logger.debug("Saved %s %s (id=%s)", kind, address, resource_id)

    def remove(self, address: str) -> None:
        assert self._conn is not None
        self._conn.execute("DELETE FROM resources WHERE address = ?", (address,))
        self._conn.commit()

    def list_resources(self, kind: Optional[str] = None) -> list[dict]:
        """List tracked resources, optionally filtered by kind."""
        assert self._conn is not None
        if kind:
            rows = self._conn.execute(
                "SELECT * FROM resources WHERE kind = ? ORDER BY address",
                (kind,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM resources ORDER BY address"
            ).fetchall()
        return [{**dict(r), "state": json.loads(r["state"])} for r in rows]

    # -- Operations ----------------------------------------------------------

    def record_operation(
        self,
        address: str,
        operation: str,
        success: bool,
        resource_id: str = "",
        details: str = "",
    ) -> int:
        """Record a reconcile operation. Returns the operation ID."""
        assert self._conn is not None
        cursor = self._conn.execute(
            """INSERT INTO operations
               (address, operation, resource_id, success, executed_at, details)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (address, operation, resource_id, int(success),
             datetime.now(UTC).isoformat(), details),
        )
        self._conn.commit()
        return cursor.lastrowid

    def get_operations(
        self,
        address: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict]:
        """Get operation history, newest first."""
        assert self._conn is not None
        if address:
            rows = self._conn.execute(
                "SELECT * FROM operations WHERE address = ? ORDER BY id DESC LIMIT ?",
                (address, limit),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM operations ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [dict(r) for r in rows]
