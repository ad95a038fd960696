from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .cache import CacheEntry

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    record_count INTEGER,
    stored_at TEXT NOT NULL
);
"""


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path)
    con.row_factory = sqlite3.Row
    return con


def init_db(con: sqlite3.Connection) -> None:
    con.executescript(SCHEMA)
    row = con.execute("SELECT MAX(version) AS v FROM schema_version").fetchone()
    if row["v"] is None or row["v"] < SCHEMA_VERSION:
        con.execute(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (SCHEMA_VERSION, "Cached event result sets"),
        )
    con.commit()


class SqliteStore:
    """Result store backed by a single SQLite file (one row per event code)."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        con = connect(db_path)
        try:
            init_db(con)
        finally:
            con.close()

    def get(self, key: str) -> Optional[CacheEntry]:
        con = connect(self.db_path)
        try:
            row = con.execute(
                "SELECT payload, stored_at FROM cache_entries WHERE key = ?",
                (key,),
            ).fetchone()
        finally:
            con.close()
        if not row:
            return None
        stored_at = datetime.fromisoformat(row["stored_at"])
        if stored_at.tzinfo is None:
            stored_at = stored_at.replace(tzinfo=timezone.utc)
        return CacheEntry(value=json.loads(row["payload"]), stored_at=stored_at)

    def put(self, key: str, value: dict[str, Any], timestamp: datetime) -> None:
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        stored_at = timestamp.astimezone(timezone.utc).isoformat()
        con = connect(self.db_path)
        try:
            con.execute(
                """
                INSERT INTO cache_entries (key, payload, record_count, stored_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    payload=excluded.payload,
                    record_count=excluded.record_count,
                    stored_at=excluded.stored_at
                """,
                (key, json.dumps(value, ensure_ascii=False), value.get("count"), stored_at),
            )
            con.commit()
        finally:
            con.close()

    def keys(self) -> list[str]:
        con = connect(self.db_path)
        try:
            rows = con.execute("SELECT key FROM cache_entries ORDER BY key").fetchall()
        finally:
            con.close()
        return [str(r["key"]) for r in rows]
