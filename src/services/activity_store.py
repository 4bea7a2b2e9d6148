"""Activity storage backends.

Stores deal in plain row dicts whose ``tags`` column is the comma-joined
string form; conversion to and from :class:`~src.models.activity.Activity`
happens in the service layer.
"""

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from src.utils.errors import StoreError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

COLUMNS = (
    "task_name",
    "description",
    "status",
    "priority",
    "assignee",
    "start_date",
    "due_date",
    "progress",
    "estimated_hours",
    "actual_hours",
    "tags",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_name TEXT NOT NULL,
    description TEXT,
    status TEXT DEFAULT 'Not Started',
    priority TEXT DEFAULT 'Medium',
    assignee TEXT,
    start_date DATE,
    due_date DATE,
    progress INTEGER DEFAULT 0 CHECK (progress >= 0 AND progress <= 100),
    estimated_hours REAL CHECK (estimated_hours >= 0),
    actual_hours REAL CHECK (actual_hours >= 0),
    tags TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activities_status ON activities(status);
CREATE INDEX IF NOT EXISTS idx_activities_assignee ON activities(assignee);
CREATE INDEX IF NOT EXISTS idx_activities_priority ON activities(priority);
CREATE INDEX IF NOT EXISTS idx_activities_due_date ON activities(due_date);
CREATE INDEX IF NOT EXISTS idx_activities_created_at ON activities(created_at);
"""


def utc_now_iso() -> str:
    """Timestamp used for created_at/updated_at (UTC, ISO-8601)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class ActivityStore:
    """Interface shared by the storage backends."""

    backend_name = "unknown"

    def list_activities(self) -> list[dict]:
        raise NotImplementedError

    def get_activity(self, activity_id: int) -> Optional[dict]:
        raise NotImplementedError

    def insert_activity(self, row: dict[str, Any]) -> dict:
        raise NotImplementedError

    def replace_activity(self, activity_id: int, row: dict[str, Any]) -> Optional[dict]:
        raise NotImplementedError

    def delete_activity(self, activity_id: int) -> bool:
        raise NotImplementedError

    def list_assignees(self) -> list[str]:
        raise NotImplementedError

    def count_activities(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources."""
        return


class SqliteActivityStore(ActivityStore):
    """
    SQLite activity store.

    Each operation opens its own connection, so the store can be shared by
    the threads of the dev server. Writes go through SQLite's own locking.
    """

    backend_name = "SQLite"

    def __init__(self, db_path: str | Path = "database.sqlite") -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent != Path("."):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info(
            "SQLite activity store ready",
            db_path=str(self._db_path),
            activities=self.count_activities()
        )

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        try:
            with closing(self._get_conn()) as conn:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.executescript(SCHEMA)
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize SQLite schema: {e}")

    def list_activities(self) -> list[dict]:
        try:
            with closing(self._get_conn()) as conn:
                rows = conn.execute(
                    "SELECT * FROM activities ORDER BY created_at DESC, id DESC"
                ).fetchall()
                return [dict(r) for r in rows]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list activities: {e}")

    def get_activity(self, activity_id: int) -> Optional[dict]:
        try:
            with closing(self._get_conn()) as conn:
                row = conn.execute(
                    "SELECT * FROM activities WHERE id = ?", (activity_id,)
                ).fetchone()
                return dict(row) if row else None
        except sqlite3.Error as e:
            raise StoreError(f"Failed to get activity {activity_id}: {e}")

    def insert_activity(self, row: dict[str, Any]) -> dict:
        now = utc_now_iso()
        values = [row.get(c) for c in COLUMNS] + [now, now]
        placeholders = ", ".join("?" for _ in values)
        sql = (
            f"INSERT INTO activities ({', '.join(COLUMNS)}, created_at, updated_at) "
            f"VALUES ({placeholders})"
        )
        try:
            with closing(self._get_conn()) as conn:
                cur = conn.execute(sql, values)
                conn.commit()
                new_id = cur.lastrowid
                created = conn.execute(
                    "SELECT * FROM activities WHERE id = ?", (new_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create activity: {e}")
        return dict(created)

    def replace_activity(self, activity_id: int, row: dict[str, Any]) -> Optional[dict]:
        assignments = ", ".join(f"{c} = ?" for c in COLUMNS)
        values = [row.get(c) for c in COLUMNS] + [utc_now_iso(), activity_id]
        try:
            with closing(self._get_conn()) as conn:
                cur = conn.execute(
                    f"UPDATE activities SET {assignments}, updated_at = ? WHERE id = ?",
                    values,
                )
                conn.commit()
                if cur.rowcount == 0:
                    return None
                updated = conn.execute(
                    "SELECT * FROM activities WHERE id = ?", (activity_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to update activity {activity_id}: {e}")
        return dict(updated) if updated else None

    def delete_activity(self, activity_id: int) -> bool:
        try:
            with closing(self._get_conn()) as conn:
                cur = conn.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
                conn.commit()
                return cur.rowcount > 0
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete activity {activity_id}: {e}")

    def list_assignees(self) -> list[str]:
        try:
            with closing(self._get_conn()) as conn:
                rows = conn.execute(
                    "SELECT DISTINCT assignee FROM activities "
                    "WHERE assignee IS NOT NULL AND TRIM(assignee) != '' "
                    "ORDER BY assignee"
                ).fetchall()
                return [r["assignee"] for r in rows]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list assignees: {e}")

    def count_activities(self) -> int:
        try:
            with closing(self._get_conn()) as conn:
                return int(conn.execute("SELECT COUNT(*) FROM activities").fetchone()[0])
        except sqlite3.Error as e:
            raise StoreError(f"Failed to count activities: {e}")
