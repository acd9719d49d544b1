"""
SQLite state persistence for incremental sync cursors.
"""

import logging
import sqlite3
import time
from pathlib import Path

from notion_gcal_sync.models import CalendarSyncError


class StateDatabase:
    """Manages the SQLite state database holding one sync cursor per calendar.

    Cursors are scoped to a Notion database id: two logical databases sharing a
    calendar each advance their own position, so one database's pull can never
    consume changes the other has not seen yet.
    """

    def __init__(self, db_path: Path, database_id: str):
        self.db_path = db_path
        self.database_id = database_id
        self.conn: sqlite3.Connection | None = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self):
        """Initialize and connect to the state database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise CalendarSyncError(f"Cannot open state database {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row  # Enable column access by name
        self._init_schema()

    def _init_schema(self):
        """Create the sync_cursor table if it doesn't exist."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sync_cursor (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                database_id TEXT NOT NULL,
                calendar_id TEXT NOT NULL,
                sync_token TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                UNIQUE(database_id, calendar_id)
            )
        """)
        self.conn.commit()

    # ------------------------------------------------------------------ #
    # Cursor access, scoped to the current Notion database               #
    # ------------------------------------------------------------------ #

    def get_cursor(self, calendar_id: str) -> str | None:
        """Return the stored sync token for a calendar, or None."""
        cursor = self.conn.execute(
            "SELECT sync_token FROM sync_cursor WHERE database_id = ? AND calendar_id = ?",
            (self.database_id, calendar_id),
        )
        row = cursor.fetchone()
        return row["sync_token"] if row else None

    def set_cursor(self, calendar_id: str, sync_token: str):
        """Insert or replace the sync token for a calendar, keeping created_at."""
        timestamp = int(time.time())
        self.conn.execute(
            "INSERT INTO sync_cursor "
            "(database_id, calendar_id, sync_token, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(database_id, calendar_id) DO UPDATE SET "
            "sync_token = excluded.sync_token, updated_at = excluded.updated_at",
            (self.database_id, calendar_id, sync_token, timestamp, timestamp),
        )

    def clear_cursor(self, calendar_id: str):
        """Forget the sync token for one calendar."""
        logging.getLogger(__name__).debug(
            "Clearing sync cursor for %s (database %s)", calendar_id, self.database_id
        )
        self.conn.execute(
            "DELETE FROM sync_cursor WHERE database_id = ? AND calendar_id = ?",
            (self.database_id, calendar_id),
        )

    def commit(self):
        """Commit pending transactions."""
        if self.conn:
            self.conn.commit()

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None


def query_cursor_status(db_path: Path) -> list:
    """
    Return one row per stored cursor for every database in the state file.

    Each row exposes: database_id, calendar_id, updated_at.
    Returns an empty list when the DB file does not exist or has no
    sync_cursor table yet.
    """
    if not db_path.exists():
        return []
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        if "sync_cursor" not in tables:
            return []
        cursor = conn.execute("""
            SELECT database_id, calendar_id, updated_at
            FROM sync_cursor
            ORDER BY database_id, calendar_id
        """)
        return cursor.fetchall()
    finally:
        conn.close()


def clear_cursors(db_path: Path, database_id: str | None = None, dry_run: bool = False) -> int:
    """
    Delete stored cursors (all, or those of one database).

    Operates directly on the file without the database-scoped StateDatabase
    machinery. Returns the number of cursors matched.
    """
    if not db_path.exists():
        return 0
    conn = sqlite3.connect(db_path)
    try:
        if database_id:
            where, params = " WHERE database_id = ?", (database_id,)
        else:
            where, params = "", ()
        count = conn.execute(f"SELECT COUNT(*) FROM sync_cursor{where}", params).fetchone()[0]
        if not dry_run:
            conn.execute(f"DELETE FROM sync_cursor{where}", params)
            conn.commit()
    except sqlite3.OperationalError:
        return 0  # no sync_cursor table yet
    finally:
        conn.close()
    return count
