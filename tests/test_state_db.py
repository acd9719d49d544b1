"""
Unit tests for StateDatabase: cursor persistence, upsert semantics and
scoping of cursors to one Notion database.
"""

import time

from notion_gcal_sync.db import StateDatabase
from notion_gcal_sync.db import clear_cursors
from notion_gcal_sync.db import query_cursor_status
from tests.conftest import DATABASE_ID
from tests.conftest import PERSONAL_CAL_ID
from tests.conftest import WORK_CAL_ID

OTHER_DATABASE_ID = "db-journal-0002"


class TestCursorAccess:
    def test_missing_cursor_is_none(self, state_db):
        assert state_db.get_cursor(PERSONAL_CAL_ID) is None

    def test_set_and_get(self, state_db):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-1")
        state_db.commit()
        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-1"

    def test_cursors_are_per_calendar(self, state_db):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-p")
        state_db.set_cursor(WORK_CAL_ID, "tok-w")
        state_db.commit()
        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-p"
        assert state_db.get_cursor(WORK_CAL_ID) == "tok-w"

    def test_clear_cursor(self, state_db):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-p")
        state_db.set_cursor(WORK_CAL_ID, "tok-w")
        state_db.clear_cursor(PERSONAL_CAL_ID)
        state_db.commit()
        assert state_db.get_cursor(PERSONAL_CAL_ID) is None
        assert state_db.get_cursor(WORK_CAL_ID) == "tok-w"

    def test_survives_reopen(self, db_path):
        with StateDatabase(db_path, DATABASE_ID) as db:
            db.set_cursor(PERSONAL_CAL_ID, "tok-1")
            db.commit()
        with StateDatabase(db_path, DATABASE_ID) as db:
            assert db.get_cursor(PERSONAL_CAL_ID) == "tok-1"


class TestUpsertSemantics:
    def test_upsert_replaces_token(self, state_db):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-1")
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-2")
        state_db.commit()
        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-2"
        assert len(query_cursor_status(state_db.db_path)) == 1

    def test_upsert_preserves_created_at(self, state_db):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-1")
        state_db.commit()
        row = state_db.conn.execute("SELECT created_at FROM sync_cursor").fetchone()
        original_created_at = row["created_at"]

        time.sleep(1.01)  # Ensure a different timestamp is possible

        state_db.set_cursor(PERSONAL_CAL_ID, "tok-2")
        state_db.commit()
        row = state_db.conn.execute("SELECT created_at, updated_at FROM sync_cursor").fetchone()
        assert row["created_at"] == original_created_at
        assert row["updated_at"] > original_created_at


class TestDatabaseScoping:
    def test_cursors_are_scoped_to_database(self, state_db, db_path):
        """Two databases sharing a calendar keep independent cursors."""
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-tasks")
        state_db.commit()

        with StateDatabase(db_path, OTHER_DATABASE_ID) as other:
            assert other.get_cursor(PERSONAL_CAL_ID) is None
            other.set_cursor(PERSONAL_CAL_ID, "tok-journal")
            other.clear_cursor(PERSONAL_CAL_ID)
            other.commit()

        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-tasks"


class TestModuleHelpers:
    def test_status_of_missing_file(self, tmp_path):
        assert query_cursor_status(tmp_path / "absent.db") == []

    def test_status_rows(self, state_db, db_path):
        state_db.set_cursor(WORK_CAL_ID, "tok-w")
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-p")
        state_db.commit()

        rows = query_cursor_status(db_path)
        assert [(r["database_id"], r["calendar_id"]) for r in rows] == [
            (DATABASE_ID, PERSONAL_CAL_ID),
            (DATABASE_ID, WORK_CAL_ID),
        ]
        assert all(r["updated_at"] > 0 for r in rows)

    def test_clear_cursors_for_one_database(self, state_db, db_path):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-tasks")
        state_db.commit()
        with StateDatabase(db_path, OTHER_DATABASE_ID) as other:
            other.set_cursor(PERSONAL_CAL_ID, "tok-journal")
            other.commit()

        assert clear_cursors(db_path, OTHER_DATABASE_ID) == 1
        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-tasks"
        assert clear_cursors(db_path) == 1
        assert state_db.get_cursor(PERSONAL_CAL_ID) is None

    def test_clear_cursors_dry_run_keeps_rows(self, state_db, db_path):
        state_db.set_cursor(PERSONAL_CAL_ID, "tok-tasks")
        state_db.commit()
        assert clear_cursors(db_path, dry_run=True) == 1
        assert state_db.get_cursor(PERSONAL_CAL_ID) == "tok-tasks"

    def test_clear_cursors_missing_file(self, tmp_path):
        assert clear_cursors(tmp_path / "absent.db") == 0
