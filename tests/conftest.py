"""
Shared pytest fixtures and Notion page helpers.
"""

import logging

import pytest

from notion_gcal_sync.context import SchemaCache
from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.db import StateDatabase
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from tests.fake_clients import FakeCalendarClient
from tests.fake_clients import FakeNotionClient

DATABASE_ID = "db-tasks-0001"
PERSONAL_CAL_ID = "personal@example.com"
WORK_CAL_ID = "work@example.com"

# Last edit far enough in the past that any stamp written during a test is newer.
EDITED = "2026-03-01T09:00:00.000Z"

SCHEMA = {
    "Name": {"type": "title"},
    "Date": {"type": "date"},
    "Description": {"type": "rich_text"},
    "Location": {"type": "rich_text"},
    "Tags": {"type": "multi_select"},
    "Status": {"type": "status"},
    "Event ID": {"type": "rich_text"},
    "Current Calendar": {"type": "rich_text"},
    "Calendar": {"type": "select"},
    "Last Synced": {"type": "date"},
}


def rich_text(content: str) -> list[dict]:
    if not content:
        return []
    return [{"type": "text", "text": {"content": content}, "plain_text": content}]


def make_page(
    page_id: str,
    title: str = "Task",
    start: str | None = None,
    end: str | None = None,
    *,
    tags: tuple = (),
    status: str | None = None,
    calendar: str | None = None,
    event_id: str = "",
    event_calendar: str = "",
    description: str = "",
    last_synced: str | None = None,
    last_edited: str = EDITED,
) -> dict:
    """Return a Notion page payload shaped like a database query result."""
    props = {
        "Name": {"type": "title", "title": rich_text(title)},
        "Date": {"type": "date", "date": {"start": start, "end": end} if start else None},
        "Description": {"type": "rich_text", "rich_text": rich_text(description)},
        "Tags": {"type": "multi_select", "multi_select": [{"name": t} for t in tags]},
        "Event ID": {"type": "rich_text", "rich_text": rich_text(event_id)},
        "Current Calendar": {"type": "rich_text", "rich_text": rich_text(event_calendar)},
        "Last Synced": {
            "type": "date",
            "date": {"start": last_synced, "end": None} if last_synced else None,
        },
    }
    if status is not None:
        props["Status"] = {"type": "status", "status": {"name": status}}
    if calendar is not None:
        props["Calendar"] = {"type": "select", "select": {"name": calendar}}
    return {
        "object": "page",
        "id": page_id,
        "archived": False,
        "last_edited_time": last_edited,
        "properties": props,
    }


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test_state.db"


@pytest.fixture
def state_db(db_path):
    with StateDatabase(db_path, DATABASE_ID) as db:
        yield db


@pytest.fixture
def sync_config(db_path, tmp_path):
    return SyncConfig(
        notion_token="secret_test",
        google_credentials=tmp_path / "credentials.json",
        databases={"tasks": DATABASE_ID},
        calendars={"Personal": PERSONAL_CAL_ID, "Work": WORK_CAL_ID},
        default_calendar="Personal",
        state_db_path=db_path,
        dry_run=False,
        verbose=False,
    )


@pytest.fixture
def sync_logger():
    return logging.getLogger("test_sync")


@pytest.fixture
def sync_stats():
    return SyncStats()


@pytest.fixture
def notion():
    return FakeNotionClient({DATABASE_ID: dict(SCHEMA)})


@pytest.fixture
def gcal():
    return FakeCalendarClient([PERSONAL_CAL_ID, WORK_CAL_ID])


@pytest.fixture
def ctx(notion):
    return SyncContext(database_name="tasks", database_id=DATABASE_ID, schema=SchemaCache(notion))
