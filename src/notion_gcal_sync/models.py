"""
Pure data models. No HTTP, Google or sqlite imports.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from enum import Enum
from pathlib import Path

DEFAULT_STATE_DB = Path.home() / ".local/share/notion-gcal-sync-state.db"
DEFAULT_CONFIG = Path.home() / ".config/notion-gcal-sync.conf"

# Notion rejects rich_text content longer than this per text object.
MAX_DESCRIPTION_LENGTH = 2000

EVENT_STATUS_CANCELLED = "cancelled"


class CalendarSyncError(Exception):
    """Base exception for calendar sync errors."""

    pass


class NotFoundError(CalendarSyncError):
    """A linked page or event does not exist (any more)."""


class EventNotFoundError(NotFoundError):
    """The calendar backend reports the event as missing or already deleted."""


class ValidationError(CalendarSyncError):
    """Mapped properties would be rejected by the target store."""


class AuthorizationError(CalendarSyncError):
    """Credentials were rejected or lack access to the requested resource."""


class SyncTokenExpiredError(CalendarSyncError):
    """The calendar backend rejected the stored sync cursor; a window resync is required."""


class CalendarRequestError(CalendarSyncError):
    """Google Calendar API request failed."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Google Calendar API request failed ({status_code}): {message}")


class NotionRequestError(CalendarSyncError):
    """Notion API request failed."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Notion API request failed ({status_code}): {message}")


class BatchError(CalendarSyncError):
    """One or more items of a submitted batch failed."""

    def __init__(self, failures: list["NotionRequestError"]):
        self.failures = failures
        details = "; ".join(str(f) for f in failures)
        super().__init__(f"{len(failures)} batch item(s) failed: {details}")


class Control(Enum):
    """Reserved control values a user can set on a database entry."""

    REMOVE = "remove"  # tag: delete from both systems
    IGNORE = "ignore"  # tag: never sync this entry
    COMPLETED = "completed"  # status: delete from the calendar only


DEFAULT_CONTROL_LABELS = {
    Control.REMOVE: "Delete",
    Control.IGNORE: "Ignore",
    Control.COMPLETED: "Done",
}


@dataclass
class PropertyNames:
    """Names of the Notion database properties the engine reads and writes."""

    title: str = "Name"
    date: str = "Date"
    description: str = "Description"
    location: str = "Location"
    tags: str = "Tags"
    status: str = "Status"
    event_id: str = "Event ID"
    event_calendar: str = "Current Calendar"
    calendar: str = "Calendar"
    last_synced: str = "Last Synced"


@dataclass
class SyncConfig:
    """Configuration for a sync invocation."""

    notion_token: str
    google_credentials: Path
    databases: dict[str, str]  # logical name → Notion database id
    calendars: dict[str, str]  # calendar name → Google calendar id
    default_calendar: str
    state_db_path: Path = field(default_factory=lambda: DEFAULT_STATE_DB)
    properties: PropertyNames = field(default_factory=PropertyNames)
    control_labels: dict[Control, str] = field(
        default_factory=lambda: dict(DEFAULT_CONTROL_LABELS)
    )
    timezone: str = "UTC"
    past_days: int = 30
    future_days: int = 1825
    default_duration_minutes: int = 60
    page_size: int = 100
    archive_on_delete: bool = True
    tag_cancelled_events: bool = True
    skip_invalid: bool = True
    completed_exempt_calendars: frozenset[str] = frozenset()
    full_resync: bool = False
    dry_run: bool = False
    verbose: bool = False
    yes: bool = False  # Auto-confirm without prompting

    def label(self, control: Control) -> str:
        """Return the user-visible Notion label for a control value."""
        return self.control_labels[control]

    def calendar_id(self, name: str | None) -> str | None:
        """Resolve a calendar name (or the default when empty) to its Google id."""
        return self.calendars.get(name or self.default_calendar)


@dataclass
class SyncStats:
    """Statistics for sync operation."""

    added: int = 0
    modified: int = 0
    deleted: int = 0
    archived: int = 0
    skipped: int = 0
    errors: int = 0
    failed_databases: list[str] = field(default_factory=list)


@dataclass
class DatabaseEntry:
    """A Notion page as seen by the reconciliation engine."""

    id: str
    title: str
    start: date | datetime | None
    end: date | datetime | None = None
    description: str = ""
    location: str | None = None
    tags: list[str] = field(default_factory=list)
    controls: frozenset[Control] = frozenset()
    status: str | None = None
    event_id: str = ""
    event_calendar_id: str = ""
    calendar_name: str | None = None
    last_synced: datetime | None = None
    last_edited: datetime | None = None

    @property
    def all_day(self) -> bool:
        return self.start is not None and not isinstance(self.start, datetime)

    def has(self, control: Control) -> bool:
        return control in self.controls


@dataclass
class CalendarEvent:
    """A Google Calendar event reduced to the fields the engine syncs."""

    id: str | None
    title: str | None
    start: date | datetime | None
    end: date | datetime | None = None
    description: str = ""
    location: str | None = None
    status: str = "confirmed"
    tag: str | None = None
    calendar_id: str | None = None
    updated: datetime | None = None

    @property
    def all_day(self) -> bool:
        return self.start is not None and not isinstance(self.start, datetime)

    @property
    def cancelled(self) -> bool:
        return self.status == EVENT_STATUS_CANCELLED
