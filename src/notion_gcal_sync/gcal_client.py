"""
Google Calendar connectivity wrapper.
"""

import json
import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from pathlib import Path

from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from notion_gcal_sync.mapper import parse_temporal
from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.models import CalendarRequestError
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import EventNotFoundError
from notion_gcal_sync.models import SyncTokenExpiredError

SCOPES = ["https://www.googleapis.com/auth/calendar"]

# Private extended property carrying the id of the Notion database that owns an event.
TAG_PROPERTY = "notionGcalSyncDatabase"

LIST_PAGE_SIZE = 250

logger = logging.getLogger(__name__)


@dataclass
class EventPage:
    """One page of an events listing."""

    events: list[CalendarEvent] = field(default_factory=list)
    next_sync_token: str | None = None
    next_page_token: str | None = None


def build_calendar_service(credentials_file: Path):
    """Build an authenticated Calendar v3 service.

    Accepts either a service-account key file or an authorized-user token file
    (the JSON written by an installed-app OAuth flow).
    """
    if not credentials_file.exists():
        raise CalendarSyncError(f"Google credentials file not found: {credentials_file}")
    try:
        info = json.loads(credentials_file.read_text())
    except ValueError as e:
        raise CalendarSyncError(f"Google credentials file is not valid JSON: {e}") from e

    if info.get("type") == "service_account":
        creds = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    else:
        creds = user_credentials.Credentials.from_authorized_user_info(info, scopes=SCOPES)
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


def _status(error: HttpError) -> int:
    return int(getattr(error.resp, "status", 0) or 0)


def _translate(error: HttpError, action: str) -> CalendarSyncError:
    status = _status(error)
    if status in (401, 403):
        return AuthorizationError(f"Google Calendar denied {action} ({status})")
    if status in (404, 410):
        return EventNotFoundError(f"Not found while trying to {action} ({status})")
    return CalendarRequestError(status, f"{action}: {error}")


def _time_value(value: date | datetime, timezone: str) -> dict:
    # Updates are patches: the unused form is nulled so a switch between
    # all-day and timed does not leave the old one behind.
    if isinstance(value, datetime):
        return {"date": None, "dateTime": value.isoformat(), "timeZone": timezone}
    return {"date": value.isoformat(), "dateTime": None, "timeZone": None}


def event_from_google(item: dict, calendar_id: str) -> CalendarEvent:
    """Convert a Google event resource into a CalendarEvent."""
    start = item.get("start") or {}
    end = item.get("end") or {}
    private = (item.get("extendedProperties") or {}).get("private") or {}
    return CalendarEvent(
        id=item.get("id"),
        title=item.get("summary"),
        start=parse_temporal(start.get("dateTime") or start.get("date")),
        end=parse_temporal(end.get("dateTime") or end.get("date")),
        description=item.get("description") or "",
        location=item.get("location"),
        status=item.get("status") or "confirmed",
        tag=private.get(TAG_PROPERTY),
        calendar_id=calendar_id,
        updated=parse_temporal(item.get("updated")),
    )


def event_to_google(event: CalendarEvent, timezone: str) -> dict:
    """Build the request body for creating/updating an event."""
    body = {
        "summary": event.title or "",
        "description": event.description or "",
        "start": _time_value(event.start, timezone),
        "end": _time_value(event.end, timezone),
        "location": event.location or "",
    }
    if event.tag:
        body["extendedProperties"] = {"private": {TAG_PROPERTY: event.tag}}
    return body


class GoogleCalendarClient:
    """Wrapper for the Calendar v3 operations the engine uses."""

    def __init__(self, service, timezone: str = "UTC"):
        self.service = service
        self.timezone = timezone

    def list_events(
        self,
        calendar_id: str,
        sync_token: str | None = None,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        page_token: str | None = None,
    ) -> EventPage:
        """Fetch one page of events, incrementally (sync_token) or by time window."""
        params: dict = {
            "calendarId": calendar_id,
            "showDeleted": True,
            "maxResults": LIST_PAGE_SIZE,
        }
        if sync_token:
            params["syncToken"] = sync_token
        else:
            if time_min is not None:
                params["timeMin"] = time_min.isoformat()
            if time_max is not None:
                params["timeMax"] = time_max.isoformat()
        if page_token:
            params["pageToken"] = page_token

        try:
            result = self.service.events().list(**params).execute()
        except HttpError as e:
            # 410 Gone on a token listing means the token expired; full resync required.
            if _status(e) == 410 and sync_token:
                raise SyncTokenExpiredError(
                    f"Sync token expired for calendar '{calendar_id}'; window resync required"
                ) from e
            raise _translate(e, f"list events of {calendar_id}") from e

        return EventPage(
            events=[event_from_google(item, calendar_id) for item in result.get("items", [])],
            next_sync_token=result.get("nextSyncToken"),
            next_page_token=result.get("nextPageToken"),
        )

    def get_calendar(self, calendar_id: str) -> dict:
        try:
            return self.service.calendars().get(calendarId=calendar_id).execute()
        except HttpError as e:
            raise _translate(e, f"read calendar {calendar_id}") from e

    def create_event(self, calendar_id: str, event: CalendarEvent) -> CalendarEvent:
        """Create a new event in the calendar and return it as stored."""
        try:
            created = (
                self.service.events()
                .insert(calendarId=calendar_id, body=event_to_google(event, self.timezone))
                .execute()
            )
        except HttpError as e:
            raise _translate(e, f"create event in {calendar_id}") from e
        return event_from_google(created, calendar_id)

    def update_event(self, calendar_id: str, event: CalendarEvent) -> CalendarEvent:
        """Modify an existing event in the calendar."""
        if not event.id:
            raise CalendarSyncError("Cannot update an event without an id")
        try:
            updated = (
                self.service.events()
                .patch(
                    calendarId=calendar_id,
                    eventId=event.id,
                    body=event_to_google(event, self.timezone),
                )
                .execute()
            )
        except HttpError as e:
            raise _translate(e, f"update event {event.id}") from e
        # Deleted events stay addressable (status=cancelled) until purged.
        if updated.get("status") == "cancelled":
            raise EventNotFoundError(f"Event {event.id} was deleted in {calendar_id}")
        return event_from_google(updated, calendar_id)

    def delete_event(self, calendar_id: str, event_id: str):
        """Remove an event from the calendar."""
        try:
            self.service.events().delete(calendarId=calendar_id, eventId=event_id).execute()
        except HttpError as e:
            raise _translate(e, f"delete event {event_id}") from e
