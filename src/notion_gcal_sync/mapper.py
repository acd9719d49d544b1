"""
Translation between Notion pages and calendar events.

Everything here is side-effect free. Date-only values travel as ``date``
objects end to end, so all-day entries never pass through an instant and
cannot shift across midnight when the local offset differs from UTC.
"""

from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from notion_gcal_sync.guard import sync_timestamp
from notion_gcal_sync.models import MAX_DESCRIPTION_LENGTH
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.models import Control
from notion_gcal_sync.models import DatabaseEntry
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import ValidationError

if TYPE_CHECKING:
    from notion_gcal_sync.context import SyncContext

ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def parse_temporal(value: str | None, timezone: str | None = None) -> date | datetime | None:
    """Parse a Notion/Google ISO value; date-only strings stay ``date``.

    A naive timestamp is read in ``timezone`` (UTC when not given).
    """
    if not value:
        return None
    if len(value) == 10:
        return date.fromisoformat(value)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(timezone) if timezone else UTC)
    return parsed


def _localize(value: datetime, timezone: str) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(timezone))
    return value


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _plain_text(items: list | None) -> str:
    # API responses carry plain_text; payloads built locally only have text.content
    return "".join(
        item.get("plain_text") or item.get("text", {}).get("content", "") for item in items or []
    )


def _rich_text(content: str | None) -> list[dict]:
    if not content:
        return []
    return [{"type": "text", "text": {"content": content}}]


def _date_value(start: date | datetime | None, end: date | datetime | None = None) -> dict | None:
    if start is None:
        return None
    return {"start": start.isoformat(), "end": end.isoformat() if end is not None else None}


def _option_name(prop: dict) -> str | None:
    """Name of a select or status option, whichever kind the property is."""
    option = prop.get("status") or prop.get("select")
    return option.get("name") if option else None


# ---------------------------------------------------------------------------
# Notion page → DatabaseEntry
# ---------------------------------------------------------------------------


def parse_page(page: dict, config: SyncConfig) -> DatabaseEntry:
    """Build a DatabaseEntry from a Notion page payload.

    This is the only place where user-visible tag/status labels are turned into
    ``Control`` members.
    """
    names = config.properties
    props = page.get("properties", {})

    date_prop = (props.get(names.date) or {}).get("date") or {}
    # Notion returns a naive start/end together with time_zone when one was set.
    date_zone = date_prop.get("time_zone") or config.timezone
    tags = [opt["name"] for opt in (props.get(names.tags) or {}).get("multi_select", [])]
    status = _option_name(props[names.status]) if names.status in props else None
    calendar_name = _option_name(props[names.calendar]) if names.calendar in props else None
    last_synced_prop = (props.get(names.last_synced) or {}).get("date") or {}
    last_synced = parse_temporal(last_synced_prop.get("start"))
    if last_synced is not None and not isinstance(last_synced, datetime):
        last_synced = datetime.combine(last_synced, datetime.min.time(), tzinfo=UTC)

    controls = set()
    if config.label(Control.REMOVE) in tags:
        controls.add(Control.REMOVE)
    if config.label(Control.IGNORE) in tags:
        controls.add(Control.IGNORE)
    if status is not None and status == config.label(Control.COMPLETED):
        controls.add(Control.COMPLETED)

    location = None
    if names.location in props:
        location = _plain_text(props[names.location].get("rich_text")) or None

    return DatabaseEntry(
        id=page["id"],
        title=_plain_text((props.get(names.title) or {}).get("title")),
        start=parse_temporal(date_prop.get("start"), date_zone),
        end=parse_temporal(date_prop.get("end"), date_zone),
        description=_plain_text((props.get(names.description) or {}).get("rich_text")),
        location=location,
        tags=tags,
        controls=frozenset(controls),
        status=status,
        event_id=_plain_text((props.get(names.event_id) or {}).get("rich_text")),
        event_calendar_id=_plain_text((props.get(names.event_calendar) or {}).get("rich_text")),
        calendar_name=calendar_name,
        last_synced=last_synced,
        last_edited=parse_temporal(page.get("last_edited_time")),
    )


# ---------------------------------------------------------------------------
# DatabaseEntry → CalendarEvent
# ---------------------------------------------------------------------------


def to_event(entry: DatabaseEntry, config: SyncConfig, tag: str) -> CalendarEvent | None:
    """Map an entry to the event it should produce, or None when it has no date.

    Notion stores an inclusive end date for all-day ranges while the calendar
    expects an exclusive one, hence the extra day. A timed entry without an
    end gets ``default_duration_minutes`` on the calendar side only.
    """
    if entry.start is None:
        return None

    if entry.all_day:
        start = entry.start
        end = _as_date(entry.end or entry.start) + ONE_DAY
    else:
        start = _localize(entry.start, config.timezone)
        if isinstance(entry.end, datetime):
            end = _localize(entry.end, config.timezone)
        else:
            end = start + timedelta(minutes=config.default_duration_minutes)

    return CalendarEvent(
        id=entry.event_id or None,
        title=entry.title,
        start=start,
        end=end,
        description=entry.description,
        location=entry.location,
        tag=tag,
        calendar_id=config.calendar_id(entry.calendar_name),
    )


# ---------------------------------------------------------------------------
# CalendarEvent → Notion properties
# ---------------------------------------------------------------------------


def _entry_range(
    event: CalendarEvent, config: SyncConfig, linked: DatabaseEntry | None
) -> tuple[date | datetime | None, date | datetime | None]:
    if event.start is None:
        return None, None
    if event.all_day:
        if event.end is None:
            return event.start, None
        inclusive_end = _as_date(event.end) - ONE_DAY
        if inclusive_end <= event.start:
            return event.start, None
        return event.start, inclusive_end
    if (
        linked is not None
        and linked.end is None
        and event.end is not None
        and event.end - event.start == timedelta(minutes=config.default_duration_minutes)
    ):
        # The end was synthesized by to_event; the entry never had one.
        return event.start, None
    return event.start, event.end


def calendar_name_for(config: SyncConfig, calendar_id: str | None) -> str | None:
    for name, cal_id in config.calendars.items():
        if cal_id == calendar_id:
            return name
    return None


def to_entry_properties(
    event: CalendarEvent,
    existing_tags: list[str],
    config: SyncConfig,
    ctx: "SyncContext",
    now: datetime | None = None,
    linked: DatabaseEntry | None = None,
) -> dict:
    """Build the Notion property payload that mirrors ``event``.

    A cancelled event unlinks the entry instead of mirroring it and, when
    ``tag_cancelled_events`` is set, appends the removal label to the tags
    already on the entry. ``linked`` is the entry currently mirroring the
    event: if it has no end and the event still spans the default duration,
    the entry stays without an end.
    """
    names = config.properties
    tags = list(existing_tags)
    props: dict = {
        names.last_synced: {"date": {"start": sync_timestamp(now).isoformat()}},
    }

    if event.cancelled:
        props[names.event_id] = {"rich_text": []}
        props[names.event_calendar] = {"rich_text": []}
        remove_label = config.label(Control.REMOVE)
        if config.tag_cancelled_events and remove_label not in tags:
            tags.append(remove_label)
        props[names.tags] = {"multi_select": [{"name": t} for t in tags]}
        return props

    start, end = _entry_range(event, config, linked)
    props[names.title] = {"title": _rich_text(event.title or "")}
    props[names.date] = {"date": _date_value(start, end)}
    props[names.description] = {"rich_text": _rich_text(event.description)}
    props[names.tags] = {"multi_select": [{"name": t} for t in tags]}
    props[names.event_id] = {"rich_text": _rich_text(event.id)}
    props[names.event_calendar] = {"rich_text": _rich_text(event.calendar_id)}

    calendar_name = calendar_name_for(config, event.calendar_id)
    if calendar_name and ctx.has_property(names.calendar):
        props[names.calendar] = {"select": {"name": calendar_name}}
    if ctx.has_property(names.location):
        props[names.location] = {"rich_text": _rich_text(event.location)}
    return props


def link_properties(config: SyncConfig, event_id: str, calendar_id: str, now=None) -> dict:
    """Properties written back to an entry after its event was created or moved."""
    names = config.properties
    return {
        names.event_id: {"rich_text": _rich_text(event_id)},
        names.event_calendar: {"rich_text": _rich_text(calendar_id)},
        names.last_synced: {"date": {"start": sync_timestamp(now).isoformat()}},
    }


def unlink_properties(config: SyncConfig, now=None) -> dict:
    """Properties that clear an entry's event back-references."""
    names = config.properties
    return {
        names.event_id: {"rich_text": []},
        names.event_calendar: {"rich_text": []},
        names.last_synced: {"date": {"start": sync_timestamp(now).isoformat()}},
    }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_description(description: str | None, subject: str = "entry"):
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description of {subject} is {len(description)} characters "
            f"(limit {MAX_DESCRIPTION_LENGTH})"
        )


def validate_properties(props: dict, config: SyncConfig, subject: str = "entry"):
    """Reject a property payload Notion would refuse."""
    description = props.get(config.properties.description, {}).get("rich_text")
    validate_description(_plain_text(description), subject)
