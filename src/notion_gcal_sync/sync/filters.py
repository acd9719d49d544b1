"""
Notion query predicates used by the sync phases.

Every query the engine issues excludes entries carrying the IGNORE tag.
"""

from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.models import Control
from notion_gcal_sync.models import SyncConfig

NEWEST_FIRST = [{"timestamp": "last_edited_time", "direction": "descending"}]


def lacks_tag(config: SyncConfig, control: Control) -> dict:
    return {
        "property": config.properties.tags,
        "multi_select": {"does_not_contain": config.label(control)},
    }


def has_tag(config: SyncConfig, control: Control) -> dict:
    return {
        "property": config.properties.tags,
        "multi_select": {"contains": config.label(control)},
    }


def event_linked(config: SyncConfig) -> dict:
    return {"property": config.properties.event_id, "rich_text": {"is_not_empty": True}}


def event_id_equals(config: SyncConfig, event_id: str) -> dict:
    return {"property": config.properties.event_id, "rich_text": {"equals": event_id}}


def _status_predicate(config: SyncConfig, ctx: SyncContext, operator: str) -> dict:
    kind = ctx.property_type(config.properties.status) or "status"
    return {
        "property": config.properties.status,
        kind: {operator: config.label(Control.COMPLETED)},
    }


def removal_filter(config: SyncConfig) -> dict:
    """Entries tagged for total removal that still link an event."""
    return {
        "and": [
            has_tag(config, Control.REMOVE),
            lacks_tag(config, Control.IGNORE),
            event_linked(config),
        ]
    }


def completed_filter(config: SyncConfig, ctx: SyncContext) -> dict | None:
    """Completed entries that still link an event, minus exempt calendars.

    An entry with no calendar selected lives in the default calendar, so
    exempting the default also drops entries with an empty selection.
    Returns None when every entry of the database is exempt.
    """
    exempt = config.completed_exempt_calendars
    predicates = [
        _status_predicate(config, ctx, "equals"),
        lacks_tag(config, Control.IGNORE),
        event_linked(config),
    ]
    if not ctx.has_property(config.properties.calendar):
        # Without a calendar property every entry belongs to the default calendar.
        return None if config.default_calendar in exempt else {"and": predicates}

    for name in sorted(exempt):
        predicates.append(
            {"property": config.properties.calendar, "select": {"does_not_equal": name}}
        )
    if config.default_calendar in exempt:
        predicates.append(
            {"property": config.properties.calendar, "select": {"is_not_empty": True}}
        )
    return {"and": predicates}


def push_filter(config: SyncConfig, ctx: SyncContext) -> dict:
    """Entries eligible to be mirrored into the calendar."""
    predicates = [
        lacks_tag(config, Control.IGNORE),
        lacks_tag(config, Control.REMOVE),
    ]
    if ctx.has_property(config.properties.status):
        predicates.append(_status_predicate(config, ctx, "does_not_equal"))
    return {"and": predicates}


def lookup_filter(config: SyncConfig, event_id: str) -> dict:
    """The (single) syncable entry linked to an event id."""
    return {"and": [event_id_equals(config, event_id), lacks_tag(config, Control.IGNORE)]}
