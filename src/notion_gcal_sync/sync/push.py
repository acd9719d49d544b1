"""
Notion → Google Calendar push.
"""

from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.mapper import link_properties
from notion_gcal_sync.mapper import to_event
from notion_gcal_sync.mapper import unlink_properties
from notion_gcal_sync.mapper import validate_description
from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import DatabaseEntry
from notion_gcal_sync.models import EventNotFoundError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from notion_gcal_sync.models import ValidationError
from notion_gcal_sync.notion_client import NotionClient
from notion_gcal_sync.sync.filters import NEWEST_FIRST
from notion_gcal_sync.sync.filters import push_filter
from notion_gcal_sync.sync.utils import delete_linked_event
from notion_gcal_sync.sync.utils import stale_entries
from notion_gcal_sync.sync.utils import write_page


def _create_event(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    event: CalendarEvent,
    calendar_id: str,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Create the event in ``calendar_id`` and write the link back into the entry."""
    if config.dry_run:
        logger.info(f"[DRY RUN] [NOTION→GCAL] Would CREATE: {entry.title!r} in {calendar_id}")
        stats.added += 1
        return

    event.id = None
    created = calendar_client.create_event(calendar_id, event)
    ctx.guard.suppress(created.id)
    stats.added += 1
    logger.debug(f"Created event {created.id} in {calendar_id} from page {entry.id}")
    props = link_properties(config, created.id, calendar_id)
    write_page(config, stats, logger, notion_client, entry, props)


def _update_event(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    event: CalendarEvent,
    calendar_id: str,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Update the linked event in place, recreating it if it vanished."""
    if config.dry_run:
        logger.info(f"[DRY RUN] [NOTION→GCAL] Would UPDATE: {entry.event_id} ({entry.title!r})")
        stats.modified += 1
        return

    event.id = entry.event_id
    try:
        calendar_client.update_event(calendar_id, event)
    except EventNotFoundError:
        logger.info(f"Event {entry.event_id} no longer exists, recreating it")
        _create_event(
            config, stats, logger, ctx, entry, event, calendar_id, notion_client, calendar_client
        )
        return

    ctx.guard.suppress(entry.event_id)
    stats.modified += 1
    logger.debug(f"Updated event {entry.event_id} from page {entry.id}")
    write_page(
        config,
        stats,
        logger,
        notion_client,
        entry,
        link_properties(config, entry.event_id, calendar_id),
    )


def _move_event(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    event: CalendarEvent,
    calendar_id: str,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Delete the event from its old calendar and create it in the selected one."""
    old_calendar_id = entry.event_calendar_id
    if config.dry_run:
        logger.info(
            f"[DRY RUN] [NOTION→GCAL] Would MOVE: {entry.event_id} "
            f"from {old_calendar_id} to {calendar_id}"
        )
        stats.modified += 1
        return

    gone = delete_linked_event(
        config, stats, logger, ctx, calendar_client, old_calendar_id, entry.event_id
    )
    if not gone:
        return
    _create_event(
        config, stats, logger, ctx, entry, event, calendar_id, notion_client, calendar_client
    )


def _drop_dateless(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """An entry lost its date: remove the event it still points at."""
    if not entry.event_id:
        logger.debug(f"Skipping page {entry.id} ({entry.title!r}): no date")
        stats.skipped += 1
        return

    calendar_id = entry.event_calendar_id or config.calendar_id(entry.calendar_name)
    if calendar_id and not delete_linked_event(
        config, stats, logger, ctx, calendar_client, calendar_id, entry.event_id
    ):
        return
    write_page(config, stats, logger, notion_client, entry, unlink_properties(config))


def push_entry(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Reconcile one stale entry into the calendar."""
    event = to_event(entry, config, ctx.tag)
    if event is None:
        _drop_dateless(config, stats, logger, ctx, entry, notion_client, calendar_client)
        return

    try:
        validate_description(entry.description, f"page {entry.id}")
    except ValidationError as e:
        if not config.skip_invalid:
            raise
        logger.warning(f"Skipping invalid page {entry.id} ({entry.title!r}): {e}")
        stats.skipped += 1
        return

    calendar_id = config.calendar_id(entry.calendar_name)
    if calendar_id is None:
        logger.warning(
            f"Page {entry.id} ({entry.title!r}) names unknown calendar "
            f"{entry.calendar_name!r}; skipping"
        )
        stats.skipped += 1
        return

    args = (config, stats, logger, ctx, entry, event, calendar_id, notion_client, calendar_client)
    if not entry.event_id:
        _create_event(*args)
    elif entry.event_calendar_id and entry.event_calendar_id != calendar_id:
        _move_event(*args)
    else:
        _update_event(*args)


def run_push(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Mirror recently edited entries into their calendars.

    Only the first ``page_size`` entries (newest edits first) are visited; the
    rest wait for the next invocation.
    """
    logger.info("Pushing changed entries to Google Calendar...")
    entries = stale_entries(
        config, logger, ctx, notion_client, push_filter(config, ctx), NEWEST_FIRST
    )
    logger.info(f"Processing {len(entries)} changed entries...")

    for entry in entries:
        try:
            push_entry(config, stats, logger, ctx, entry, notion_client, calendar_client)
        except (AuthorizationError, ValidationError):
            raise
        except CalendarSyncError as e:
            logger.error(f"Failed to push page {entry.id} ({entry.title!r}): {e}")
            stats.errors += 1
