"""
Google Calendar → Notion pull.
"""

from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.db import StateDatabase
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.mapper import to_entry_properties
from notion_gcal_sync.mapper import validate_properties
from notion_gcal_sync.models import BatchError
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.models import DatabaseEntry
from notion_gcal_sync.models import NotionRequestError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from notion_gcal_sync.models import ValidationError
from notion_gcal_sync.notion_client import NotionClient
from notion_gcal_sync.notion_client import PageOperation
from notion_gcal_sync.notion_client import raise_for_status
from notion_gcal_sync.sync.cursor import SyncCursor
from notion_gcal_sync.sync.filters import lookup_filter
from notion_gcal_sync.sync.utils import query_entries


def find_linked_entry(
    config: SyncConfig,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    event_id: str,
) -> DatabaseEntry | None:
    """Return the syncable entry whose back-reference points at ``event_id``."""
    entries = query_entries(config, ctx, notion_client, lookup_filter(config, event_id))
    if len(entries) > 1:
        logger.warning(
            f"{len(entries)} pages link event {event_id}; updating {entries[0].id} only"
        )
    return entries[0] if entries else None


def _plan_event(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    event: CalendarEvent,
    notion_client: NotionClient,
) -> PageOperation | None:
    """Decide which page write (if any) mirrors one calendar change."""
    if event.title is None:
        # Deletion stubs carry nothing but an id and a status.
        logger.debug(f"Skipping event {event.id}: no title")
        return None
    if ctx.guard.is_suppressed(event.id):
        logger.debug(f"Skipping event {event.id}: changed by this run")
        return None

    entry = find_linked_entry(config, logger, ctx, notion_client, event.id)

    if event.cancelled:
        if entry is None:
            logger.info(f"Cancelled event {event.id} has no linked page; nothing to do")
            return None
        props = to_entry_properties(event, entry.tags, config, ctx)
        return PageOperation("update", entry.id, props, label=f"unlink {entry.title!r}")

    if entry is not None:
        if (
            ctx.guard.is_stale(entry)
            and event.updated is not None
            and entry.last_edited is not None
            and entry.last_edited > event.updated
        ):
            # Last writer wins: the page is newer and will be pushed next run.
            logger.debug(f"Page {entry.id} edited after event {event.id}; keeping page")
            return None
        props = to_entry_properties(event, entry.tags, config, ctx, linked=entry)
        op = PageOperation("update", entry.id, props, label=f"update {entry.title!r}")
    else:
        props = to_entry_properties(event, [], config, ctx)
        op = PageOperation("create", ctx.database_id, props, label=f"create {event.title!r}")

    try:
        validate_properties(props, config, f"event {event.id}")
    except ValidationError as e:
        if not config.skip_invalid:
            raise
        logger.warning(f"Skipping invalid event {event.id} ({event.title!r}): {e}")
        stats.skipped += 1
        return None
    return op


def submit_batch(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    notion_client: NotionClient,
    operations: list[PageOperation],
):
    """Send all planned page writes at once and interpret every item's status.

    Authorization and not-found statuses abort the database. Any other failed
    item is logged on its own and all of them are raised together afterwards.
    """
    if not operations:
        return

    if config.dry_run:
        for op in operations:
            logger.info(f"[DRY RUN] [GCAL→NOTION] Would {op.label}")
            if op.kind == "create":
                stats.added += 1
            else:
                stats.modified += 1
        return

    failures: list[NotionRequestError] = []
    for result in notion_client.batch(operations):
        op = result.operation
        if result.ok:
            if op.kind == "create":
                stats.added += 1
            else:
                stats.modified += 1
            logger.debug(f"[GCAL→NOTION] {op.label}")
            continue
        if result.status_code in (401, 403, 404):
            raise_for_status(result.status_code, f"{op.label}: {result.message}")
        failure = NotionRequestError(result.status_code, f"{op.label}: {result.message}")
        logger.error(f"Batch item failed: {failure}")
        stats.errors += 1
        failures.append(failure)

    if failures:
        raise BatchError(failures)


def _pull_calendar(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    calendar_name: str,
    calendar_id: str,
    cursor: SyncCursor,
    notion_client: NotionClient,
):
    events, next_token = cursor.fetch(calendar_id, full_resync=config.full_resync)
    own = [e for e in events if e.tag == ctx.tag]
    logger.info(
        f"Calendar {calendar_name}: {len(events)} changed events, "
        f"{len(own)} belong to {ctx.database_name}"
    )

    operations = []
    for event in own:
        op = _plan_event(config, stats, logger, ctx, event, notion_client)
        if op is not None:
            operations.append(op)

    submit_batch(config, stats, logger, notion_client, operations)
    cursor.commit(calendar_id, next_token)


def run_pull(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
    state_db: StateDatabase,
):
    """Import calendar-side changes for every configured calendar."""
    logger.info("Pulling calendar changes into Notion...")
    cursor = SyncCursor(config, logger, calendar_client, state_db)
    for calendar_name, calendar_id in config.calendars.items():
        _pull_calendar(
            config, stats, logger, ctx, calendar_name, calendar_id, cursor, notion_client
        )
