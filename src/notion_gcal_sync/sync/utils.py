"""
Helpers shared by the deletion, push and pull phases.
"""

from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.mapper import parse_page
from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import DatabaseEntry
from notion_gcal_sync.models import EventNotFoundError
from notion_gcal_sync.models import NotFoundError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from notion_gcal_sync.notion_client import NotionClient


def query_entries(
    config: SyncConfig,
    ctx: SyncContext,
    notion_client: NotionClient,
    filter: dict,
    sorts: list[dict] | None = None,
) -> list[DatabaseEntry]:
    """Run one bounded query against the context's database."""
    pages = notion_client.query_database(
        ctx.database_id, filter=filter, sorts=sorts, page_size=config.page_size
    )
    return [parse_page(page, config) for page in pages]


def stale_entries(
    config: SyncConfig,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    filter: dict,
    sorts: list[dict] | None = None,
) -> list[DatabaseEntry]:
    """Like :func:`query_entries`, minus entries already in sync."""
    entries = query_entries(config, ctx, notion_client, filter, sorts)
    stale = [e for e in entries if ctx.guard.is_stale(e)]
    if len(stale) != len(entries):
        logger.debug(f"Skipping {len(entries) - len(stale)} entries already in sync")
    return stale


def delete_linked_event(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    calendar_client: GoogleCalendarClient,
    calendar_id: str,
    event_id: str,
) -> bool:
    """Delete an event; True when it is gone afterwards (deleted or already missing).

    Only a confirmed deletion enters the suppression set. Authorization
    failures propagate; any other failure is counted and reported as False.
    """
    if config.dry_run:
        logger.info(f"[DRY RUN] Would DELETE event {event_id} from {calendar_id}")
        stats.deleted += 1
        return True

    try:
        calendar_client.delete_event(calendar_id, event_id)
    except EventNotFoundError:
        logger.debug(f"Event {event_id} already gone from {calendar_id}")
        return True
    except AuthorizationError:
        raise
    except CalendarSyncError as e:
        logger.error(f"Failed to delete event {event_id} from {calendar_id}: {e}")
        stats.errors += 1
        return False

    ctx.guard.suppress(event_id)
    stats.deleted += 1
    logger.debug(f"Deleted event {event_id} from {calendar_id}")
    return True


def write_page(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    notion_client: NotionClient,
    entry: DatabaseEntry,
    properties: dict | None = None,
    archived: bool | None = None,
) -> bool:
    """Patch one page, logging instead of raising for per-item failures."""
    action = "ARCHIVE" if archived else "UPDATE"
    if config.dry_run:
        logger.info(f"[DRY RUN] Would {action} page {entry.id} ({entry.title!r})")
        return True

    try:
        if archived:
            notion_client.archive_page(entry.id)
        else:
            notion_client.update_page(entry.id, properties=properties)
    except NotFoundError:
        logger.warning(f"Page {entry.id} disappeared before it could be updated")
        return False
    except AuthorizationError:
        raise
    except CalendarSyncError as e:
        logger.error(f"Failed to {action.lower()} page {entry.id}: {e}")
        stats.errors += 1
        return False
    return True
