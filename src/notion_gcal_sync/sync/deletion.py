"""
Removal of calendar events for entries flagged by the user.
"""

from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.mapper import unlink_properties
from notion_gcal_sync.models import Control
from notion_gcal_sync.models import DatabaseEntry
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from notion_gcal_sync.notion_client import NotionClient
from notion_gcal_sync.sync.filters import completed_filter
from notion_gcal_sync.sync.filters import removal_filter
from notion_gcal_sync.sync.utils import delete_linked_event
from notion_gcal_sync.sync.utils import stale_entries
from notion_gcal_sync.sync.utils import write_page


def _remove_entry(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    entry: DatabaseEntry,
    total_removal: bool,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Delete the entry's event, then archive or unlink the entry itself."""
    calendar_id = entry.event_calendar_id or config.calendar_id(entry.calendar_name)

    if entry.event_id and calendar_id:
        gone = delete_linked_event(
            config, stats, logger, ctx, calendar_client, calendar_id, entry.event_id
        )
        if not gone:
            # Keep the page and its reference so the next run can retry.
            logger.warning(f"Leaving page {entry.id} untouched: its event could not be deleted")
            return

    if total_removal and config.archive_on_delete:
        if write_page(config, stats, logger, notion_client, entry, archived=True):
            stats.archived += 1
            logger.debug(f"Archived page {entry.id} ({entry.title!r})")
    else:
        if write_page(config, stats, logger, notion_client, entry, unlink_properties(config)):
            logger.debug(f"Unlinked page {entry.id} ({entry.title!r}) from its event")


def run_deletions(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
):
    """Process removal triggers: total-removal tag first, then completed status."""
    processed: set[str] = set()

    logger.info("Checking entries tagged for removal...")
    for entry in stale_entries(config, logger, ctx, notion_client, removal_filter(config)):
        processed.add(entry.id)
        _remove_entry(
            config, stats, logger, ctx, entry, True, notion_client, calendar_client
        )

    if not ctx.has_property(config.properties.status):
        logger.debug(
            f"Database {ctx.database_name} has no '{config.properties.status}' property; "
            f"skipping completed-entry removal"
        )
        return

    query = completed_filter(config, ctx)
    if query is None:
        logger.debug(
            f"All entries of {ctx.database_name} live in exempt calendar "
            f"'{config.default_calendar}'; skipping completed-entry removal"
        )
        return

    logger.info("Checking completed entries...")
    for entry in stale_entries(config, logger, ctx, notion_client, query):
        # An entry also tagged for removal was settled by the first pass.
        if entry.id in processed or entry.has(Control.REMOVE):
            continue
        _remove_entry(
            config, stats, logger, ctx, entry, False, notion_client, calendar_client
        )
