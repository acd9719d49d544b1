"""
Reconciliation engine: thin orchestrator that delegates to sync submodules.
"""

import logging

from notion_gcal_sync.context import SchemaCache
from notion_gcal_sync.context import SyncContext
from notion_gcal_sync.db import StateDatabase
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.gcal_client import build_calendar_service
from notion_gcal_sync.models import CalendarSyncError
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncStats
from notion_gcal_sync.notion_client import NotionClient
from notion_gcal_sync.sync.deletion import run_deletions
from notion_gcal_sync.sync.pull import run_pull
from notion_gcal_sync.sync.push import run_push


def run_database(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    ctx: SyncContext,
    notion_client: NotionClient,
    calendar_client: GoogleCalendarClient,
    state_db: StateDatabase,
):
    """Run the three phases for one logical database, strictly in order.

    Deletion and push fill the context's suppression set, which pull reads.
    """
    run_deletions(config, stats, logger, ctx, notion_client, calendar_client)
    run_push(config, stats, logger, ctx, notion_client, calendar_client)
    run_pull(config, stats, logger, ctx, notion_client, calendar_client, state_db)


class ReconciliationEngine:
    """Main synchronization engine."""

    def __init__(
        self,
        config: SyncConfig,
        notion_client: NotionClient | None = None,
        calendar_client: GoogleCalendarClient | None = None,
    ):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.stats = SyncStats()
        self.notion_client = notion_client
        self.calendar_client = calendar_client

    def _connect(self):
        if self.notion_client is None:
            self.notion_client = NotionClient(self.config.notion_token)
        if self.calendar_client is None:
            self.logger.info("Connecting to Google Calendar...")
            service = build_calendar_service(self.config.google_credentials)
            self.calendar_client = GoogleCalendarClient(service, timezone=self.config.timezone)

    def run(self, only: list[str] | None = None) -> SyncStats:
        """Execute the synchronization process for every (or the named) database."""
        self._connect()

        for name, database_id in self.config.databases.items():
            if only and name not in only:
                continue
            self.logger.info(f"Syncing database {name} ({database_id})...")
            # Fresh context per database: schema cache and suppression set never leak.
            ctx = SyncContext(
                database_name=name,
                database_id=database_id,
                schema=SchemaCache(self.notion_client),
            )
            try:
                with StateDatabase(self.config.state_db_path, database_id) as state_db:
                    run_database(
                        self.config,
                        self.stats,
                        self.logger,
                        ctx,
                        self.notion_client,
                        self.calendar_client,
                        state_db,
                    )
            except CalendarSyncError as e:
                self.logger.error(f"Sync of {name} failed: {e}")
                self.stats.errors += 1
                self.stats.failed_databases.append(name)
            except Exception as e:
                self.logger.error(f"Unexpected error: {e}", exc_info=True)
                raise

        return self.stats
