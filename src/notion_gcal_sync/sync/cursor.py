"""
Incremental calendar listing with a bounded window fallback.
"""

from datetime import UTC
from datetime import datetime
from datetime import timedelta

from notion_gcal_sync.db import StateDatabase
from notion_gcal_sync.gcal_client import GoogleCalendarClient
from notion_gcal_sync.models import CalendarEvent
from notion_gcal_sync.models import SyncConfig
from notion_gcal_sync.models import SyncTokenExpiredError


class SyncCursor:
    """Lists calendar changes since the last persisted position.

    Without a stored token (first run, explicit full resync, or after the
    backend rejected the token) the listing covers the window
    [now - past_days, now + future_days] instead.
    """

    def __init__(
        self,
        config: SyncConfig,
        logger,
        calendar_client: GoogleCalendarClient,
        state_db: StateDatabase,
    ):
        self.config = config
        self.logger = logger
        self.client = calendar_client
        self.state_db = state_db

    def window(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        now = now or datetime.now(UTC)
        return (
            now - timedelta(days=self.config.past_days),
            now + timedelta(days=self.config.future_days),
        )

    def _list_all(
        self, calendar_id: str, sync_token: str | None
    ) -> tuple[list[CalendarEvent], str | None]:
        """Follow the page-token chain; the last page carries the next cursor."""
        time_min = time_max = None
        if sync_token is None:
            time_min, time_max = self.window()

        events: list[CalendarEvent] = []
        page_token = None
        next_sync_token = None
        while True:
            page = self.client.list_events(
                calendar_id,
                sync_token=sync_token,
                time_min=time_min,
                time_max=time_max,
                page_token=page_token,
            )
            events.extend(page.events)
            next_sync_token = page.next_sync_token or next_sync_token
            page_token = page.next_page_token
            if not page_token:
                break
        return events, next_sync_token

    def fetch(
        self, calendar_id: str, full_resync: bool = False
    ) -> tuple[list[CalendarEvent], str | None]:
        """Return (events, cursor to persist once they have been applied)."""
        sync_token = None if full_resync else self.state_db.get_cursor(calendar_id)
        if sync_token is None:
            self.logger.debug(f"No usable cursor for {calendar_id}, listing time window")

        try:
            return self._list_all(calendar_id, sync_token)
        except SyncTokenExpiredError:
            if sync_token is None:
                raise
            self.logger.warning(
                f"Sync cursor for {calendar_id} was rejected, falling back to a window resync"
            )
            self.state_db.clear_cursor(calendar_id)
            self.state_db.commit()
            # A second rejection propagates: there is nothing left to fall back to.
            return self._list_all(calendar_id, None)

    def commit(self, calendar_id: str, sync_token: str | None):
        """Persist the cursor returned by :meth:`fetch`."""
        if not sync_token:
            self.logger.debug(f"No cursor returned for {calendar_id}; nothing to persist")
            return
        if self.config.dry_run:
            self.logger.info(f"[DRY RUN] Would store new sync cursor for {calendar_id}")
            return
        self.state_db.set_cursor(calendar_id, sync_token)
        self.state_db.commit()
