"""
Staleness checks and the per-invocation suppression set.
"""

from datetime import UTC
from datetime import datetime
from datetime import timedelta

from notion_gcal_sync.models import DatabaseEntry


def sync_timestamp(now: datetime | None = None) -> datetime:
    """Return the sync stamp to write into an entry.

    Notion truncates last_edited_time to the minute, so the engine's own write
    would look newer than a plain "now" whenever the write lands in the next
    minute. Rounding up to the next whole minute keeps the stamp >= the
    modification time the write produces.
    """
    now = now or datetime.now(UTC)
    floored = now.replace(second=0, microsecond=0)
    if floored == now:
        return now
    return floored + timedelta(minutes=1)


class IdempotencyGuard:
    """Decides which entries and events one invocation must leave alone."""

    def __init__(self):
        self._suppressed: set[str] = set()

    @staticmethod
    def is_stale(entry: DatabaseEntry) -> bool:
        """True when the entry was modified after the engine last synced it."""
        if entry.last_synced is None:
            return True
        if entry.last_edited is None:
            return False
        return entry.last_synced < entry.last_edited

    def suppress(self, event_id: str | None):
        """Exclude an event id from being pulled back during this invocation."""
        if event_id:
            self._suppressed.add(event_id)

    def is_suppressed(self, event_id: str | None) -> bool:
        return bool(event_id) and event_id in self._suppressed
