"""
Per-database invocation context threaded through every sync phase.
"""

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from notion_gcal_sync.guard import IdempotencyGuard

if TYPE_CHECKING:
    from notion_gcal_sync.notion_client import NotionClient


class SchemaCache:
    """Database property schemas, fetched at most once per database id."""

    def __init__(self, notion_client: "NotionClient"):
        self._client = notion_client
        self._schemas: dict[str, dict[str, dict]] = {}

    def properties(self, database_id: str) -> dict[str, dict]:
        if database_id not in self._schemas:
            database = self._client.retrieve_database(database_id)
            self._schemas[database_id] = database.get("properties", {})
        return self._schemas[database_id]

    def has_property(self, database_id: str, name: str) -> bool:
        return name in self.properties(database_id)

    def property_type(self, database_id: str, name: str) -> str | None:
        prop = self.properties(database_id).get(name)
        return prop.get("type") if prop else None


@dataclass
class SyncContext:
    """State owned by one logical database for the duration of one invocation."""

    database_name: str
    database_id: str
    schema: SchemaCache
    guard: IdempotencyGuard = field(default_factory=IdempotencyGuard)

    @property
    def tag(self) -> str:
        """Engine tag written into events created for this database."""
        return self.database_id

    def has_property(self, name: str) -> bool:
        return self.schema.has_property(self.database_id, name)

    def property_type(self, name: str) -> str | None:
        return self.schema.property_type(self.database_id, name)
