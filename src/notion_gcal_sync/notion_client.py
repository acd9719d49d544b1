"""
Notion REST API wrapper.
"""

import logging
from dataclasses import dataclass
from dataclasses import field

import httpx

from notion_gcal_sync.models import AuthorizationError
from notion_gcal_sync.models import NotFoundError
from notion_gcal_sync.models import NotionRequestError
from notion_gcal_sync.models import ValidationError

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

logger = logging.getLogger(__name__)


@dataclass
class PageOperation:
    """One create or update submitted through :meth:`NotionClient.batch`."""

    kind: str  # 'create' or 'update'
    target_id: str  # database id for create, page id for update
    properties: dict = field(default_factory=dict)
    archived: bool | None = None
    label: str = ""  # what the operation is about, for log lines


@dataclass
class BatchResult:
    operation: PageOperation
    status_code: int
    payload: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def message(self) -> str:
        return str(self.payload.get("message") or self.payload.get("code") or "")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("code") or response.reason_phrase)
    return response.reason_phrase


def raise_for_status(status_code: int, message: str):
    """Translate a Notion HTTP status into the sync error taxonomy."""
    if 200 <= status_code < 300:
        return
    if status_code in (401, 403):
        raise AuthorizationError(f"Notion rejected the request ({status_code}): {message}")
    if status_code == 404:
        raise NotFoundError(f"Notion object not found: {message}")
    if status_code == 400:
        raise ValidationError(f"Notion rejected the payload: {message}")
    raise NotionRequestError(status_code, message)


class NotionClient:
    """Thin synchronous client for the Notion endpoints the engine needs."""

    def __init__(
        self,
        token: str,
        base_url: str = NOTION_API_URL,
        http_client: httpx.Client | None = None,
        timeout: float = 30.0,
    ):
        headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout)
        self.client.headers.update(headers)
        self.base_url = base_url.rstrip("/")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self._owns_client:
            self.client.close()

    def _send(self, method: str, path: str, body: dict | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug("Notion %s %s", method, path)
        return self.client.request(method, url, json=body)

    def _request(self, method: str, path: str, body: dict | None = None) -> dict:
        response = self._send(method, path, body)
        raise_for_status(response.status_code, _error_message(response))
        return response.json()

    # ------------------------------------------------------------------ #
    # Reads                                                               #
    # ------------------------------------------------------------------ #

    def query_database(
        self,
        database_id: str,
        filter: dict | None = None,
        sorts: list[dict] | None = None,
        page_size: int = 100,
    ) -> list[dict]:
        """Return a single page (at most ``page_size``) of matching pages."""
        body: dict = {"page_size": page_size}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        data = self._request("POST", f"/databases/{database_id}/query", body)
        return data.get("results", [])

    def retrieve_database(self, database_id: str) -> dict:
        """Return the database object, including its property schema."""
        return self._request("GET", f"/databases/{database_id}")

    # ------------------------------------------------------------------ #
    # Writes                                                              #
    # ------------------------------------------------------------------ #

    def update_page(
        self, page_id: str, properties: dict | None = None, archived: bool | None = None
    ) -> dict:
        body: dict = {}
        if properties:
            body["properties"] = properties
        if archived is not None:
            body["archived"] = archived
        return self._request("PATCH", f"/pages/{page_id}", body)

    def archive_page(self, page_id: str) -> dict:
        """Archive (soft-delete) a Notion page."""
        return self.update_page(page_id, archived=True)

    def batch(self, operations: list[PageOperation]) -> list[BatchResult]:
        """Submit several page writes and report one status per item.

        Item failures are returned, not raised; transport errors propagate.
        """
        results = []
        for op in operations:
            if op.kind == "create":
                body = {"parent": {"database_id": op.target_id}, "properties": op.properties}
                response = self._send("POST", "/pages", body)
            else:
                body = {"properties": op.properties}
                if op.archived is not None:
                    body["archived"] = op.archived
                response = self._send("PATCH", f"/pages/{op.target_id}", body)
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text[:200]}
            results.append(
                BatchResult(
                    operation=op,
                    status_code=response.status_code,
                    payload=payload if isinstance(payload, dict) else {},
                )
            )
        return results
