"""
Notion Document Store
=====================

Implements the document-store contract on top of Notion databases, one
database per collection. Plain property values are converted to Notion
property objects by convention:

- ``Name`` is the title property
- keys ending in ``URL`` are url properties, ``Status`` is a select and
  ``Last Synced`` is a date
- other strings are rich text; bools, numbers and string lists map to
  checkbox, number and multi-select
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from brand_agent.core.schema import StoredDocument
from brand_agent.integrations.base import DEFAULT_TIMEOUT, ServiceClient, ServiceError

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
TITLE_PROPERTY = "Name"
SELECT_PROPERTIES = frozenset({"Status"})
DATE_PROPERTIES = frozenset({"Last Synced"})


def _text(value: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": value[:2000]}}]


def to_notion_property(name: str, value: Any) -> dict[str, Any]:
    """Convert a plain property value to a Notion property object."""
    if name == TITLE_PROPERTY:
        return {"title": _text(str(value))}
    if isinstance(value, bool):
        return {"checkbox": value}
    if isinstance(value, (int, float)):
        return {"number": value}
    if isinstance(value, list):
        return {"multi_select": [{"name": str(item)} for item in value]}
    if name in SELECT_PROPERTIES:
        return {"select": {"name": str(value)}}
    if name in DATE_PROPERTIES:
        return {"date": {"start": str(value)}}
    if name.endswith("URL"):
        return {"url": str(value)}
    return {"rich_text": _text(str(value))}


def from_notion_property(prop: dict[str, Any]) -> Any:
    """Convert a Notion property object back to a plain value."""
    kind = prop.get("type")
    value = prop.get(kind) if kind else None
    if kind in ("title", "rich_text"):
        return "".join(part.get("plain_text") or part.get("text", {}).get("content", "") for part in value or [])
    if kind == "select":
        return value.get("name") if value else None
    if kind == "multi_select":
        return [item.get("name") for item in value or []]
    if kind == "date":
        return value.get("start") if value else None
    return value


def _filter_for(name: str, value: Any) -> dict[str, Any]:
    if name == TITLE_PROPERTY:
        return {"property": name, "title": {"equals": str(value)}}
    if name in SELECT_PROPERTIES:
        return {"property": name, "select": {"equals": str(value)}}
    if name.endswith("URL"):
        return {"property": name, "url": {"equals": str(value)}}
    if isinstance(value, bool):
        return {"property": name, "checkbox": {"equals": value}}
    if isinstance(value, (int, float)):
        return {"property": name, "number": {"equals": value}}
    return {"property": name, "rich_text": {"equals": str(value)}}


class NotionClient(ServiceClient):
    """Minimal Notion REST client."""

    service_name = "notion"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        api_key = api_key or os.getenv("NOTION_API_KEY")
        if not api_key:
            raise ValueError("NOTION_API_KEY is not set")
        super().__init__(
            NOTION_API_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        return await self._request(method, path, json=body)


class NotionDocumentStore:
    """Document store backed by Notion databases."""

    def __init__(self, client: NotionClient, databases: dict[str, str]) -> None:
        """
        Args:
            client: Authenticated Notion client
            databases: Collection name -> Notion database id
        """
        self.client = client
        self.databases = databases

    def _database_id(self, collection: str) -> str:
        database_id = self.databases.get(collection)
        if not database_id:
            raise ServiceError("notion", f"no database configured for collection '{collection}'")
        return database_id

    async def create(
        self,
        collection: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        body: dict[str, Any] = {
            "parent": {"database_id": self._database_id(collection)},
            "properties": {
                name: to_notion_property(name, value)
                for name, value in properties.items()
                if value is not None
            },
        }
        if children:
            body["children"] = children
        page = await self.client.request("POST", "/pages", body)
        return page["id"]

    async def patch(self, document_id: str, properties: dict[str, Any]) -> None:
        body = {
            "properties": {
                name: to_notion_property(name, value)
                for name, value in properties.items()
                if value is not None
            }
        }
        await self.client.request("PATCH", f"/pages/{document_id}", body)

    async def query(self, collection: str, filters: dict[str, Any]) -> list[StoredDocument]:
        conditions = [_filter_for(name, value) for name, value in filters.items()]
        body: dict[str, Any] = {}
        if len(conditions) == 1:
            body["filter"] = conditions[0]
        elif conditions:
            body["filter"] = {"and": conditions}

        response = await self.client.request(
            "POST", f"/databases/{self._database_id(collection)}/query", body
        )
        return [
            StoredDocument(
                id=page["id"],
                collection=collection,
                properties={
                    name: from_notion_property(prop)
                    for name, prop in (page.get("properties") or {}).items()
                },
                archived=bool(page.get("archived")),
            )
            for page in (response or {}).get("results") or []
            if not page.get("archived")
        ]

    async def archive(self, document_id: str) -> None:
        await self.client.request("PATCH", f"/pages/{document_id}", {"archived": True})
