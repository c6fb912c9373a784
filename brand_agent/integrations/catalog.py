"""
Catalog Service Client
======================

REST client for the downstream brand catalog: country lookup, brand
creation and brand search.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from brand_agent.integrations.base import DEFAULT_TIMEOUT, ServiceClient

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "http://localhost:8080/api"


class CatalogClient(ServiceClient):
    """Client for the downstream catalog-creation service."""

    service_name = "catalog"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("CATALOG_API_KEY")
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        super().__init__(
            base_url or os.getenv("CATALOG_API_URL", DEFAULT_CATALOG_URL),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def list_countries(self) -> dict[str, str]:
        """
        Fetch the service's country list.

        Returns:
            Mapping of upper-cased country code to country name
        """
        response = await self._request("GET", "/countries")
        countries: dict[str, str] = {}
        for item in (response or {}).get("countries") or []:
            if not isinstance(item, dict):
                continue
            code, name = item.get("id"), item.get("value")
            if isinstance(code, str) and isinstance(name, str) and code.strip() and name.strip():
                countries[code.strip().upper()] = name.strip()
        return countries

    async def create_brand(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a brand; returns the raw response object."""
        response = await self._request("POST", "/brands", json=body)
        return response if isinstance(response, dict) else {}

    async def search_brands(self, query: str) -> list[dict[str, Any]]:
        """Search brands by name."""
        response = await self._request("GET", "/brands/search", params={"query": query})
        brands = (response or {}).get("brands") or []
        return [brand for brand in brands if isinstance(brand, dict)]
