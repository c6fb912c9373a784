"""
Page Fetch Client
=================

Fetches rendered brand pages through the Firecrawl scrape API, which
returns markdown, rendered HTML, the unrendered HTML (needed for the
hydration payload), the page's links and its metadata in one call.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from brand_agent.core.schema import PageMetadata
from brand_agent.integrations.base import DEFAULT_TIMEOUT, ServiceClient, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_FIRECRAWL_URL = "https://api.firecrawl.dev"
DEFAULT_FORMATS = ("markdown", "html", "rawHtml", "links")


@dataclass
class FetchResult:
    """Artifacts of fetching one page."""

    url: str
    markdown: str | None = None
    html: str | None = None
    raw_html: str | None = None
    links: list[str] = field(default_factory=list)
    metadata: PageMetadata | None = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_dict(cls, url: str, data: dict[str, Any]) -> FetchResult:
        """Create from a scrape API ``data`` object."""
        metadata = data.get("metadata")
        return cls(
            url=url,
            markdown=data.get("markdown"),
            html=data.get("html"),
            raw_html=data.get("rawHtml"),
            links=[link for link in data.get("links") or [] if isinstance(link, str)],
            metadata=PageMetadata.model_validate(metadata) if isinstance(metadata, dict) else None,
        )


class FirecrawlClient(ServiceClient):
    """Client for the Firecrawl v1 scrape endpoint."""

    service_name = "firecrawl"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        wait_for_ms: int = 2000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("FIRECRAWL_API_KEY")
        self.wait_for_ms = wait_for_ms
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        super().__init__(
            base_url or os.getenv("FIRECRAWL_API_URL", DEFAULT_FIRECRAWL_URL),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        Scrape a page.

        Args:
            url: Page to scrape

        Returns:
            FetchResult with every requested format

        Raises:
            ServiceError: If the request fails or the service reports failure
        """
        body = {"url": url, "formats": list(DEFAULT_FORMATS), "waitFor": self.wait_for_ms}
        response = await self._request("POST", "/v1/scrape", json=body)

        if not isinstance(response, dict) or not response.get("success"):
            error = response.get("error") if isinstance(response, dict) else None
            raise ServiceError(self.service_name, f"scrape of {url} failed: {error or 'unknown error'}")

        result = FetchResult.from_dict(url, response.get("data") or {})
        logger.info(
            f"Fetched {url}: {len(result.raw_html or '')} bytes raw HTML, {len(result.links)} links"
        )
        return result
