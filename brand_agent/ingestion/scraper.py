"""
Brand Scraper Module
====================

Fetches a brand page, runs every extractor over it and records the
result as an immutable scrape session. The session id returned here is
the only way to get a record through the save gate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from brand_agent.core.schema import (
    ContactDetails,
    ExtractedImageUrls,
    PageMetadata,
    ParsedCatalogLink,
    ParsedDistributor,
    ProductScrapeSession,
    ScrapeSession,
)
from brand_agent.ingestion.artifacts import ArtifactCache
from brand_agent.ingestion.assets import extract_catalog_links, extract_image_urls
from brand_agent.ingestion.distributors import extract_distributors
from brand_agent.ingestion.extractor import extract_contact_details
from brand_agent.ingestion.sessions import ScrapeSessionStore
from brand_agent.integrations.firecrawl import FetchResult

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    """Anything that can fetch a page into a FetchResult."""

    async def fetch(self, url: str) -> FetchResult: ...


@dataclass
class BrandExtraction:
    """Everything the extractors recovered from one fetched page."""

    contact_details: ContactDetails
    distributors: list[ParsedDistributor]
    catalog_links: list[ParsedCatalogLink]
    image_urls: ExtractedImageUrls


def extract_brand(result: FetchResult) -> BrandExtraction:
    """Run all extractors over one fetch result."""
    return BrandExtraction(
        contact_details=extract_contact_details(result.raw_html),
        distributors=extract_distributors(result.raw_html),
        catalog_links=extract_catalog_links(result.links),
        image_urls=extract_image_urls(result.raw_html, result.metadata),
    )


@dataclass
class BrandScrapeResult:
    """What a caller needs to propose a record for a scraped page."""

    session_id: str
    source_url: str
    contact_details: ContactDetails
    distributors: list[ParsedDistributor] = field(default_factory=list)
    catalog_links: list[ParsedCatalogLink] = field(default_factory=list)
    image_urls: ExtractedImageUrls = field(default_factory=ExtractedImageUrls)
    metadata: PageMetadata | None = None
    markdown: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.session_id,
            "source_url": self.source_url,
            "contact_details": self.contact_details.model_dump(),
            "distributors": [d.model_dump() for d in self.distributors],
            "catalog_links": [c.model_dump() for c in self.catalog_links],
            "image_urls": self.image_urls.model_dump(),
            "metadata": self.metadata.model_dump(by_alias=True) if self.metadata else None,
            "markdown": self.markdown,
        }


class BrandScraper:
    """
    Creates scrape sessions from fetched pages.

    Args:
        fetcher: Page fetch client
        sessions: Brand session store
        product_sessions: Product session store
        artifacts: Optional cache that keeps the richest artifacts per URL
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        sessions: ScrapeSessionStore[ScrapeSession],
        product_sessions: ScrapeSessionStore[ProductScrapeSession],
        artifacts: ArtifactCache | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.sessions = sessions
        self.product_sessions = product_sessions
        self.artifacts = artifacts

    async def scrape_brand(self, url: str) -> BrandScrapeResult:
        """
        Fetch a brand page and open a session for it.

        Args:
            url: Brand page URL

        Returns:
            BrandScrapeResult with the new session id

        Raises:
            ServiceError: If the page cannot be fetched
        """
        result = await self.fetcher.fetch(url)
        extraction = extract_brand(result)

        session_id = self.sessions.create(
            source_url=url,
            contact_details=extraction.contact_details,
            distributors=extraction.distributors,
            catalog_links=extraction.catalog_links,
            image_urls=extraction.image_urls,
            raw_markdown=result.markdown,
            raw_links=result.links,
            raw_metadata=result.metadata,
        )

        if self.artifacts is not None:
            self.artifacts.remember(
                url, extraction.distributors, extraction.catalog_links, extraction.image_urls
            )

        logger.info(
            f"Created session {session_id} for {url} "
            f"({len(extraction.distributors)} distributors, "
            f"{len(extraction.catalog_links)} catalog links)"
        )
        return BrandScrapeResult(
            session_id=session_id,
            source_url=url,
            contact_details=extraction.contact_details,
            distributors=extraction.distributors,
            catalog_links=extraction.catalog_links,
            image_urls=extraction.image_urls,
            metadata=result.metadata,
            markdown=result.markdown,
        )

    async def scrape_product(
        self,
        url: str,
        product_name: str | None = None,
        brand_name: str | None = None,
    ) -> str:
        """
        Fetch a product page and open a product session for it.

        The product name defaults to the page title.

        Returns:
            The new product session id
        """
        result = await self.fetcher.fetch(url)
        title = result.metadata.title if result.metadata else None
        session_id = self.product_sessions.create(
            source_url=url,
            product_name=product_name or title,
            brand_name=brand_name,
            raw_markdown=result.markdown,
            raw_metadata=result.metadata,
        )
        logger.info(f"Created product session {session_id} for {url}")
        return session_id
