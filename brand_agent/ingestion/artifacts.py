"""
Artifact Cache Module
=====================

Process-local cache of extraction artifacts keyed by source URL.

A later scrape of the same page can find more distributors or catalog
links than the one a session was created from; the save gate and the
validator consult this cache and prefer the richer dataset.
"""

from __future__ import annotations

import logging

from brand_agent.core.schema import (
    ExtractedImageUrls,
    ParsedCatalogLink,
    ParsedDistributor,
)
from brand_agent.ingestion.assets import has_any_image

logger = logging.getLogger(__name__)


class ArtifactCache:
    """Distributors, catalog links and image URLs per source URL."""

    def __init__(self) -> None:
        self._distributors: dict[str, list[ParsedDistributor]] = {}
        self._catalog_links: dict[str, list[ParsedCatalogLink]] = {}
        self._image_urls: dict[str, ExtractedImageUrls] = {}

    def remember(
        self,
        source_url: str,
        distributors: list[ParsedDistributor],
        catalog_links: list[ParsedCatalogLink],
        image_urls: ExtractedImageUrls,
    ) -> None:
        """Cache whichever artifacts are non-empty; empty results never overwrite."""
        if distributors:
            self._distributors[source_url] = [d.model_copy() for d in distributors]
            logger.info(f"Cached {len(distributors)} distributors for {source_url}")
        if catalog_links:
            self._catalog_links[source_url] = [c.model_copy() for c in catalog_links]
            logger.info(f"Cached {len(catalog_links)} catalog links for {source_url}")
        if has_any_image(image_urls):
            self._image_urls[source_url] = image_urls.model_copy()

    def distributors(self, source_url: str) -> list[ParsedDistributor]:
        return [d.model_copy() for d in self._distributors.get(source_url, [])]

    def catalog_links(self, source_url: str) -> list[ParsedCatalogLink]:
        return [c.model_copy() for c in self._catalog_links.get(source_url, [])]

    def image_urls(self, source_url: str) -> ExtractedImageUrls | None:
        images = self._image_urls.get(source_url)
        return images.model_copy() if images else None

    def clear(self) -> None:
        self._distributors.clear()
        self._catalog_links.clear()
        self._image_urls.clear()


def prefer_richer(primary: list, fallback: list) -> list:
    """Return ``fallback`` only when it holds strictly more items than ``primary``."""
    return fallback if len(fallback) > len(primary) else primary
