"""
Asset Extractor Module
======================

Finds catalog download links and brand imagery (logo, header, about) for a
brand page using the media path conventions of the source site.
"""

from __future__ import annotations

import re

from brand_agent.core.schema import ExtractedImageUrls, PageMetadata, ParsedCatalogLink

_CATALOG_PATH = re.compile(r"/(catalog|download|pdf|brochure)", re.IGNORECASE)

_MEDIA_PREFIX = r"https?://media\.architonic\.com/m-on/\d+/"
_MEDIA_TAIL = r'/[^"\\?\s]+'
_LOGO_IMAGE = re.compile(_MEDIA_PREFIX + "logo" + _MEDIA_TAIL)
_ABOUT_IMAGE = re.compile(_MEDIA_PREFIX + "about" + _MEDIA_TAIL)
_HEADER_IMAGE = re.compile(_MEDIA_PREFIX + "(?:header|hero|cover)" + _MEDIA_TAIL)


def is_catalog_link(link: str) -> bool:
    """Check whether a link looks like a catalog, brochure or other download."""
    return bool(_CATALOG_PATH.search(link)) or link.endswith(".pdf")


def extract_catalog_links(links: list[str] | None) -> list[ParsedCatalogLink]:
    """
    Filter a page's links down to catalog candidates.

    Args:
        links: Absolute links reported by the fetch service

    Returns:
        Catalog links in page order, deduplicated by URL
    """
    seen: set[str] = set()
    catalog_links: list[ParsedCatalogLink] = []
    for link in links or []:
        if not is_catalog_link(link) or link in seen:
            continue
        seen.add(link)
        filename = link.rsplit("/", 1)[-1]
        catalog_links.append(ParsedCatalogLink(url=link, filename=filename or None))
    return catalog_links


def strip_query(url: str) -> str:
    """Drop the query string (resize parameters) from an image URL."""
    return url.split("?", 1)[0]


def is_logo_image(url: str | None) -> bool:
    """Check whether an image URL points into a ``/logo/`` folder."""
    return bool(url) and "/logo/" in url


def extract_image_urls(
    raw_html: str | None, metadata: PageMetadata | None
) -> ExtractedImageUrls:
    """
    Locate brand imagery.

    The logo prefers the page's og:image when that image is a logo, then the
    raw HTML. The header falls back to og:image only when it is not a logo.
    """
    og_image = metadata.og_image if metadata else None
    images = ExtractedImageUrls()

    if og_image and is_logo_image(og_image):
        images.logo_url = strip_query(og_image)

    if raw_html:
        if not images.logo_url:
            match = _LOGO_IMAGE.search(raw_html)
            if match:
                images.logo_url = match.group(0)
        match = _ABOUT_IMAGE.search(raw_html)
        if match:
            images.about_image_url = match.group(0)
        match = _HEADER_IMAGE.search(raw_html)
        if match:
            images.header_image_url = match.group(0)

    if not images.header_image_url and og_image and not is_logo_image(og_image):
        images.header_image_url = strip_query(og_image)

    return images


def has_any_image(images: ExtractedImageUrls) -> bool:
    """Return True when at least one image URL was found."""
    return bool(images.logo_url or images.header_image_url or images.about_image_url)
