"""
Record Resolver Module
======================

Builds the brand record that the save gate validates and persists.

Scraped fields come only from the scrape session (merged with richer
cached artifacts); the caller contributes nothing but the enrichment
fields it is allowed to set.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import unquote

from brand_agent.core.enums import ProductType
from brand_agent.core.schema import (
    BrandRecord,
    Catalog,
    ContactDetails,
    ExcludedCountry,
    ExtractedImageUrls,
    PageMetadata,
    ParsedCatalogLink,
    SaveBrandRequest,
    ScrapeSession,
)
from brand_agent.ingestion.artifacts import ArtifactCache, prefer_richer
from brand_agent.ingestion.assets import is_logo_image, strip_query
from brand_agent.ingestion.extractor import is_plausible_contact_string, is_plausible_email

DESCRIPTION_MAX_LENGTH = 1800

_SOURCE_ID = re.compile(r"/(\d+)(?:/?(?:\?.*)?)?$")
_DESCRIPTION_HEADING = re.compile(
    r"^#{1,3}\s*(about|philosophy|company|who we are|our story)\b", re.IGNORECASE
)
_ANY_HEADING = re.compile(r"^#{1,6}\s+")
_FILE_EXTENSION = re.compile(r"\.[a-z0-9]{2,5}$", re.IGNORECASE)

_VALID_PRODUCT_TYPES = {p.value for p in ProductType}


def non_empty(value: Any) -> str | None:
    """Return the stripped string, or None for blanks and non-strings."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


def parse_source_id(url: str) -> str | None:
    """Extract the trailing numeric id from a brand page URL."""
    match = _SOURCE_ID.search(url)
    return match.group(1) if match else None


# ============================================================================
# Markdown-derived content
# ============================================================================


def normalize_description_text(raw: str) -> str | None:
    """Strip markdown formatting, collapse whitespace and cap the length."""
    text = re.sub(r"!\[[^\]]*]\([^)]+\)", " ", raw)
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    text = re.sub(r"`([^`]*)`", r"\1", text)
    text = re.sub(r"[*_~]", "", text)
    text = re.sub(r"^>\s?", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*[-*+]\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*\d+\.\s+", "", text, flags=re.MULTILINE)
    collapsed = re.sub(r"\s+", " ", text).strip()
    if not collapsed:
        return None
    return truncate(collapsed, DESCRIPTION_MAX_LENGTH)


def extract_description(markdown: str | None) -> str | None:
    """
    Take the first About/Philosophy/Company/Who we are/Our story section.

    There is deliberately no generic first-paragraph fallback: pages
    without such a section yield no description.
    """
    if not markdown:
        return None
    normalized = markdown.replace("\r\n", "\n").strip()
    if not normalized:
        return None

    lines = normalized.split("\n")
    for i, line in enumerate(lines):
        if not _DESCRIPTION_HEADING.match(line.strip()):
            continue
        section: list[str] = []
        for following in lines[i + 1 :]:
            if _ANY_HEADING.match(following.strip()):
                break
            section.append(following)
        text = normalize_description_text("\n".join(section))
        if text:
            return text
    return None


def infer_catalog_title(link: ParsedCatalogLink) -> str:
    """Turn ``Acme_Collection-2024.pdf`` into ``Acme Collection 2024``."""
    raw = link.filename or link.url.rsplit("/", 1)[-1] or "Catalog"
    title = unquote(_FILE_EXTENSION.sub("", raw))
    title = re.sub(r"\s+", " ", re.sub(r"[\-_]+", " ", title)).strip()
    return title or "Catalog"


def derive_catalogs(links: list[ParsedCatalogLink]) -> list[Catalog]:
    """One catalog per distinct link URL."""
    seen: set[str] = set()
    catalogs: list[Catalog] = []
    for link in links:
        if not link.url or link.url in seen:
            continue
        seen.add(link.url)
        catalogs.append(Catalog(title=infer_catalog_title(link), download_url=link.url))
    return catalogs


# ============================================================================
# Enrichment normalisation
# ============================================================================


def normalize_product_types(values: list[str]) -> list[str]:
    """Keep known product types, first occurrence order, no duplicates."""
    out: list[str] = []
    for value in values:
        item = non_empty(value)
        if item is None:
            continue
        item = item.lower()
        if item in _VALID_PRODUCT_TYPES and item not in out:
            out.append(item)
    return out


def normalize_excluded_countries(values: list[dict[str, Any]]) -> list[ExcludedCountry]:
    """Require code and name, upper-case codes and drop duplicates."""
    seen: set[str] = set()
    out: list[ExcludedCountry] = []
    for value in values:
        code = non_empty(value.get("code"))
        name = non_empty(value.get("name"))
        if not code or not name:
            continue
        key = f"{code.upper()}::{name.lower()}"
        if key in seen:
            continue
        seen.add(key)
        out.append(ExcludedCountry(code=code.upper(), name=name))
    return out


def resolve_primary_contact(contact: ContactDetails) -> dict[str, str | None]:
    """Scraped contact person, keeping only plausible values."""
    name = non_empty(contact.contact_name)
    title = non_empty(contact.contact_job_title)
    email = non_empty(contact.email)
    return {
        "contact_name": name if is_plausible_contact_string(name) else None,
        "contact_job_title": title if is_plausible_contact_string(title) else None,
        "contact_email": email if is_plausible_email(email) else None,
    }


def resolve_header_image(header: str | None, metadata: PageMetadata | None) -> str | None:
    """Extracted header image, else a non-logo og:image."""
    if non_empty(header):
        return header
    og_image = metadata.og_image if metadata else None
    if og_image and not is_logo_image(og_image):
        return strip_query(og_image)
    return None


def _merge_images(
    snapshot: ExtractedImageUrls, cached: ExtractedImageUrls | None
) -> ExtractedImageUrls:
    if cached is None:
        return snapshot
    return ExtractedImageUrls(
        logo_url=snapshot.logo_url or cached.logo_url,
        header_image_url=snapshot.header_image_url or cached.header_image_url,
        about_image_url=snapshot.about_image_url or cached.about_image_url,
    )


def resolve_brand_record(
    session: ScrapeSession,
    request: SaveBrandRequest,
    artifacts: ArtifactCache | None = None,
) -> BrandRecord:
    """
    Combine a session's extraction with the caller's allowed enrichment.

    Args:
        session: The scrape session the save refers to
        request: Validated caller input
        artifacts: Optional cache whose richer datasets replace the session's

    Returns:
        The record to validate and persist
    """
    contact = session.contact_details
    primary = resolve_primary_contact(contact)

    distributors = list(session.distributors)
    catalog_links = list(session.catalog_links)
    images = session.image_urls
    if artifacts is not None:
        distributors = prefer_richer(distributors, artifacts.distributors(request.source_url))
        catalog_links = prefer_richer(catalog_links, artifacts.catalog_links(request.source_url))
        images = _merge_images(images, artifacts.image_urls(request.source_url))

    company_email = non_empty(contact.email)

    return BrandRecord(
        name=request.name.strip(),
        source_url=request.source_url,
        source_id=parse_source_id(request.source_url),
        session_id=request.session_id,
        scraped_at=session.created_at,
        company_name=non_empty(request.company_name) or request.name.strip(),
        product_type=normalize_product_types(request.product_type),
        country_code=(non_empty(request.country_code) or "").upper() or None,
        country_name=non_empty(request.country_name),
        excluded_countries=normalize_excluded_countries(request.excluded_countries),
        is_disabled=request.is_disabled,
        contact_name=primary["contact_name"] or non_empty(request.contact_name),
        contact_job_title=primary["contact_job_title"] or non_empty(request.contact_job_title),
        contact_email=primary["contact_email"] or non_empty(request.contact_email),
        hunter_contacts=list(request.hunter_contacts),
        website=non_empty(contact.website),
        email=company_email if is_plausible_email(company_email) else None,
        phone=non_empty(contact.phone),
        street=non_empty(contact.street),
        city=non_empty(contact.city),
        postal_code=non_empty(contact.zip),
        latitude=contact.lat,
        longitude=contact.lng,
        facebook=non_empty(contact.facebook),
        instagram=non_empty(contact.instagram),
        pinterest=non_empty(contact.pinterest),
        logo_url=non_empty(images.logo_url),
        header_image_url=resolve_header_image(images.header_image_url, session.raw_metadata),
        about_image_url=non_empty(images.about_image_url),
        description=extract_description(session.raw_markdown),
        catalogs=derive_catalogs(catalog_links),
        distributors=distributors,
    )
