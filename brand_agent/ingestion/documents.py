"""
Record Documents Module
=======================

Document-store contract, plus the builders that turn a resolved brand
record into store properties and body blocks.

Two collections are used:

- ``brands``: one document per saved brand record
- ``brand_index``: the work list of brand pages, keyed by "Source ID",
  whose "Status" tracks how far each brand got
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import Any, Protocol

from brand_agent.core.enums import IndexStatus
from brand_agent.core.schema import BrandRecord, StoredDocument

logger = logging.getLogger(__name__)

BRANDS = "brands"
BRAND_INDEX = "brand_index"

BLOCK_TEXT_LIMIT = 2000
NOTE_MAX_LENGTH = 1800


class DocumentStore(Protocol):
    """Persistence boundary for brand records and the brand index."""

    async def create(
        self,
        collection: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        """Create a document and return its id."""
        ...

    async def patch(self, document_id: str, properties: dict[str, Any]) -> None:
        """Merge ``properties`` into an existing document."""
        ...

    async def query(self, collection: str, filters: dict[str, Any]) -> list[StoredDocument]:
        """Return non-archived documents whose properties equal every filter value."""
        ...

    async def archive(self, document_id: str) -> None:
        """Archive a document so queries no longer return it."""
        ...


# ============================================================================
# Blocks
# ============================================================================


def _rich_text(text: str) -> list[dict[str, Any]]:
    content = text if len(text) <= BLOCK_TEXT_LIMIT else f"{text[: BLOCK_TEXT_LIMIT - 3]}..."
    return [{"type": "text", "text": {"content": content}}]


def heading_block(text: str) -> dict[str, Any]:
    return {"object": "block", "type": "heading_2", "heading_2": {"rich_text": _rich_text(text)}}


def paragraph_block(text: str) -> dict[str, Any]:
    return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text(text)}}


def bullet_block(text: str) -> dict[str, Any]:
    return {
        "object": "block",
        "type": "bulleted_list_item",
        "bulleted_list_item": {"rich_text": _rich_text(text)},
    }


def block_text(block: dict[str, Any]) -> str:
    """Plain text of a block built by this module."""
    body = block.get(block.get("type", ""), {})
    return "".join(part["text"]["content"] for part in body.get("rich_text", []))


def _section(blocks: list[dict[str, Any]], title: str, items: list[str]) -> None:
    if not items:
        return
    blocks.append(heading_block(title))
    blocks.extend(bullet_block(item) for item in items)


def build_page_body(record: BrandRecord) -> list[dict[str, Any]]:
    """
    Build the body blocks for a saved brand.

    Sections are only emitted when they have content, except Provenance,
    which every saved record carries.
    """
    blocks: list[dict[str, Any]] = []

    if record.description:
        blocks.append(heading_block("Description"))
        blocks.append(paragraph_block(record.description))

    contact: list[str] = []
    if record.contact_name:
        contact.append(f"Name: {record.contact_name}")
    if record.contact_job_title:
        contact.append(f"Job Title: {record.contact_job_title}")
    if record.contact_email:
        contact.append(f"Contact Email: {record.contact_email}")
    if record.email and record.email != record.contact_email:
        contact.append(f"Company Email: {record.email}")
    if record.website:
        contact.append(f"Website: {record.website}")
    if record.phone:
        contact.append(f"Phone: {record.phone}")
    address = [part for part in (record.street, record.postal_code, record.city) if part]
    if address:
        contact.append(f"Address: {', '.join(address)}")
    if record.country_code:
        contact.append(f"Country Code: {record.country_code}")
    if record.latitude is not None and record.longitude is not None:
        contact.append(f"Coordinates: {record.latitude}, {record.longitude}")
    _section(blocks, "Contact Details", contact)

    social = [
        f"{label}: {value}"
        for label, value in (
            ("Facebook", record.facebook),
            ("Instagram", record.instagram),
            ("Pinterest", record.pinterest),
        )
        if value
    ]
    _section(blocks, "Social Media", social)

    images = [
        f"{label}: {value}"
        for label, value in (
            ("Logo", record.logo_url),
            ("Header Image", record.header_image_url),
            ("About Image", record.about_image_url),
        )
        if value
    ]
    _section(blocks, "Images", images)

    catalogs: list[str] = []
    for catalog in record.catalogs:
        line = catalog.title
        if catalog.year:
            line += f" ({catalog.year})"
        if catalog.language:
            line += f" [{catalog.language}]"
        catalogs.append(line)
        if catalog.download_url:
            catalogs.append(f"Download: {catalog.download_url}")
        if catalog.preview_url:
            catalogs.append(f"Preview: {catalog.preview_url}")
    _section(blocks, "Catalogs", catalogs)

    distributors: list[str] = []
    for distributor in record.distributors:
        details = [
            value
            for value in (
                distributor.type,
                distributor.street,
                distributor.zip,
                distributor.city,
                distributor.phone,
                distributor.email,
                distributor.website,
            )
            if value
        ]
        distributors.append(" | ".join([distributor.name, *details]))
    _section(blocks, "Distribution Network", distributors)

    contacts: list[str] = []
    for person in record.hunter_contacts:
        name = " ".join(part for part in (person.first_name, person.last_name) if part)
        line = f"{name} <{person.email}>" if name else person.email
        if person.position:
            line += f", {person.position}"
        contacts.append(line)
    _section(blocks, "Contacts", contacts)

    blocks.append(heading_block("Provenance"))
    blocks.append(bullet_block(f"Source URL: {record.source_url}"))
    blocks.append(bullet_block(f"Scrape Session ID: {record.session_id}"))
    scraped_at = record.scraped_at.isoformat() if record.scraped_at else "unknown"
    blocks.append(bullet_block(f"Scraped At (UTC): {scraped_at}"))

    return blocks


def build_brand_properties(record: BrandRecord) -> dict[str, Any]:
    """Properties for the ``brands`` collection."""
    properties: dict[str, Any] = {
        "Name": record.name,
        "Source URL": record.source_url,
        "Scrape Session ID": record.session_id,
    }
    if record.source_id:
        properties["Source ID"] = record.source_id
    return properties


# ============================================================================
# Brand index
# ============================================================================


def compact_note(text: str) -> str:
    """Collapse whitespace and cap a note at NOTE_MAX_LENGTH characters."""
    collapsed = re.sub(r"\s+", " ", text).strip()
    if len(collapsed) <= NOTE_MAX_LENGTH:
        return collapsed
    return f"{collapsed[: NOTE_MAX_LENGTH - 3]}..."


async def mark_index_status(
    store: DocumentStore,
    source_id: str | None,
    status: IndexStatus,
    notes: str | None = None,
) -> int:
    """
    Update every index entry for a source id.

    Args:
        store: Document store holding the brand index
        source_id: Numeric id parsed from the brand page URL
        status: New status
        notes: Optional explanation stored alongside the status

    Returns:
        Number of index entries updated
    """
    if not source_id:
        logger.warning(f"Cannot mark index entry as {status.value}: no source id")
        return 0

    entries = await store.query(BRAND_INDEX, {"Source ID": source_id})
    properties: dict[str, Any] = {
        "Status": status.value,
        "Last Synced": datetime.now(UTC).isoformat(),
    }
    if notes is not None:
        properties["Notes"] = compact_note(notes)

    for entry in entries:
        await store.patch(entry.id, properties)

    logger.info(f"Marked {len(entries)} index entries for {source_id} as {status.value}")
    return len(entries)
