"""Contact enrichment for saved brand records."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from brand_agent.core.enums import EnrichmentSource
from brand_agent.core.schema import HunterContact, HunterEnrichment
from brand_agent.integrations.base import ServiceError
from brand_agent.integrations.hunter import DEFAULT_DOMAIN_SEARCH_LIMIT, HunterClient

logger = logging.getLogger(__name__)


def domain_from_website(website: str | None) -> str | None:
    """``https://www.acme.com/about`` -> ``acme.com``."""
    if not website or not website.strip():
        return None
    candidate = website.strip()
    if not candidate.startswith("http"):
        candidate = f"https://{candidate}"
    host = urlparse(candidate).hostname or ""
    host = host.removeprefix("www.")
    return host or None


def normalize_contacts(contacts: list[HunterContact]) -> list[HunterContact]:
    """Drop contacts without an email and duplicates (case-insensitive)."""
    seen: set[str] = set()
    out: list[HunterContact] = []
    for contact in contacts:
        email = contact.email.strip().lower()
        if not email or email in seen:
            continue
        seen.add(email)
        out.append(contact.model_copy(update={"email": contact.email.strip()}))
    return out


async def resolve_enrichment(
    provided: list[HunterContact],
    website: str | None,
    client: HunterClient | None,
    limit: int = DEFAULT_DOMAIN_SEARCH_LIMIT,
) -> HunterEnrichment:
    """
    Decide which contacts to attach to a record.

    Caller-provided contacts win. Otherwise, when a client is configured and
    the record has a website, the website's domain is searched. Lookup
    failures are reported in ``reason`` and never block the save.
    """
    domain = domain_from_website(website)
    contacts = normalize_contacts(provided)
    if contacts:
        return HunterEnrichment(
            source=EnrichmentSource.PROVIDED, domain=domain, contacts=contacts
        )

    if client is None or not client.is_configured():
        return HunterEnrichment(domain=domain, reason="contact discovery is not configured")
    if domain is None:
        return HunterEnrichment(reason="record has no website to search")

    try:
        found = await client.domain_search(domain, limit=limit)
    except ServiceError as e:
        logger.warning(f"Contact lookup for {domain} failed: {e}")
        return HunterEnrichment(domain=domain, reason=str(e))

    contacts = normalize_contacts(found)
    if not contacts:
        return HunterEnrichment(domain=domain, reason=f"no contacts found for {domain}")
    return HunterEnrichment(
        source=EnrichmentSource.AUTO_LOOKUP, domain=domain, contacts=contacts
    )
