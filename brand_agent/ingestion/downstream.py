"""
Downstream Creation Module
==========================

Creates a saved brand in the downstream catalog from the payload captured
at save time. The payload is looked up by record id; a missing country
name is recovered from the catalog's country list. On success the created
id is written back to the record and the brand's index entry is marked
scraped.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from brand_agent.core.enums import GateCode, IndexStatus
from brand_agent.core.schema import DeferredCreatePayload, DownstreamOutcome
from brand_agent.ingestion.deferred import DeferredPayloadCache, find_missing_fields
from brand_agent.ingestion.documents import DocumentStore, mark_index_status
from brand_agent.integrations.catalog import CatalogClient

logger = logging.getLogger(__name__)

CATALOG_ID_PROPERTY = "Catalog ID"
ID_KEYS = ("id", "matterbaseId", "brandId")
MAX_ENVELOPE_DEPTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _country(code: str, name: str) -> dict[str, str]:
    return {"id": code, "value": name}


def build_create_body(payload: DeferredCreatePayload) -> dict[str, Any]:
    """Request body for the catalog's create-brand call."""
    body: dict[str, Any] = {
        "name": payload.name,
        "companyName": payload.company_name,
        "productType": list(payload.product_type),
        "country": _country(payload.country_code or "", payload.country_name or ""),
        "website": payload.website,
        "contactName": payload.contact_name,
        "contactJobTitle": payload.contact_job_title,
        "contactEmail": payload.contact_email,
        "isDisabled": payload.is_disabled,
    }
    if payload.excluded_countries:
        body["excludedCountries"] = [
            _country(c.code, c.name) for c in payload.excluded_countries
        ]
    if payload.logo_url:
        body["logoUrl"] = payload.logo_url
    return body


def _id_from(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, int):
        return str(value)
    return None


def extract_brand_id(response: Any) -> str | None:
    """
    Find the created brand's id in a create response.

    Looks at the top level, a ``brand`` object, and up to three nested
    ``data`` envelopes.
    """
    current = response
    for _ in range(MAX_ENVELOPE_DEPTH + 1):
        if not isinstance(current, dict):
            return None
        for key in ID_KEYS:
            found = _id_from(current.get(key))
            if found:
                return found
        brand = current.get("brand")
        if isinstance(brand, dict):
            found = _id_from(brand.get("id"))
            if found:
                return found
        current = current.get("data")
    return None


def normalize_brand_name(name: str) -> str:
    """Lower-case and collapse everything but letters and digits."""
    return _NON_ALNUM.sub("", name.lower())


def match_brand(brands: list[dict[str, Any]], name: str) -> str | None:
    """Id of the brand named ``name``: exact (case-insensitive) first, then loose."""
    wanted = name.strip().lower()
    for brand in brands:
        if str(brand.get("name", "")).strip().lower() == wanted:
            found = _id_from(brand.get("id"))
            if found:
                return found

    loose = normalize_brand_name(name)
    if not loose:
        return None
    for brand in brands:
        if normalize_brand_name(str(brand.get("name", ""))) == loose:
            found = _id_from(brand.get("id"))
            if found:
                return found
    return None


class DownstreamCreator:
    """
    Turns deferred payloads into downstream catalog brands.

    Args:
        deferred: Payloads captured by the save gate
        catalog: Catalog service client
        store: Document store holding the saved records and brand index
        search_attempts: How often to search for the created brand when the
            create response carries no id
        search_delay: Seconds between those searches
    """

    def __init__(
        self,
        deferred: DeferredPayloadCache,
        catalog: CatalogClient,
        store: DocumentStore,
        search_attempts: int = 3,
        search_delay: float = 0.4,
    ) -> None:
        self.deferred = deferred
        self.catalog = catalog
        self.store = store
        self.search_attempts = max(1, search_attempts)
        self.search_delay = search_delay

    async def create(self, record_id: str) -> DownstreamOutcome:
        """
        Create the brand saved as ``record_id`` in the downstream catalog.

        Returns:
            DownstreamOutcome

        Raises:
            ServiceError: If a catalog call fails at the transport level
        """
        payload = self.deferred.get(record_id)
        if payload is None:
            return DownstreamOutcome(
                success=False,
                code=GateCode.MISSING_SAVED_SOURCE,
                message=(
                    "No saved payload for this record. It expired or the record "
                    "was never saved through the gate; save it again."
                ),
                record_id=record_id,
            )

        if payload.country_code and not (payload.country_name or "").strip():
            countries = await self.catalog.list_countries()
            payload.country_name = countries.get(payload.country_code.strip().upper())
            if payload.country_name:
                logger.info(
                    f"Recovered country name '{payload.country_name}' for {payload.country_code}"
                )

        missing = find_missing_fields(payload)
        if missing:
            return DownstreamOutcome(
                success=False,
                code=GateCode.INCOMPLETE_SAVED_SOURCE,
                message=f"Saved payload is missing: {', '.join(missing)}",
                record_id=record_id,
                missing_fields=missing,
            )

        response = await self.catalog.create_brand(build_create_body(payload))
        if response.get("success") is False:
            return DownstreamOutcome(
                success=False,
                code=GateCode.CREATE_REJECTED,
                message=str(response.get("error") or "Catalog rejected the brand."),
                record_id=record_id,
                response=response,
            )

        brand_id = extract_brand_id(response)
        if brand_id is None:
            brand_id = await self._find_created(payload.name or "")
        if brand_id is None:
            return DownstreamOutcome(
                success=False,
                code=GateCode.CREATE_ID_UNRESOLVED,
                message=(
                    "The catalog accepted the brand but its id could not be resolved. "
                    "Check the catalog before retrying to avoid a duplicate."
                ),
                record_id=record_id,
                response=response,
            )

        await self.store.patch(record_id, {CATALOG_ID_PROPERTY: brand_id})
        if payload.source_id:
            await mark_index_status(
                self.store,
                payload.source_id,
                IndexStatus.SCRAPED,
                f"Created in catalog as {brand_id}.",
            )
        self.deferred.delete(record_id)

        logger.info(f"Created '{payload.name}' downstream as {brand_id}")
        return DownstreamOutcome(
            success=True,
            code=GateCode.CREATED,
            message="Created.",
            record_id=record_id,
            brand_id=brand_id,
            response=response,
        )

    async def _find_created(self, name: str) -> str | None:
        for attempt in range(self.search_attempts):
            if attempt:
                await asyncio.sleep(self.search_delay)
            found = match_brand(await self.catalog.search_brands(name), name)
            if found:
                return found
        logger.warning(f"Created brand '{name}' not found after {self.search_attempts} searches")
        return None
