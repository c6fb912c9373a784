"""
Deferred Payload Module
=======================

Captures the fields a later downstream-creation call needs, at the moment
a brand record passes the save gate.

Missing required fields are split into two groups:

- retryable: can still be filled before downstream creation runs
  (the country name is recoverable from the country code)
- non-retryable: no later call will ever supply them, so the saved record
  is rolled back
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from brand_agent.core.schema import BrandRecord, DeferredCreatePayload
from brand_agent.ingestion.sessions import Clock, ExpiringStore

logger = logging.getLogger(__name__)

DEFERRED_PAYLOAD_TTL_SECONDS = 6 * 60 * 60
DEFERRED_PAYLOAD_MAX_ENTRIES = 500

REQUIRED_FIELDS = (
    "name",
    "company_name",
    "product_type",
    "country_code",
    "country_name",
    "website",
    "contact_email",
)
RETRYABLE_FIELDS = frozenset({"country_name"})


class DeferredPayloadCache:
    """
    Payloads keyed by the id of the record they were captured for.

    Concurrent saves for the same record id are last-write-wins; an
    overwrite is logged by the underlying store.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFERRED_PAYLOAD_TTL_SECONDS,
        max_entries: int = DEFERRED_PAYLOAD_MAX_ENTRIES,
        clock: Clock | None = None,
    ) -> None:
        self._store: ExpiringStore[DeferredCreatePayload] = ExpiringStore(
            ttl_seconds, max_entries, clock, name="DeferredCreatePayload"
        )

    def put(self, payload: DeferredCreatePayload) -> None:
        self._store.put(payload.record_id, payload)

    def get(self, record_id: str) -> DeferredCreatePayload | None:
        return self._store.get(record_id)

    def delete(self, record_id: str) -> bool:
        return self._store.delete(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._store

    def __len__(self) -> int:
        return len(self._store)


def build_deferred_payload(record_id: str, record: BrandRecord) -> DeferredCreatePayload:
    """
    Snapshot the downstream-creation fields of a resolved record.

    Args:
        record_id: Id of the just-persisted record
        record: The resolved record that passed validation
    """
    return DeferredCreatePayload(
        record_id=record_id,
        session_id=record.session_id,
        source_id=record.source_id,
        name=record.name,
        company_name=record.company_name or record.name,
        product_type=list(record.product_type),
        country_code=record.country_code,
        country_name=record.country_name,
        website=record.website,
        contact_name=record.contact_name or "",
        contact_job_title=record.contact_job_title or "-",
        contact_email=record.contact_email,
        excluded_countries=list(record.excluded_countries),
        is_disabled=True if record.is_disabled is None else record.is_disabled,
        logo_url=record.logo_url,
        saved_at=datetime.now(UTC),
    )


def find_missing_fields(payload: DeferredCreatePayload) -> list[str]:
    """Required fields that are empty, in REQUIRED_FIELDS order."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(payload, name)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            missing.append(name)
    return missing


def split_missing_fields(missing: list[str]) -> tuple[list[str], list[str]]:
    """
    Partition missing fields.

    Returns:
        (retryable, non_retryable)
    """
    retryable = [name for name in missing if name in RETRYABLE_FIELDS]
    non_retryable = [name for name in missing if name not in RETRYABLE_FIELDS]
    return retryable, non_retryable
