"""
Provenance Gate Module
======================

The save operation for brand records. A record may only be persisted when
it traces back to a live scrape session for the same source URL and
passes validation against that session's extraction.

States:
    Received -> SessionResolved -> Validated -> Persisted -> DeferredPayloadCaptured

Terminal failures (returned as SaveOutcome, never raised):
    DisallowedInput, SessionNotFound, UrlMismatch, ValidationFailed,
    NonRetryableFieldsMissing (the persisted record is rolled back)

Only document-store failures while persisting propagate as exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from brand_agent.core.enums import GateCode, IndexStatus
from brand_agent.core.schema import (
    BrandRecord,
    ExtractedImageUrls,
    SaveBrandRequest,
    SaveOutcome,
    ScrapeSession,
)
from brand_agent.ingestion.artifacts import ArtifactCache
from brand_agent.ingestion.deferred import (
    DeferredPayloadCache,
    build_deferred_payload,
    find_missing_fields,
    split_missing_fields,
)
from brand_agent.ingestion.documents import (
    BRANDS,
    DocumentStore,
    build_brand_properties,
    build_page_body,
    mark_index_status,
)
from brand_agent.ingestion.enrichment import resolve_enrichment
from brand_agent.ingestion.resolver import resolve_brand_record
from brand_agent.ingestion.sessions import ScrapeSessionStore
from brand_agent.ingestion.validation import GroundTruth, validate_brand_record
from brand_agent.integrations.hunter import DEFAULT_DOMAIN_SEARCH_LIMIT, HunterClient

logger = logging.getLogger(__name__)

ALLOWED_FIELDS = frozenset(
    {
        "name",
        "source_url",
        "session_id",
        "country_code",
        "country_name",
        "company_name",
        "product_type",
        "excluded_countries",
        "is_disabled",
        "contact_name",
        "contact_job_title",
        "contact_email",
        "hunter_contacts",
    }
)

# Scraped fields: these only ever come from the session
DISALLOWED_FIELDS = (
    "website",
    "logo_url",
    "source_id",
    "company_type",
    "street",
    "city",
    "postal_code",
    "phone",
    "email",
    "latitude",
    "longitude",
    "facebook",
    "instagram",
    "pinterest",
    "description",
    "catalogs",
    "distributors",
    "header_image_url",
    "about_image_url",
    "stories",
    "similar_brands",
    "collections",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def find_disallowed_fields(request: Mapping[str, Any]) -> list[str]:
    """
    Scraped fields the caller tried to set, in DISALLOWED_FIELDS order.

    A field sent in camelCase (``logoUrl``) is reported under its
    snake_case name.
    """
    return [
        name for name in DISALLOWED_FIELDS if name in request or _camel(name) in request
    ]


class ProvenanceGate:
    """
    Gated save of brand records.

    Args:
        sessions: Brand scrape sessions
        store: Where records and the brand index live
        deferred: Receives the downstream-creation payload of each saved record
        artifacts: Optional cache of richer artifacts per source URL
        hunter: Optional contact-discovery client
    """

    def __init__(
        self,
        sessions: ScrapeSessionStore[ScrapeSession],
        store: DocumentStore,
        deferred: DeferredPayloadCache,
        artifacts: ArtifactCache | None = None,
        hunter: HunterClient | None = None,
        hunter_limit: int = DEFAULT_DOMAIN_SEARCH_LIMIT,
    ) -> None:
        self.sessions = sessions
        self.store = store
        self.deferred = deferred
        self.artifacts = artifacts
        self.hunter = hunter
        self.hunter_limit = hunter_limit

    async def save_brand(self, request: Mapping[str, Any]) -> SaveOutcome:
        """
        Validate and persist a brand record proposed for a scrape session.

        Args:
            request: Caller input; keys outside ALLOWED_FIELDS make it invalid

        Returns:
            SaveOutcome describing where the save stopped
        """
        disallowed = find_disallowed_fields(request)
        if disallowed:
            return SaveOutcome(
                success=False,
                code=GateCode.DISALLOWED_SCRAPED_FIELDS,
                message=(
                    "Scraped fields cannot be set by the caller; they are taken from "
                    "the scrape session."
                ),
                session_id=_as_str(request.get("session_id")),
                disallowed_fields=disallowed,
            )

        try:
            save = SaveBrandRequest.model_validate(dict(request))
        except ValidationError as e:
            return SaveOutcome(
                success=False,
                code=GateCode.INVALID_REQUEST,
                message="Save request is missing required fields or has invalid values.",
                session_id=_as_str(request.get("session_id")),
                request_errors=[
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                ],
            )

        session = self.sessions.get(save.session_id)
        if session is None:
            return SaveOutcome(
                success=False,
                code=GateCode.SESSION_NOT_FOUND,
                message="Scrape session not found or expired. Re-scrape the brand page.",
                session_id=save.session_id,
                source_url=save.source_url,
            )

        if session.source_url != save.source_url:
            return SaveOutcome(
                success=False,
                code=GateCode.URL_MISMATCH,
                message=(
                    f"Scrape session belongs to {session.source_url}, not {save.source_url}. "
                    "Use the session returned for this URL."
                ),
                session_id=save.session_id,
                source_url=save.source_url,
            )

        record = resolve_brand_record(session, save, self.artifacts)
        enrichment = await resolve_enrichment(
            save.hunter_contacts, record.website, self.hunter, self.hunter_limit
        )
        record.hunter_contacts = enrichment.contacts

        validation = validate_brand_record(
            GroundTruth.from_session(session, self.artifacts), record
        )
        if not validation.valid:
            logger.info(
                f"Rejected save for {save.source_url}: {validation.summary}"
            )
            return SaveOutcome(
                success=False,
                code=GateCode.VALIDATION_FAILED,
                message="Resolved record failed provenance validation against the scrape.",
                session_id=save.session_id,
                source_url=save.source_url,
                validation=validation,
                enrichment=enrichment,
            )

        record_id = await self.store.create(
            BRANDS, build_brand_properties(record), build_page_body(record)
        )
        logger.info(f"Saved brand '{record.name}' as {record_id}")

        payload = build_deferred_payload(record_id, record)
        missing = find_missing_fields(payload)
        retryable, non_retryable = split_missing_fields(missing)
        images = _images_of(record)

        if non_retryable:
            archived, updated, errors = await self._roll_back(record_id, record, non_retryable)
            return SaveOutcome(
                success=False,
                code=GateCode.NON_RETRYABLE_MISSING_FIELDS,
                message=(
                    "Fields required for downstream creation are missing and cannot be "
                    "supplied later. The saved record was archived."
                ),
                session_id=save.session_id,
                record_id=record_id,
                source_url=record.source_url,
                scraped_at=record.scraped_at,
                validation=validation,
                missing_fields=missing,
                retryable_missing_fields=retryable,
                non_retryable_missing_fields=non_retryable,
                archived=archived,
                index_entries_updated=updated,
                rollback_errors=errors,
                image_urls=images,
                enrichment=enrichment,
                payload=payload,
            )

        self.deferred.put(payload)
        message = "Saved."
        if retryable:
            message = (
                f"Saved. Still missing for downstream creation: {', '.join(retryable)}. "
                "Re-run the save with more enrichment, or let creation recover them."
            )
        return SaveOutcome(
            success=True,
            code=GateCode.SAVED,
            message=message,
            session_id=save.session_id,
            record_id=record_id,
            source_url=record.source_url,
            scraped_at=record.scraped_at,
            validation=validation,
            missing_fields=missing,
            retryable_missing_fields=retryable,
            image_urls=images,
            enrichment=enrichment,
            payload=payload,
        )

    async def _roll_back(
        self, record_id: str, record: BrandRecord, non_retryable: list[str]
    ) -> tuple[bool, int, list[str]]:
        """Drop the payload, archive the record and fail its index entry."""
        self.deferred.delete(record_id)
        errors: list[str] = []

        archived = False
        try:
            await self.store.archive(record_id)
            archived = True
        except Exception as e:
            logger.exception(f"Failed to archive record {record_id} during rollback")
            errors.append(f"archive: {e}")

        note = (
            f"Auto-marked as failed: missing non-retryable fields "
            f"({', '.join(non_retryable)}) after save."
        )
        updated = 0
        try:
            updated = await mark_index_status(
                self.store, record.source_id, IndexStatus.FAILED, note
            )
        except Exception as e:
            logger.exception(f"Failed to mark index entry {record.source_id} as failed")
            errors.append(f"index: {e}")

        logger.info(
            f"Rolled back {record_id} ({record.name}): missing {', '.join(non_retryable)}"
        )
        return archived, updated, errors


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _images_of(record: BrandRecord) -> ExtractedImageUrls:
    return ExtractedImageUrls(
        logo_url=record.logo_url,
        header_image_url=record.header_image_url,
        about_image_url=record.about_image_url,
    )
