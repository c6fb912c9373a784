"""
Provenance Validation Module
============================

Diffs a proposed brand record against the ground truth of a scrape and
classifies every discrepancy by severity.

Each check is an independent function ``(ground_truth, proposed) -> issues``.
They run in a fixed order and their issues are concatenated, so the engine
as a whole is a pure function of its inputs.

Check order:
1. Contact field presence (errors)
2. Header image fallback availability (warning)
3. Image URL correctness (logo errors, header/about warnings)
4. Distributor reconciliation (warnings)
5. Markdown-derived content: description and catalogs (warnings)
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from brand_agent.core.enums import Severity
from brand_agent.core.schema import (
    BrandRecord,
    ContactDetails,
    ExtractedImageUrls,
    PageMetadata,
    ParsedCatalogLink,
    ParsedDistributor,
    ScrapeSession,
    ValidationIssue,
    ValidationResult,
)
from brand_agent.ingestion.artifacts import ArtifactCache, prefer_richer

# Ground-truth contact field -> record field, with a label for messages
CONTACT_FIELD_MAP: tuple[tuple[str, str, str], ...] = (
    ("phone", "phone", "Phone"),
    ("street", "street", "Street"),
    ("city", "city", "City"),
    ("zip", "postal_code", "Postal code"),
    ("lat", "latitude", "Latitude"),
    ("lng", "longitude", "Longitude"),
    ("website", "website", "Website"),
    ("facebook", "facebook", "Facebook"),
    ("instagram", "instagram", "Instagram"),
    ("pinterest", "pinterest", "Pinterest"),
)

DISTRIBUTOR_FIELDS = ("street", "city", "zip", "phone", "email", "website")
DISTRIBUTOR_MATCH_RATIO = 0.5
MISSING_NAMES_SHOWN = 10
MIN_CATALOG_MENTIONS = 2

_ABOUT_HEADING = re.compile(r"#{1,3}\s*(about|philosophy|company|who we are)", re.IGNORECASE)
_CATALOG_WORD = re.compile(r"catalog", re.IGNORECASE)


@dataclass
class GroundTruth:
    """Everything a proposed record is checked against."""

    source_url: str
    contact_details: ContactDetails = field(default_factory=ContactDetails)
    distributors: list[ParsedDistributor] = field(default_factory=list)
    catalog_links: list[ParsedCatalogLink] = field(default_factory=list)
    image_urls: ExtractedImageUrls = field(default_factory=ExtractedImageUrls)
    markdown: str | None = None
    metadata: PageMetadata | None = None

    @classmethod
    def from_session(
        cls, session: ScrapeSession, artifacts: ArtifactCache | None = None
    ) -> GroundTruth:
        """
        Build ground truth from a scrape session.

        When an artifact cache is given, its distributor and catalog link
        lists replace the session's whenever they are larger.
        """
        distributors = list(session.distributors)
        catalog_links = list(session.catalog_links)
        if artifacts is not None:
            distributors = prefer_richer(
                distributors, artifacts.distributors(session.source_url)
            )
            catalog_links = prefer_richer(
                catalog_links, artifacts.catalog_links(session.source_url)
            )
        return cls(
            source_url=session.source_url,
            contact_details=session.contact_details,
            distributors=distributors,
            catalog_links=catalog_links,
            image_urls=session.image_urls,
            markdown=session.raw_markdown,
            metadata=session.raw_metadata,
        )


Check = Callable[[GroundTruth, BrandRecord], list[ValidationIssue]]


def is_present(value: Any) -> bool:
    """A value counts as present when it is a non-blank string or a finite number."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


# ============================================================================
# Checks
# ============================================================================


def check_contact_fields(truth: GroundTruth, proposed: BrandRecord) -> list[ValidationIssue]:
    """Every contact field found on the page must survive into the record."""
    issues: list[ValidationIssue] = []
    contact = truth.contact_details

    def check(source: str, target: str, label: str) -> None:
        expected = getattr(contact, source)
        received = getattr(proposed, target)
        if is_present(expected) and not is_present(received):
            issues.append(
                ValidationIssue(
                    field=target,
                    severity=Severity.ERROR,
                    message=f"{label} present in contact_details.{source} but missing from record.{target}",
                    expected=expected,
                    received=received,
                )
            )

    for source, target, label in CONTACT_FIELD_MAP[:1]:
        check(source, target, label)

    # Either the company email or the contact email satisfies an extracted email
    if is_present(contact.email) and not (
        is_present(proposed.email) or is_present(proposed.contact_email)
    ):
        issues.append(
            ValidationIssue(
                field="email",
                severity=Severity.ERROR,
                message="Email present in contact_details.email but missing from record.email and record.contact_email",
                expected=contact.email,
                received=None,
            )
        )

    for source, target, label in CONTACT_FIELD_MAP[1:]:
        check(source, target, label)

    return issues


def check_header_image_fallback(
    truth: GroundTruth, proposed: BrandRecord
) -> list[ValidationIssue]:
    """Warn when og:image could stand in for a missing header image."""
    og_image = truth.metadata.og_image if truth.metadata else None
    if not og_image or is_present(proposed.header_image_url):
        return []
    return [
        ValidationIssue(
            field="header_image_url",
            severity=Severity.WARNING,
            message="metadata.og_image is available as a header image fallback but record.header_image_url is missing",
            expected=og_image,
            received=None,
        )
    ]


def _check_image(
    field_name: str, expected: str | None, received: str | None, severity: Severity
) -> list[ValidationIssue]:
    if not expected:
        return []
    suffix = "" if severity == Severity.ERROR else " (will be auto-corrected)"
    if not received:
        return [
            ValidationIssue(
                field=field_name,
                severity=severity,
                message=f"Extracted {field_name} is available but record.{field_name} is missing{suffix}",
                expected=expected,
                received=None,
            )
        ]
    if received != expected:
        message = f"record.{field_name} does not match the extracted {field_name}"
        if severity == Severity.ERROR:
            message += "; use the exact extracted value"
        return [
            ValidationIssue(
                field=field_name,
                severity=severity,
                message=message,
                expected=expected,
                received=received,
            )
        ]
    return []


def check_image_urls(truth: GroundTruth, proposed: BrandRecord) -> list[ValidationIssue]:
    """The logo must match exactly; header and about images are auto-corrected later."""
    images = truth.image_urls
    return (
        _check_image("logo_url", images.logo_url, proposed.logo_url, Severity.ERROR)
        + _check_image(
            "header_image_url",
            images.header_image_url,
            proposed.header_image_url,
            Severity.WARNING,
        )
        + _check_image(
            "about_image_url",
            images.about_image_url,
            proposed.about_image_url,
            Severity.WARNING,
        )
    )


def _distributor_key(name: str) -> str:
    return name.strip().lower()


def check_distributors(truth: GroundTruth, proposed: BrandRecord) -> list[ValidationIssue]:
    """
    Reconcile proposed distributors with the parsed list.

    All findings are warnings: the authoritative list is attached to the
    record after validation regardless of what was proposed.
    """
    parsed = truth.distributors
    if not parsed:
        return []

    offered = proposed.distributors
    if not offered:
        return [
            ValidationIssue(
                field="distributors",
                severity=Severity.WARNING,
                message=f"{len(parsed)} distributors parsed but record.distributors is empty (they will be attached automatically)",
                expected=len(parsed),
                received=0,
            )
        ]

    issues: list[ValidationIssue] = []
    if len(offered) < len(parsed) * DISTRIBUTOR_MATCH_RATIO:
        issues.append(
            ValidationIssue(
                field="distributors",
                severity=Severity.WARNING,
                message=f"Distributor count mismatch: {len(parsed)} parsed but only {len(offered)} in record (<50%, will be auto-corrected)",
                expected=len(parsed),
                received=len(offered),
            )
        )

    by_name = {_distributor_key(d.name): d for d in offered if d.name}

    missing_names: list[str] = []
    for distributor in parsed:
        match = by_name.get(_distributor_key(distributor.name))
        if match is None:
            missing_names.append(distributor.name)
            continue
        for field_name in DISTRIBUTOR_FIELDS:
            expected = getattr(distributor, field_name)
            if expected and not is_present(getattr(match, field_name)):
                issues.append(
                    ValidationIssue(
                        field=f"distributors[{distributor.name}].{field_name}",
                        severity=Severity.WARNING,
                        message=f'Distributor "{distributor.name}" has {field_name} in parsed data but it is missing in the record (will be auto-corrected)',
                        expected=expected,
                        received=None,
                    )
                )

    if missing_names:
        shown = ", ".join(missing_names[:MISSING_NAMES_SHOWN])
        extra = len(missing_names) - MISSING_NAMES_SHOWN
        more = f" (and {extra} more)" if extra > 0 else ""
        issues.append(
            ValidationIssue(
                field="distributors",
                severity=Severity.WARNING,
                message=f"{len(missing_names)} distributors from parsed data not found in record: {shown}{more} (will be auto-corrected)",
                expected=len(parsed),
                received=len(offered),
            )
        )

    return issues


def check_description(truth: GroundTruth, proposed: BrandRecord) -> list[ValidationIssue]:
    """An About-style section on the page should produce a description."""
    if not truth.markdown or not _ABOUT_HEADING.search(truth.markdown):
        return []
    if is_present(proposed.description):
        return []
    return [
        ValidationIssue(
            field="description",
            severity=Severity.WARNING,
            message="Markdown contains an about/philosophy heading but record.description is missing",
        )
    ]


def check_catalogs(truth: GroundTruth, proposed: BrandRecord) -> list[ValidationIssue]:
    """Pages that talk about catalogs should produce downloadable catalog entries."""
    if not truth.markdown:
        return []
    mentions = len(_CATALOG_WORD.findall(truth.markdown))
    if mentions < MIN_CATALOG_MENTIONS:
        return []

    if not proposed.catalogs:
        return [
            ValidationIssue(
                field="catalogs",
                severity=Severity.WARNING,
                message=f'Markdown mentions "catalog" {mentions} times but record.catalogs is empty',
                expected=mentions,
                received=0,
            )
        ]

    if any(catalog.download_url for catalog in proposed.catalogs):
        return []

    if truth.catalog_links:
        return [
            ValidationIssue(
                field="catalogs",
                severity=Severity.WARNING,
                message=f"record.catalogs has no download_url but {len(truth.catalog_links)} catalog links were found on the page",
                expected=len(truth.catalog_links),
                received=0,
            )
        ]
    return [
        ValidationIssue(
            field="catalogs",
            severity=Severity.WARNING,
            message="record.catalogs has entries but none carries a download_url",
        )
    ]


CHECKS: tuple[Check, ...] = (
    check_contact_fields,
    check_header_image_fallback,
    check_image_urls,
    check_distributors,
    check_description,
    check_catalogs,
)


def validate_brand_record(truth: GroundTruth, proposed: BrandRecord) -> ValidationResult:
    """
    Run every check in order and assemble the result.

    Args:
        truth: Extraction output the record must be consistent with
        proposed: The record about to be persisted

    Returns:
        ValidationResult; ``valid`` is True iff there are no error-level issues
    """
    issues: list[ValidationIssue] = []
    for check in CHECKS:
        issues.extend(check(truth, proposed))
    return ValidationResult.from_issues(issues)


def validate_against_session(
    session: ScrapeSession,
    proposed: BrandRecord,
    artifacts: ArtifactCache | None = None,
) -> ValidationResult:
    """Validate a record against a session, merging richer cached artifacts."""
    return validate_brand_record(GroundTruth.from_session(session, artifacts), proposed)
