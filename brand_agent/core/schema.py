"""Canonical Pydantic v2 models for brand scrapes, validation and saves."""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from brand_agent.core.enums import EnrichmentSource, GateCode, Severity


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# ============================================================================
# Extraction fragments
# ============================================================================


class ContactDetails(BaseModel):
    """Contact fields recovered from a brand page. Every field is optional."""

    street: str | None = None
    city: str | None = None
    zip: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    facebook: str | None = None
    instagram: str | None = None
    pinterest: str | None = None
    lat: float | None = None
    lng: float | None = None
    contact_name: str | None = None
    contact_job_title: str | None = None


class ParsedDistributor(BaseModel):
    """A distributor entry parsed from the page's hydration payload."""

    name: str
    type: str | None = None
    street: str | None = None
    city: str | None = None
    zip: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None


class ParsedCatalogLink(BaseModel):
    """A link on the page that looks like a downloadable catalog."""

    url: str
    filename: str | None = None


class ExtractedImageUrls(BaseModel):
    """Brand imagery located by path convention."""

    logo_url: str | None = None
    header_image_url: str | None = None
    about_image_url: str | None = None


class PageMetadata(BaseModel):
    """Page metadata as reported by the fetch service."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    og_image: str | None = Field(default=None, alias="ogImage")
    title: str | None = None
    description: str | None = None


# ============================================================================
# Sessions
# ============================================================================


class ScrapeSession(BaseModel):
    """Immutable snapshot binding one brand scrape to one source URL."""

    session_id: str
    source_url: str
    created_at: datetime
    contact_details: ContactDetails = Field(default_factory=ContactDetails)
    distributors: list[ParsedDistributor] = Field(default_factory=list)
    catalog_links: list[ParsedCatalogLink] = Field(default_factory=list)
    image_urls: ExtractedImageUrls = Field(default_factory=ExtractedImageUrls)
    raw_markdown: str | None = None
    raw_links: list[str] = Field(default_factory=list)
    raw_metadata: PageMetadata | None = None


class ProductScrapeSession(BaseModel):
    """Snapshot of a product page scrape."""

    session_id: str
    source_url: str
    created_at: datetime
    product_name: str | None = None
    brand_name: str | None = None
    raw_markdown: str | None = None
    raw_metadata: PageMetadata | None = None


# ============================================================================
# Records
# ============================================================================


class Catalog(BaseModel):
    """A catalog attached to a brand record."""

    title: str
    year: int | None = None
    language: str | None = None
    download_url: str | None = None
    preview_url: str | None = None


class HunterContact(BaseModel):
    """A person found by the contact-discovery service."""

    email: str
    first_name: str | None = None
    last_name: str | None = None
    position: str | None = None
    confidence: int | None = None


class ExcludedCountry(BaseModel):
    """A country the brand must not be offered in."""

    code: str
    name: str


class BrandRecord(BaseModel):
    """
    A brand record as proposed by a caller or resolved by the save gate.

    Scraped fields (address, social links, imagery, distributors...) are
    only ever filled from a scrape session; the remaining fields are
    enrichment the caller is allowed to supply.
    """

    name: str
    source_url: str
    source_id: str | None = None
    session_id: str | None = None
    scraped_at: datetime | None = None

    # Caller enrichment
    company_name: str | None = None
    company_type: str | None = None
    product_type: list[str] = Field(default_factory=list)
    country_code: str | None = None
    country_name: str | None = None
    excluded_countries: list[ExcludedCountry] = Field(default_factory=list)
    is_disabled: bool | None = None
    contact_name: str | None = None
    contact_job_title: str | None = None
    contact_email: str | None = None
    hunter_contacts: list[HunterContact] = Field(default_factory=list)

    # Scraped fields
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    facebook: str | None = None
    instagram: str | None = None
    pinterest: str | None = None
    logo_url: str | None = None
    header_image_url: str | None = None
    about_image_url: str | None = None
    description: str | None = None
    catalogs: list[Catalog] = Field(default_factory=list)
    distributors: list[ParsedDistributor] = Field(default_factory=list)


class SaveBrandRequest(BaseModel):
    """Caller input accepted by the save gate."""

    model_config = ConfigDict(extra="forbid")

    name: RequiredText
    source_url: RequiredText
    session_id: RequiredText
    country_code: str | None = None
    country_name: str | None = None
    company_name: str | None = None
    product_type: list[str] = Field(default_factory=list)
    excluded_countries: list[dict[str, Any]] = Field(default_factory=list)
    is_disabled: bool | None = None
    contact_name: str | None = None
    contact_job_title: str | None = None
    contact_email: str | None = None
    hunter_contacts: list[HunterContact] = Field(default_factory=list)


class DeferredCreatePayload(BaseModel):
    """Fields the downstream catalog-creation call needs, captured at save time."""

    record_id: str
    session_id: str | None = None
    source_id: str | None = None
    name: str | None = None
    company_name: str | None = None
    product_type: list[str] = Field(default_factory=list)
    country_code: str | None = None
    country_name: str | None = None
    website: str | None = None
    contact_name: str = ""
    contact_job_title: str = "-"
    contact_email: str | None = None
    excluded_countries: list[ExcludedCountry] = Field(default_factory=list)
    is_disabled: bool = True
    logo_url: str | None = None
    saved_at: datetime = Field(default_factory=_utc_now)


# ============================================================================
# Validation and outcomes
# ============================================================================


class ValidationIssue(BaseModel):
    """A single discrepancy between ground truth and a proposed record."""

    field: str
    severity: Severity
    message: str
    expected: Any = None
    received: Any = None


class ValidationResult(BaseModel):
    """Severity-classified outcome of validating a proposed record."""

    valid: bool
    error_count: int = 0
    warning_count: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)
    summary: str = ""

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationResult":
        """Tally issues by severity and build the summary sentence."""
        errors = sum(1 for issue in issues if issue.severity == Severity.ERROR)
        warnings = len(issues) - errors

        if not issues:
            summary = "All checks passed. No dropped fields detected."
        else:
            parts = []
            if errors:
                parts.append(f"{errors} error(s) - fields that MUST be fixed")
            if warnings:
                parts.append(f"{warnings} warning(s) - review recommended")
            summary = "; ".join(parts)

        return cls(
            valid=errors == 0,
            error_count=errors,
            warning_count=warnings,
            issues=list(issues),
            summary=summary,
        )


class HunterEnrichment(BaseModel):
    """Contacts attached to a record and how they were obtained."""

    source: EnrichmentSource = EnrichmentSource.NONE
    domain: str | None = None
    contacts: list[HunterContact] = Field(default_factory=list)
    reason: str | None = None


class StoredDocument(BaseModel):
    """A record held by a document store."""

    id: str
    collection: str
    properties: dict[str, Any] = Field(default_factory=dict)
    children: list[dict[str, Any]] = Field(default_factory=list)
    archived: bool = False


class SaveOutcome(BaseModel):
    """Structured result of a gated save."""

    success: bool
    code: GateCode
    message: str = ""
    session_id: str | None = None
    record_id: str | None = None
    source_url: str | None = None
    scraped_at: datetime | None = None
    request_errors: list[str] = Field(default_factory=list)
    disallowed_fields: list[str] = Field(default_factory=list)
    validation: ValidationResult | None = None
    missing_fields: list[str] = Field(default_factory=list)
    retryable_missing_fields: list[str] = Field(default_factory=list)
    non_retryable_missing_fields: list[str] = Field(default_factory=list)
    archived: bool | None = None
    index_entries_updated: int = 0
    rollback_errors: list[str] = Field(default_factory=list)
    image_urls: ExtractedImageUrls | None = None
    enrichment: HunterEnrichment | None = None
    payload: DeferredCreatePayload | None = None


class DownstreamOutcome(BaseModel):
    """Structured result of creating a saved brand in the downstream catalog."""

    success: bool
    code: GateCode
    message: str = ""
    record_id: str
    brand_id: str | None = None
    missing_fields: list[str] = Field(default_factory=list)
    response: dict[str, Any] | None = None
