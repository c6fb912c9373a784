"""Enums for scrape sessions, validation and save outcomes."""

from enum import Enum


class Severity(str, Enum):
    """Validation issue severity."""

    ERROR = "error"
    WARNING = "warning"


class ProductType(str, Enum):
    """Product categories a brand can be listed under downstream."""

    MATERIAL = "material"
    FURNITURE = "furniture"
    LIGHTING = "lighting"
    HARDWARE = "hardware"


class IndexStatus(str, Enum):
    """Processing status of a brand index entry."""

    PENDING = "pending"
    SCRAPED = "scraped"
    FAILED = "failed"
    SKIPPED = "skipped"


class GateCode(str, Enum):
    """Outcome codes reported by the save gate and downstream creation."""

    SAVED = "SAVED"
    INVALID_REQUEST = "INVALID_REQUEST"
    DISALLOWED_SCRAPED_FIELDS = "DISALLOWED_SCRAPED_FIELDS"
    SESSION_NOT_FOUND = "PROVENANCE_SESSION_NOT_FOUND"
    URL_MISMATCH = "PROVENANCE_URL_MISMATCH"
    VALIDATION_FAILED = "PROVENANCE_VALIDATION_FAILED"
    NON_RETRYABLE_MISSING_FIELDS = "CREATE_NON_RETRYABLE_MISSING_FIELDS"
    CREATED = "CREATED"
    MISSING_SAVED_SOURCE = "MISSING_SAVED_SOURCE"
    INCOMPLETE_SAVED_SOURCE = "INCOMPLETE_SAVED_SOURCE"
    CREATE_REJECTED = "CREATE_REJECTED"
    CREATE_ID_UNRESOLVED = "CREATE_ID_UNRESOLVED"


class EnrichmentSource(str, Enum):
    """Where third-party contacts attached to a record came from."""

    PROVIDED = "provided"
    AUTO_LOOKUP = "auto_lookup"
    NONE = "none"
