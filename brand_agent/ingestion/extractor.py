"""
Contact Extractor Module
========================

Recovers brand contact details from the serialized hydration payload
embedded in a brand page's raw HTML.

The payload is not documented and its escaping differs between pages, so
extraction is a chain of best-effort strategies tried in a fixed order:

1. Structural block - a bounded span between known anchor tokens
   (``"phone" ... "street" ... "distributors"`` and looser variants)
2. Block sub-patterns - address, phone, email, geo pair, homepage, social links
3. Loose key scan - key-by-key lookups for any field still missing,
   run over the block, a likely region, and finally the whole document

Nothing in this module raises; a field that cannot be found is simply absent.
"""

from __future__ import annotations

import math
import re
from typing import Any

from brand_agent.core.schema import ContactDetails

ContactFields = dict[str, Any]

_PRIMARY_BLOCK = re.compile(
    r'["\\]phone["\\][,:"\\]+[^"\\]+["\\,]+["\\]street["\\][\s\S]{0,3000}?["\\]distributors["\\]'
)
_STREET_BLOCK = re.compile(r'["\\]street["\\][\s\S]{0,3000}?["\\]distributors["\\]')
_SHORT_BLOCK = re.compile(r'["\\]street["\\][\s\S]{0,2000}?["\\]pinterest["\\]')

_STREET_CITY = re.compile(
    r'["\\]street["\\][,:"\\]+([^"\\]+)[,"\\]+([^"\\]+)[,"\\]+["\\]zip["\\]'
)
_GEO = re.compile(
    r'["\\]geoLocation["\\][\s\S]*?},?([\d.]+)[,:"\\]+["\\]?lng["\\]?[,:"\\]+([\d.]+)'
)
_LOOSE_ADDRESS = re.compile(
    r'(?:\\?"|")street(?:\\?"|")[,:"\\]+([^"\n]+)[,:"\\]+([^"\n]+)'
    r'[,:"\\]+(?:\\?"|")zip(?:\\?"|")[,:"\\]+([^"\n]+)',
    re.IGNORECASE,
)

_REGION_MARKERS = (
    '"contactEmail"',
    '\\"contactEmail\\"',
    '"homepage"',
    '\\"homepage\\"',
    '"contactLanguage"',
    '\\"contactLanguage\\"',
    '"phone"',
    '\\"phone\\"',
    '"street"',
    '\\"street\\"',
)
REGION_BEFORE = 1800
REGION_AFTER = 5500

CONTACT_NAME_KEYS = ("contactName", "contactPerson", "contactFullName")
CONTACT_TITLE_KEYS = (
    "contactJobTitle",
    "contactTitle",
    "contactRole",
    "jobTitle",
    "position",
)
SOCIAL_KEYS = ("facebook", "instagram", "pinterest")

# Fields that count as "something was found" when deciding on fallbacks
_PRESENCE_FIELDS = (
    "street",
    "city",
    "zip",
    "phone",
    "email",
    "website",
    "facebook",
    "instagram",
    "pinterest",
    "lat",
    "lng",
)


# ============================================================================
# Value helpers
# ============================================================================


def decode_escaped_value(value: str) -> str:
    """Collapse the escape sequences used by the payload and trim the result."""
    decoded = value.strip()
    decoded = re.sub(r"\\u002f", "/", decoded, flags=re.IGNORECASE)
    decoded = re.sub(r"\\u003a", ":", decoded, flags=re.IGNORECASE)
    decoded = re.sub(r"\\u0026", "&", decoded, flags=re.IGNORECASE)
    decoded = decoded.replace("\\/", "/").replace('\\"', '"').replace("\\\\", "\\")
    decoded = re.sub(r"^\\+|\\+$", "", decoded)
    return decoded.strip()


def normalize_possible_url(value: str | None) -> str | None:
    """
    Decode a URL-ish value and accept it only if it looks like a web address.

    Bare ``www.`` hosts are upgraded to ``https://``; anything else that is
    not an absolute http(s) URL is rejected.
    """
    if not value:
        return None
    decoded = decode_escaped_value(value)
    if not decoded:
        return None

    trimmed = re.sub(r"[),.;]+$", "", decoded)
    if re.match(r"^https?://\S+$", trimmed, re.IGNORECASE):
        return trimmed
    if re.match(r"^www\.\S+$", trimmed, re.IGNORECASE):
        return f"https://{trimmed}"
    return None


def is_plausible_email(value: str | None) -> bool:
    """Check for at least ``x@y.z``: a local part, and a dotted domain."""
    if not value:
        return False
    trimmed = value.strip()
    if not trimmed:
        return False
    at = trimmed.find("@")
    if at < 1:
        return False
    domain = trimmed[at + 1 :]
    dot = domain.find(".")
    return dot != -1 and dot < len(domain) - 1


def is_plausible_contact_string(value: str | None) -> bool:
    """
    Check that a value reads like a person's name or title.

    Field labels share the token stream with values, so anything
    structural, URL-like, email-like or purely numeric is rejected.
    """
    if not value:
        return False
    trimmed = value.strip()
    if len(trimmed) < 2:
        return False
    if re.search(r"[{}\[\]]", trimmed):
        return False
    if re.match(r"^https?[:/]", trimmed, re.IGNORECASE) or re.match(
        r"^www\.", trimmed, re.IGNORECASE
    ):
        return False
    if "@" in trimmed:
        return False
    return not trimmed.isdigit()


def has_any_contact_field(fields: ContactFields) -> bool:
    """Return True when any address, phone, web or geo field is populated."""
    for name in _PRESENCE_FIELDS:
        value = fields.get(name)
        if isinstance(value, str) and value.strip():
            return True
        if isinstance(value, (int, float)) and math.isfinite(value):
            return True
    return False


def _parse_float(value: str) -> float | None:
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


# ============================================================================
# Loose key scan
# ============================================================================


def extract_loose_value(source: str, keys: list[str] | tuple[str, ...]) -> str | None:
    """
    Find the first non-empty value for any of ``keys``.

    Two shapes are tried per key: a quoted value, and a bare value that
    runs until a comma, brace or bracket.
    """
    for key in keys:
        escaped = re.escape(key)
        patterns = (
            rf'(?:\\?"|"){escaped}(?:\\?"|")\s*[:=,]\s*(?:\\?"|")([^"\n]+)',
            rf'(?:\\?"|"){escaped}(?:\\?"|")\s*[:=,]\s*([^,}}\]]+)',
        )
        for pattern in patterns:
            match = re.search(pattern, source, re.IGNORECASE)
            if not match or not match.group(1):
                continue
            decoded = decode_escaped_value(match.group(1))
            if decoded:
                return decoded
    return None


def extract_loose_number(source: str, keys: list[str] | tuple[str, ...]) -> float | None:
    """Find the first numeric value for any of ``keys``."""
    for key in keys:
        pattern = rf'(?:\\?"|"){re.escape(key)}(?:\\?"|")\s*[:=,]\s*(-?\d+(?:\.\d+)?)'
        match = re.search(pattern, source, re.IGNORECASE)
        if not match:
            continue
        parsed = _parse_float(match.group(1))
        if parsed is not None:
            return parsed
    return None


def extract_likely_contact_region(raw_html: str) -> str:
    """
    Return a window around the first contact anchor token.

    Falls back to the whole document when no anchor is present.
    """
    indexes = [i for i in (raw_html.find(m) for m in _REGION_MARKERS) if i >= 0]
    if not indexes:
        return raw_html
    first = min(indexes)
    return raw_html[max(0, first - REGION_BEFORE) : min(len(raw_html), first + REGION_AFTER)]


def extract_from_loose_patterns(source: str, fields: ContactFields) -> None:
    """Fill still-missing fields in ``fields`` by scanning ``source`` key by key."""
    if not fields.get("phone"):
        phone = extract_loose_value(source, ["phone"])
        if phone:
            fields["phone"] = phone

    if not fields.get("email"):
        email = extract_loose_value(source, ["contactEmail", "email"])
        if email and "@" in email:
            fields["email"] = email

    if not fields.get("website"):
        website = normalize_possible_url(extract_loose_value(source, ["homepage", "website"]))
        if website:
            fields["website"] = website

    if not (fields.get("street") and fields.get("city") and fields.get("zip")):
        match = _LOOSE_ADDRESS.search(source)
        if match:
            for name, group in (("street", 1), ("city", 2), ("zip", 3)):
                if not fields.get(name):
                    fields[name] = decode_escaped_value(match.group(group))

    if not fields.get("street"):
        street = extract_loose_value(source, ["street"])
        if street:
            fields["street"] = street
    if not fields.get("city"):
        city = extract_loose_value(source, ["city"])
        if city:
            fields["city"] = city
    if not fields.get("zip"):
        zip_code = extract_loose_value(source, ["zip", "postalCode", "postcode"])
        if zip_code:
            fields["zip"] = zip_code

    if fields.get("lat") is None:
        lat = extract_loose_number(source, ["lat", "latitude"])
        if lat is not None:
            fields["lat"] = lat
    if fields.get("lng") is None:
        lng = extract_loose_number(source, ["lng", "longitude"])
        if lng is not None:
            fields["lng"] = lng

    for key in SOCIAL_KEYS:
        if not fields.get(key):
            url = normalize_possible_url(extract_loose_value(source, [key]))
            if url:
                fields[key] = url


# ============================================================================
# Structural block
# ============================================================================


def _first_value(block: str, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        match = re.search(rf'["\\]{key}["\\][,:"\\]+([^"\\]+)', block)
        if not match:
            continue
        value = match.group(1).strip()
        if value:
            return value
    return None


def _url_value(block: str, key: str) -> str | None:
    match = re.search(rf'["\\]{key}["\\][,:"\\]+((?:https?:\\?/\\?/)?[^"\n]+)', block)
    if not match:
        return None
    return normalize_possible_url(match.group(1))


def extract_from_block(block: str, fields: ContactFields) -> None:
    """Pull contact fields out of a structural contact block."""
    street_city = _STREET_CITY.search(block)
    if street_city:
        fields["street"] = street_city.group(1)
        fields["city"] = street_city.group(2)

    zip_code = re.search(r'["\\]zip["\\][,:"\\]+([^"\\]+)', block)
    if zip_code:
        fields["zip"] = zip_code.group(1)

    phone = re.search(r'["\\]phone["\\][,:"\\]+([^"\\]+)', block)
    if phone:
        fields["phone"] = phone.group(1)

    email = re.search(r'["\\]contactEmail["\\][,:"\\]+([^"\\]+)', block)
    if email and is_plausible_email(email.group(1)):
        fields["email"] = email.group(1)

    contact_name = _first_value(block, CONTACT_NAME_KEYS)
    if contact_name and is_plausible_contact_string(contact_name):
        fields["contact_name"] = contact_name

    contact_title = _first_value(block, CONTACT_TITLE_KEYS)
    if contact_title and is_plausible_contact_string(contact_title):
        fields["contact_job_title"] = contact_title

    geo = _GEO.search(block)
    if geo:
        lat, lng = _parse_float(geo.group(1)), _parse_float(geo.group(2))
        if lat is not None and lng is not None:
            fields["lat"] = lat
            fields["lng"] = lng

    website = _url_value(block, "homepage")
    if website:
        fields["website"] = website

    for key in SOCIAL_KEYS:
        url = _url_value(block, key)
        if url:
            fields[key] = url

    extract_from_loose_patterns(block, fields)


def extract_contact_details(raw_html: str | None) -> ContactDetails:
    """
    Extract brand contact details from raw page HTML.

    Args:
        raw_html: The unrendered HTML of the brand page

    Returns:
        ContactDetails with whatever fields could be recovered
    """
    fields: ContactFields = {}
    if not raw_html:
        return ContactDetails()

    primary = _PRIMARY_BLOCK.search(raw_html)
    if primary:
        extract_from_block(primary.group(0), fields)
        extract_from_loose_patterns(extract_likely_contact_region(raw_html), fields)
        return ContactDetails(**fields)

    fallback = _STREET_BLOCK.search(raw_html)
    if fallback:
        extract_from_block(fallback.group(0), fields)
        if not has_any_contact_field(fields):
            extract_from_loose_patterns(extract_likely_contact_region(raw_html), fields)
        return ContactDetails(**fields)

    short_block = _SHORT_BLOCK.search(raw_html)
    if short_block:
        extract_from_block(short_block.group(0), fields)

    region = extract_likely_contact_region(raw_html)
    extract_from_loose_patterns(region, fields)
    if not has_any_contact_field(fields) and region != raw_html:
        extract_from_loose_patterns(raw_html, fields)

    return ContactDetails(**fields)
