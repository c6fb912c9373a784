"""
Distributor Parser Module
=========================

Locates the distributor list inside a brand page's hydration payload and
parses each entry by its structural fingerprint.
"""

from __future__ import annotations

import re

from brand_agent.core.schema import ParsedDistributor

_START_MARKERS = ('"distributors"', '\\"distributors\\"', "distributors")
_END_MARKERS = (
    '"hasStories"',
    '\\"hasStories\\"',
    '"hasCollections"',
    '\\"hasCollections\\"',
    '"hasProducts"',
    '\\"hasProducts\\"',
    '"hasProjects"',
    '\\"hasProjects\\"',
    '"hasDownloads"',
    '\\"hasDownloads\\"',
    '"domain"',
    '\\"domain\\"',
)
# End markers closer than this to the start belong to the list's own header
END_SEARCH_OFFSET = 500

# "},<7-digit id>,"<name>","[logoImage",]"d-on/..."
_ENTRY = re.compile(r'},(\d{7}),\\?"([^"\\]+)\\?",\\?"(?:logoImage\\?",\\?")?d-on/')
_TYPE = re.compile(r'\\?"distributorType\\?"[,:"\\]+([^"\\,\]]+)')
_QUOTED = re.compile(r'\\?"([^"\\]+)\\?"')
_PHONE_SHAPE = re.compile(r"^\d[\d\s()\-]{5,}$")

_FIELD_KEYMAP = "_1177"
_GEO_OBJECT = '{"_29":'

_FALLBACK_PHONE = re.compile(r'\\?"(\+[\d\s()\-]+)\\?"')
_FALLBACK_WEBSITE = re.compile(r'\\?"(https?://[^"\\]+)\\?"')
_FALLBACK_EMAIL = re.compile(r'\\?"([^"\\]+@[^"\\]+\.[^"\\]+)\\?"')


def extract_distributor_block(raw_html: str | None) -> str | None:
    """
    Slice the distributor section out of the raw page HTML.

    Returns:
        The section text, or None when the page has no distributor marker
    """
    if not raw_html:
        return None

    start = -1
    for marker in _START_MARKERS:
        start = raw_html.find(marker)
        if start != -1:
            break
    if start == -1:
        return None

    search_from = start + END_SEARCH_OFFSET
    end = len(raw_html)
    for marker in _END_MARKERS:
        idx = raw_html.find(marker, search_from)
        if idx != -1 and idx < end:
            end = idx

    return raw_html[start:end]


def _classify_fields(region: str, distributor: ParsedDistributor) -> None:
    """Assign quoted strings in a field region by shape."""
    address_parts: list[str] = []
    for match in _QUOTED.finditer(region):
        value = match.group(1)
        if value == "countryName":
            continue
        if value.startswith("+") or _PHONE_SHAPE.match(value):
            distributor.phone = value
        elif value.startswith("http"):
            distributor.website = value
        elif "@" in value:
            distributor.email = value
        else:
            address_parts.append(value)

    for name, value in zip(("street", "city", "zip"), address_parts):
        setattr(distributor, name, value)


def _parse_entry(name: str, block: str) -> ParsedDistributor:
    distributor = ParsedDistributor(name=name)

    type_match = _TYPE.search(block)
    if type_match and type_match.group(1):
        distributor.type = type_match.group(1)

    keymap = block.find(_FIELD_KEYMAP)
    if keymap != -1:
        keymap_end = block.find("}", keymap)
        if keymap_end != -1:
            geo = block.find(_GEO_OBJECT, keymap_end)
            region = block[keymap_end + 1 : geo if geo != -1 else len(block)]
            _classify_fields(region, distributor)
        return distributor

    # No field keymap: only the shapes that cannot be confused with an address
    phone = _FALLBACK_PHONE.search(block)
    if phone:
        distributor.phone = phone.group(1)
    website = _FALLBACK_WEBSITE.search(block)
    if website:
        distributor.website = website.group(1)
    email = _FALLBACK_EMAIL.search(block)
    if email:
        distributor.email = email.group(1)
    return distributor


def parse_distributors(block: str | None) -> list[ParsedDistributor]:
    """
    Parse distributor entries from a distributor section.

    Each entry spans from its fingerprint to the next entry's fingerprint
    (or the end of the section).

    Args:
        block: Text returned by extract_distributor_block

    Returns:
        Distributors in page order; empty when none are recognised
    """
    if not block:
        return []

    entries = [(m.group(2), m.start()) for m in _ENTRY.finditer(block)]
    distributors: list[ParsedDistributor] = []
    for i, (name, start) in enumerate(entries):
        end = entries[i + 1][1] if i + 1 < len(entries) else len(block)
        distributors.append(_parse_entry(name, block[start:end]))
    return distributors


def extract_distributors(raw_html: str | None) -> list[ParsedDistributor]:
    """Locate and parse the distributor list of a brand page."""
    return parse_distributors(extract_distributor_block(raw_html))
