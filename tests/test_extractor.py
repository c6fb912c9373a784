"""Tests for contact extraction."""

import pytest

from brand_agent.ingestion.extractor import (
    decode_escaped_value,
    extract_contact_details,
    extract_likely_contact_region,
    extract_loose_number,
    extract_loose_value,
    is_plausible_contact_string,
    is_plausible_email,
    normalize_possible_url,
)

from tests.pages import CONTACT_PAYLOAD, build_raw_html


class TestValueHelpers:
    """Tests for decoding and URL normalisation."""

    def test_decode_unicode_escapes(self) -> None:
        """Test that escaped slashes, colons and ampersands are collapsed."""
        assert decode_escaped_value(r"https\u003a\u002f\u002facme.it\u002f?a=1\u0026b=2") == (
            "https://acme.it/?a=1&b=2"
        )

    def test_decode_escaped_slashes_and_quotes(self) -> None:
        """Test backslash-escaped slashes and quotes."""
        assert decode_escaped_value(r"https:\/\/acme.it") == "https://acme.it"
        assert decode_escaped_value(r'say \"hi\"') == 'say "hi"'

    def test_decode_strips_edge_backslashes(self) -> None:
        """Test that leading and trailing backslashes are removed."""
        assert decode_escaped_value("\\\\Via Roma 1\\") == "Via Roma 1"

    def test_normalize_url_accepts_http(self) -> None:
        """Test that absolute URLs pass and trailing punctuation is trimmed."""
        assert normalize_possible_url("https://acme.it).") == "https://acme.it"
        assert normalize_possible_url("http://acme.it/x") == "http://acme.it/x"

    def test_normalize_url_upgrades_www(self) -> None:
        """Test that bare www hosts get an https scheme."""
        assert normalize_possible_url("www.acme.it") == "https://www.acme.it"

    def test_normalize_url_rejects_other_values(self) -> None:
        """Test that non-URL values are rejected."""
        assert normalize_possible_url("acme.it") is None
        assert normalize_possible_url("facebook") is None
        assert normalize_possible_url("") is None
        assert normalize_possible_url(None) is None


class TestPlausibility:
    """Tests for the email and contact-string heuristics."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("info@acme.it", True),
            ("a@b.c", True),
            ("info@acme", False),
            ("info@acme.", False),
            ("@acme.it", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_plausible_email(self, value, expected) -> None:
        """Test the x@y.z shape check."""
        assert is_plausible_email(value) is expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Maria Rossi", True),
            ("Export Manager", True),
            ("M", False),
            ("12345", False),
            ("https://acme.it", False),
            ("www.acme.it", False),
            ("maria@acme.it", False),
            ("{\"_12\":3}", False),
            (None, False),
        ],
    )
    def test_is_plausible_contact_string(self, value, expected) -> None:
        """Test that labels, URLs, emails and numbers are rejected."""
        assert is_plausible_contact_string(value) is expected


class TestLooseScan:
    """Tests for the key-by-key loose scan."""

    def test_quoted_value(self) -> None:
        """Test extracting a quoted value."""
        assert extract_loose_value('{"city":"Milano"}', ["city"]) == "Milano"

    def test_bare_value(self) -> None:
        """Test extracting a bare value terminated by a comma."""
        assert extract_loose_value('{"zip":20121,"x":1}', ["zip"]) == "20121"

    def test_first_key_wins(self) -> None:
        """Test that keys are tried in order."""
        source = '{"email":"b@acme.it","contactEmail":"a@acme.it"}'
        assert extract_loose_value(source, ["contactEmail", "email"]) == "a@acme.it"

    def test_number(self) -> None:
        """Test extracting a signed decimal."""
        assert extract_loose_number('{"latitude":-33.865,"x":1}', ["lat", "latitude"]) == -33.865

    def test_missing_key(self) -> None:
        """Test that missing keys yield None."""
        assert extract_loose_value('{"a":"b"}', ["city"]) is None
        assert extract_loose_number('{"a":"b"}', ["lat"]) is None

    def test_region_without_anchor_is_whole_document(self) -> None:
        """Test that a document without anchors is returned unchanged."""
        assert extract_likely_contact_region("<p>nothing here</p>") == "<p>nothing here</p>"

    def test_region_is_bounded(self) -> None:
        """Test that the region window is cut around the first anchor."""
        raw = "a" * 5000 + '"phone"' + "b" * 10000
        region = extract_likely_contact_region(raw)
        assert '"phone"' in region
        assert len(region) == 1800 + 5500


class TestExtractContactDetails:
    """Tests for the full extraction chain."""

    def test_primary_block(self) -> None:
        """Test extraction from the phone/street/distributors block."""
        details = extract_contact_details(build_raw_html())

        assert details.phone == "+39 02 1234567"
        assert details.street == "Via Roma 1"
        assert details.city == "Milano"
        assert details.zip == "20121"
        assert details.email == "info@acme.it"
        assert details.website == "https://www.acme.it"
        assert details.facebook == "https://www.facebook.com/acme"
        assert details.instagram == "https://www.instagram.com/acme"
        assert details.pinterest == "https://www.pinterest.com/acme"
        assert details.lat == pytest.approx(45.4642)
        assert details.lng == pytest.approx(9.19)
        assert details.contact_name == "Maria Rossi"
        assert details.contact_job_title == "Export Manager"

    def test_deterministic(self) -> None:
        """Test that the same input always yields the same output."""
        raw = build_raw_html()
        assert extract_contact_details(raw) == extract_contact_details(raw)

    def test_implausible_block_email_falls_back_to_loose_value(self) -> None:
        """Test that the loose pass still records an email with an @."""
        payload = CONTACT_PAYLOAD.replace("info@acme.it", "info@acme")
        details = extract_contact_details(build_raw_html(payload))
        assert details.email == "info@acme"

    def test_implausible_contact_name_dropped(self) -> None:
        """Test that a URL in the contact name slot is ignored."""
        payload = CONTACT_PAYLOAD.replace("Maria Rossi", "https://acme.it")
        details = extract_contact_details(build_raw_html(payload))
        assert details.contact_name is None

    def test_loose_only_document(self) -> None:
        """Test the loose pass when no structural block exists."""
        raw = '<script>{"contactEmail":"hello@brand.com","homepage":"www.brand.com"}</script>'
        details = extract_contact_details(raw)

        assert details.email == "hello@brand.com"
        assert details.website == "https://www.brand.com"
        assert details.street is None
        assert details.phone is None

    def test_loose_address_triple(self) -> None:
        """Test the street/city/zip triple in the loose pass."""
        raw = '{"contactEmail":"a@b.co","street":"Main St 1","Springfield","zip":"12345"}'
        details = extract_contact_details(raw)

        assert details.street == "Main St 1"
        assert details.city == "Springfield"
        assert details.zip == "12345"

    def test_empty_input(self) -> None:
        """Test that empty input yields an empty result, never an error."""
        assert extract_contact_details("").model_dump(exclude_none=True) == {}
        assert extract_contact_details(None).model_dump(exclude_none=True) == {}
