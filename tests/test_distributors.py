"""Tests for distributor block location and parsing."""

from brand_agent.ingestion.distributors import (
    END_SEARCH_OFFSET,
    extract_distributor_block,
    extract_distributors,
    parse_distributors,
)

from tests.pages import build_raw_html


class TestExtractDistributorBlock:
    """Tests for extract_distributor_block."""

    def test_no_marker(self) -> None:
        """Test that pages without a distributor marker have no block."""
        assert extract_distributor_block("<html>nothing</html>") is None
        assert extract_distributor_block(None) is None

    def test_block_stops_at_end_marker(self) -> None:
        """Test that the block ends at the first end marker past the offset."""
        block = extract_distributor_block(build_raw_html())

        assert block is not None
        assert block.startswith('"distributors"')
        assert '"hasStories"' not in block
        assert "Casa Nova" in block

    def test_near_end_marker_ignored(self) -> None:
        """Test that end markers inside the offset window do not cut the block."""
        raw = '"distributors",[],"domain","x",' + "y" * (END_SEARCH_OFFSET + 50) + '"hasProducts",1'
        block = extract_distributor_block(raw)

        assert '"domain"' in block
        assert '"hasProducts"' not in block

    def test_escaped_marker(self) -> None:
        """Test the backslash-escaped marker."""
        raw = 'x\\"distributors\\",[]'
        assert extract_distributor_block(raw) == '\\"distributors\\",[]'


class TestParseDistributors:
    """Tests for parse_distributors."""

    def test_parse_sample_page(self) -> None:
        """Test parsing both entry shapes of the sample page."""
        distributors = extract_distributors(build_raw_html())

        assert [d.name for d in distributors] == ["Design Shop", "Casa Nova"]

        shop = distributors[0]
        assert shop.type == "retailer"
        assert shop.street == "Main St 5"
        assert shop.city == "Berlin"
        assert shop.zip == "10115"
        assert shop.phone == "+49 30 123456"
        assert shop.website == "https://designshop.de"
        assert shop.email == "info@designshop.de"

        casa = distributors[1]
        assert casa.type is None
        assert casa.phone == "+39 06 555 1234"
        assert casa.website == "https://casanova.it"
        assert casa.email == "sales@casanova.it"
        assert casa.street is None

    def test_keymap_phone_shape(self) -> None:
        """Test that digit-only phone numbers are classified by shape."""
        block = (
            '{"_1":2},1111111,"Shop","d-on/1.jpg",{"_1177":1},'
            '"Countryside Rd","countryName","030 123 456",{"_29":1}'
        )
        [shop] = parse_distributors(block)

        assert shop.phone == "030 123 456"
        assert shop.street == "Countryside Rd"
        assert shop.city is None

    def test_escaped_entries(self) -> None:
        """Test entry fingerprints inside an escaped payload."""
        block = '{"_1":2},2222222,\\"Escaped Shop\\",\\"d-on/2.jpg\\",\\"+1 555 0100\\"'
        [shop] = parse_distributors(block)

        assert shop.name == "Escaped Shop"
        assert shop.phone == "+1 555 0100"

    def test_no_entries(self) -> None:
        """Test that an unrecognised block yields nothing."""
        assert parse_distributors('"distributors",[]') == []
        assert parse_distributors(None) == []
