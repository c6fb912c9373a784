"""Tests for database persistence layer."""

import pytest
from sqlalchemy.orm import Session

from brand_agent.core.enums import IndexStatus
from brand_agent.core.schema import BrandRecord, Catalog, HunterContact, ParsedDistributor
from brand_agent.db.engine import get_database_url
from brand_agent.db.repositories import DocumentRepository, SqlDocumentStore
from brand_agent.ingestion.documents import (
    BRAND_INDEX,
    BRANDS,
    NOTE_MAX_LENGTH,
    block_text,
    build_brand_properties,
    build_page_body,
    compact_note,
    mark_index_status,
)

from tests.pages import SOURCE_ID, SOURCE_URL


@pytest.fixture
def session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


class TestDocumentRepository:
    """Tests for DocumentRepository."""

    def test_create_document(self, session: Session) -> None:
        """Test creating a document."""
        repo = DocumentRepository(session)
        created = repo.create(BRANDS, {"Name": "Acme"}, [{"type": "paragraph"}])
        session.commit()

        assert created.id
        assert created.collection == BRANDS
        assert created.properties == {"Name": "Acme"}
        assert created.children == [{"type": "paragraph"}]
        assert created.archived is False

    def test_get_nonexistent_document(self, session: Session) -> None:
        """Test retrieving a document that does not exist."""
        assert DocumentRepository(session).get_by_id("nope") is None

    def test_update_properties_merges(self, session: Session) -> None:
        """Test that updates merge into existing properties."""
        repo = DocumentRepository(session)
        created = repo.create(BRAND_INDEX, {"Name": "Acme", "Status": "pending"})
        updated = repo.update_properties(created.id, {"Status": "scraped"})
        session.commit()

        assert updated.properties == {"Name": "Acme", "Status": "scraped"}

    def test_update_nonexistent_raises(self, session: Session) -> None:
        """Test updating a missing document."""
        with pytest.raises(ValueError):
            DocumentRepository(session).update_properties("nope", {})

    def test_find_filters_and_skips_archived(self, session: Session) -> None:
        """Test filtering by property and collection."""
        repo = DocumentRepository(session)
        keep = repo.create(BRAND_INDEX, {"Source ID": "1"})
        gone = repo.create(BRAND_INDEX, {"Source ID": "1"})
        repo.create(BRAND_INDEX, {"Source ID": "2"})
        repo.create(BRANDS, {"Source ID": "1"})
        repo.archive(gone.id)
        session.commit()

        found = repo.find(BRAND_INDEX, {"Source ID": "1"})
        assert [doc.id for doc in found] == [keep.id]
        assert len(repo.find(BRAND_INDEX)) == 2

        archived = repo.get_by_id(gone.id)
        assert archived.archived is True


class TestSqlDocumentStore:
    """Tests for the SQLite document store."""

    @pytest.mark.asyncio
    async def test_round_trip(self, store: SqlDocumentStore) -> None:
        """Test create, patch, query and archive."""
        document_id = await store.create(BRANDS, {"Name": "Acme"})
        await store.patch(document_id, {"Catalog ID": "b-1"})

        [doc] = await store.query(BRANDS, {"Catalog ID": "b-1"})
        assert doc.id == document_id
        assert doc.properties == {"Name": "Acme", "Catalog ID": "b-1"}

        await store.archive(document_id)
        assert await store.query(BRANDS, {}) == []
        assert (await store.get(document_id)).archived is True

    @pytest.mark.asyncio
    async def test_open_owns_engine(self, tmp_path) -> None:
        """Test that an opened store creates its tables and disposes of its engine."""
        store = SqlDocumentStore.open(tmp_path / "docs.db")
        document_id = await store.create(BRANDS, {"Name": "Acme"})

        reopened = SqlDocumentStore.open(tmp_path / "docs.db")
        assert (await reopened.get(document_id)).properties == {"Name": "Acme"}

        await store.aclose()
        await reopened.aclose()
        assert store.engine is None

    @pytest.mark.asyncio
    async def test_failed_operation_propagates(self, store: SqlDocumentStore) -> None:
        """Test that store failures are raised, not swallowed."""
        with pytest.raises(ValueError):
            await store.archive("nope")


class TestMarkIndexStatus:
    """Tests for brand index status updates."""

    @pytest.mark.asyncio
    async def test_marks_every_entry(self, store: SqlDocumentStore) -> None:
        """Test that all entries for a source id are updated."""
        first = await store.create(BRAND_INDEX, {"Source ID": SOURCE_ID, "Status": "pending"})
        await store.create(BRAND_INDEX, {"Source ID": SOURCE_ID, "Status": "pending"})
        other = await store.create(BRAND_INDEX, {"Source ID": "42", "Status": "pending"})

        updated = await mark_index_status(store, SOURCE_ID, IndexStatus.SCRAPED, "done")

        assert updated == 2
        entry = await store.get(first)
        assert entry.properties["Status"] == "scraped"
        assert entry.properties["Notes"] == "done"
        assert "Last Synced" in entry.properties
        assert (await store.get(other)).properties["Status"] == "pending"

    @pytest.mark.asyncio
    async def test_without_source_id(self, store: SqlDocumentStore) -> None:
        """Test that a record without a source id updates nothing."""
        assert await mark_index_status(store, None, IndexStatus.FAILED) == 0

    def test_compact_note(self) -> None:
        """Test whitespace collapsing and the length cap."""
        assert compact_note("  a\n\n b  ") == "a b"
        long = compact_note("x" * (NOTE_MAX_LENGTH + 10))
        assert len(long) == NOTE_MAX_LENGTH
        assert long.endswith("...")


class TestRecordDocuments:
    """Tests for the brand record properties and body."""

    def record(self, **fields) -> BrandRecord:
        return BrandRecord(
            name="Acme",
            source_url=SOURCE_URL,
            source_id=SOURCE_ID,
            session_id="s-1",
            **fields,
        )

    def test_properties(self) -> None:
        """Test the brands collection properties."""
        assert build_brand_properties(self.record()) == {
            "Name": "Acme",
            "Source URL": SOURCE_URL,
            "Scrape Session ID": "s-1",
            "Source ID": SOURCE_ID,
        }

    def test_minimal_body_has_provenance_only(self) -> None:
        """Test that empty sections are omitted."""
        texts = [block_text(block) for block in build_page_body(self.record())]
        assert texts == [
            "Provenance",
            f"Source URL: {SOURCE_URL}",
            "Scrape Session ID: s-1",
            "Scraped At (UTC): unknown",
        ]

    def test_full_body_sections(self) -> None:
        """Test section order and line formatting."""
        record = self.record(
            description="Fine furniture.",
            contact_email="info@acme.it",
            email="press@acme.it",
            street="Via Roma 1",
            postal_code="20121",
            city="Milano",
            latitude=45.0,
            longitude=9.0,
            instagram="https://www.instagram.com/acme",
            logo_url="https://media.example/logo.png",
            catalogs=[Catalog(title="Collection", year=2024, download_url="https://acme.it/c.pdf")],
            distributors=[ParsedDistributor(name="Design Shop", city="Berlin")],
            hunter_contacts=[HunterContact(email="a@acme.it", first_name="Anna", last_name="B")],
        )
        body = build_page_body(record)
        headings = [block_text(b) for b in body if b["type"] == "heading_2"]
        texts = [block_text(b) for b in body]

        assert headings == [
            "Description",
            "Contact Details",
            "Social Media",
            "Images",
            "Catalogs",
            "Distribution Network",
            "Contacts",
            "Provenance",
        ]
        assert "Company Email: press@acme.it" in texts
        assert "Address: Via Roma 1, 20121, Milano" in texts
        assert "Coordinates: 45.0, 9.0" in texts
        assert "Collection (2024)" in texts
        assert "Download: https://acme.it/c.pdf" in texts
        assert "Design Shop | Berlin" in texts
        assert "Anna B <a@acme.it>" in texts

    def test_long_text_is_truncated(self) -> None:
        """Test the per-block text limit."""
        body = build_page_body(self.record(description="x" * 5000))
        assert len(block_text(body[1])) == 2000


class TestEngine:
    """Tests for engine helpers."""

    def test_database_url_from_path(self, tmp_path) -> None:
        """Test building a URL from an explicit path."""
        url = get_database_url(tmp_path / "sub" / "x.db")
        assert url == f"sqlite:///{tmp_path / 'sub' / 'x.db'}"
        assert (tmp_path / "sub").exists()

    def test_database_url_from_env(self, monkeypatch) -> None:
        """Test that a sqlite URL in DATABASE_URL is used as-is."""
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        assert get_database_url() == "sqlite:///:memory:"
