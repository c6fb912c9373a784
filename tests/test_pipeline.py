"""End-to-end tests: scrape, gated save and downstream creation."""

import httpx
import pytest

from brand_agent.core.enums import GateCode
from brand_agent.core.schema import ExtractedImageUrls, ParsedDistributor
from brand_agent.ingestion.config import PipelineConfig, StoreConfig
from brand_agent.ingestion.documents import BRAND_INDEX
from brand_agent.ingestion.pipeline import Pipeline, build_pipeline, build_store
from brand_agent.integrations.base import ServiceError
from brand_agent.integrations.catalog import CatalogClient

from tests.pages import SOURCE_ID, SOURCE_URL, FakeClock, FakeFetcher, build_request


def catalog_client() -> CatalogClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/countries"):
            return httpx.Response(200, json={"countries": [{"id": "IT", "value": "Italy"}]})
        return httpx.Response(200, json={"data": {"id": "cat-1"}})

    return CatalogClient(base_url="http://catalog.test", transport=httpx.MockTransport(handler))


@pytest.fixture
def pipeline(store, fetcher: FakeFetcher, clock: FakeClock, monkeypatch) -> Pipeline:
    monkeypatch.delenv("HUNTER_API_KEY", raising=False)
    return build_pipeline(
        PipelineConfig(),
        store=store,
        fetcher=fetcher,
        catalog=catalog_client(),
        clock=clock,
    )


class TestBrandScraper:
    """Tests for the scrape stage."""

    @pytest.mark.asyncio
    async def test_scrape_brand_opens_session(self, pipeline: Pipeline, fetcher) -> None:
        """Test that a scrape returns the extraction and a live session."""
        result = await pipeline.scraper.scrape_brand(SOURCE_URL)

        assert fetcher.calls == [SOURCE_URL]
        assert result.contact_details.city == "Milano"
        assert len(result.distributors) == 2
        assert len(result.catalog_links) == 1

        session = pipeline.sessions.get(result.session_id)
        assert session.source_url == SOURCE_URL
        assert session.raw_metadata.title == "Acme | Architonic"
        assert len(pipeline.artifacts.distributors(SOURCE_URL)) == 2

        payload = result.to_dict()
        assert payload["session_id"] == result.session_id
        assert payload["metadata"]["ogImage"].startswith("https://media.architonic.com")

    @pytest.mark.asyncio
    async def test_poorer_rescrape_keeps_richer_artifacts(self, pipeline: Pipeline) -> None:
        """Test that empty results never overwrite cached artifacts."""
        await pipeline.scraper.scrape_brand(SOURCE_URL)
        pipeline.artifacts.remember(SOURCE_URL, [], [], ExtractedImageUrls())

        assert len(pipeline.artifacts.distributors(SOURCE_URL)) == 2
        assert len(pipeline.artifacts.catalog_links(SOURCE_URL)) == 1

        pipeline.artifacts.remember(
            SOURCE_URL, [ParsedDistributor(name="Only")], [], ExtractedImageUrls()
        )
        assert [d.name for d in pipeline.artifacts.distributors(SOURCE_URL)] == ["Only"]

    @pytest.mark.asyncio
    async def test_fetch_failure_creates_no_session(self, pipeline: Pipeline) -> None:
        """Test that a failed fetch raises and leaves no session behind."""
        with pytest.raises(ServiceError):
            await pipeline.scraper.scrape_brand("https://www.architonic.com/en/b/none/1/")
        assert len(pipeline.sessions) == 0

    @pytest.mark.asyncio
    async def test_scrape_product(self, pipeline: Pipeline) -> None:
        """Test that a product session defaults its name to the page title."""
        session_id = await pipeline.scraper.scrape_product(SOURCE_URL, brand_name="Acme")
        session = pipeline.product_sessions.get(session_id)

        assert session.product_name == "Acme | Architonic"
        assert session.brand_name == "Acme"


class TestPipelineFlow:
    """Tests running all three stages together."""

    @pytest.mark.asyncio
    async def test_scrape_save_create(self, pipeline: Pipeline, store) -> None:
        """Test the happy path, recovering the country name downstream."""
        await store.create(BRAND_INDEX, {"Source ID": SOURCE_ID, "Status": "pending"})
        scraped = await pipeline.scraper.scrape_brand(SOURCE_URL)

        saved = await pipeline.gate.save_brand(build_request(scraped.session_id))
        assert saved.code == GateCode.SAVED
        assert saved.enrichment.reason == "contact discovery is not configured"

        created = await pipeline.downstream.create(saved.record_id)
        assert created.code == GateCode.CREATED
        assert created.brand_id == "cat-1"

        [entry] = await store.query(BRAND_INDEX, {"Source ID": SOURCE_ID})
        assert entry.properties["Status"] == "scraped"

        again = await pipeline.downstream.create(saved.record_id)
        assert again.code == GateCode.MISSING_SAVED_SOURCE

    @pytest.mark.asyncio
    async def test_aclose_closes_owned_clients(self, store, fetcher, monkeypatch) -> None:
        """Test that clients created by the pipeline are closed."""
        monkeypatch.delenv("HUNTER_API_KEY", raising=False)
        pipeline = build_pipeline(PipelineConfig(), store=store, fetcher=fetcher)

        assert len(pipeline.clients) == 2
        await pipeline.aclose()
        assert pipeline.clients == []


class TestBuildStore:
    """Tests for document store selection."""

    def test_notion_backend(self, monkeypatch) -> None:
        """Test that the notion backend builds a client to close."""
        monkeypatch.setenv("NOTION_API_KEY", "n-key")
        config = PipelineConfig(store=StoreConfig(backend="notion", databases={"brands": "db"}))

        store, clients = build_store(config)

        assert store.databases == {"brands": "db"}
        assert len(clients) == 1

    @pytest.mark.asyncio
    async def test_sqlite_stores_keep_their_own_database(self, tmp_path) -> None:
        """Test that pipelines configured with different paths never share a database."""
        store_a, closers_a = build_store(
            PipelineConfig(store=StoreConfig(database_path=str(tmp_path / "a.db")))
        )
        store_b, closers_b = build_store(
            PipelineConfig(store=StoreConfig(database_path=str(tmp_path / "b.db")))
        )

        document_id = await store_b.create(BRAND_INDEX, {"Source ID": SOURCE_ID})

        assert await store_a.get(document_id) is None
        assert (await store_b.get(document_id)).properties == {"Source ID": SOURCE_ID}
        assert closers_a == [store_a]
        assert closers_b == [store_b]

        for closer in closers_a + closers_b:
            await closer.aclose()
        assert store_a.engine is None
