"""Tests for the external service clients."""

import json

import httpx
import pytest

from brand_agent.integrations.base import ServiceError
from brand_agent.integrations.catalog import CatalogClient
from brand_agent.integrations.firecrawl import FetchResult, FirecrawlClient
from brand_agent.integrations.hunter import FALLBACK_DOMAIN_SEARCH_LIMIT, HunterClient
from brand_agent.integrations.notion import (
    NotionClient,
    NotionDocumentStore,
    from_notion_property,
    to_notion_property,
)

from tests.pages import LOGO_URL, SOURCE_URL


def mock(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


class TestFirecrawlClient:
    """Tests for FirecrawlClient."""

    @pytest.mark.asyncio
    async def test_fetch(self) -> None:
        """Test a successful scrape."""
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            assert request.headers["Authorization"] == "Bearer fc-key"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "markdown": "# Acme",
                        "rawHtml": "<html></html>",
                        "links": ["https://acme.it/", None],
                        "metadata": {"ogImage": LOGO_URL, "title": "Acme"},
                    },
                },
            )

        client = FirecrawlClient(api_key="fc-key", transport=mock(handler), wait_for_ms=500)
        result = await client.fetch(SOURCE_URL)
        await client.aclose()

        assert seen[0]["url"] == SOURCE_URL
        assert seen[0]["waitFor"] == 500
        assert "rawHtml" in seen[0]["formats"]
        assert result.markdown == "# Acme"
        assert result.raw_html == "<html></html>"
        assert result.links == ["https://acme.it/"]
        assert result.metadata.og_image == LOGO_URL

    @pytest.mark.asyncio
    async def test_service_reports_failure(self) -> None:
        """Test that success=false raises ServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "blocked"})

        client = FirecrawlClient(api_key="fc-key", transport=mock(handler))
        with pytest.raises(ServiceError, match="blocked"):
            await client.fetch(SOURCE_URL)

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Test that non-2xx responses carry their status code."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(402, text="payment required")

        client = FirecrawlClient(api_key="fc-key", transport=mock(handler))
        with pytest.raises(ServiceError) as exc_info:
            await client.fetch(SOURCE_URL)
        assert exc_info.value.status_code == 402
        assert exc_info.value.service == "firecrawl"

    def test_from_dict_without_metadata(self) -> None:
        """Test parsing a sparse data object."""
        result = FetchResult.from_dict(SOURCE_URL, {})
        assert result.metadata is None
        assert result.links == []


class TestHunterClient:
    """Tests for HunterClient."""

    @pytest.mark.asyncio
    async def test_domain_search(self) -> None:
        """Test parsing contacts and skipping entries without an email."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["domain"] == "acme.it"
            return httpx.Response(
                200,
                json={
                    "data": {
                        "emails": [
                            {"value": "maria@acme.it", "first_name": "Maria", "confidence": 95},
                            {"value": None},
                        ]
                    }
                },
            )

        client = HunterClient(api_key="h-key", transport=mock(handler))
        contacts = await client.domain_search(" ACME.it ")

        assert [c.email for c in contacts] == ["maria@acme.it"]
        assert contacts[0].confidence == 95

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(self) -> None:
        """Test that entries with a non-string email or bad fields are dropped."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "data": {
                        "emails": [
                            {"value": 42},
                            {"value": ["a@acme.it"]},
                            {"value": "bad@acme.it", "confidence": "very"},
                            "luca@acme.it",
                            {"value": "luca@acme.it", "position": "Sales"},
                        ]
                    }
                },
            )

        client = HunterClient(api_key="h-key", transport=mock(handler))
        contacts = await client.domain_search("acme.it")

        assert [c.email for c in contacts] == ["luca@acme.it"]
        assert contacts[0].position == "Sales"

    @pytest.mark.asyncio
    async def test_retries_with_smaller_limit(self) -> None:
        """Test that a rejected limit is retried once with the fallback limit."""
        limits: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            limits.append(request.url.params["limit"])
            if request.url.params["limit"] != str(FALLBACK_DOMAIN_SEARCH_LIMIT):
                return httpx.Response(400, json={"errors": [{"id": "pagination_error"}]})
            return httpx.Response(200, json={"data": {"emails": []}})

        client = HunterClient(api_key="h-key", transport=mock(handler))
        assert await client.domain_search("acme.it") == []
        assert limits == ["50", "10"]

        # The lower cap sticks for later searches
        await client.domain_search("acme.it")
        assert limits[-1] == "10"

    @pytest.mark.asyncio
    async def test_unconfigured(self, monkeypatch) -> None:
        """Test that a missing key raises before any request."""
        monkeypatch.delenv("HUNTER_API_KEY", raising=False)
        client = HunterClient()

        assert client.is_configured() is False
        with pytest.raises(ServiceError):
            await client.domain_search("acme.it")


class TestCatalogClient:
    """Tests for CatalogClient."""

    @pytest.mark.asyncio
    async def test_list_countries(self) -> None:
        """Test that invalid entries are skipped and codes upper-cased."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "countries": [
                        {"id": "it", "value": "Italy"},
                        {"id": "FR", "value": " "},
                        "junk",
                    ]
                },
            )

        client = CatalogClient(base_url="http://catalog.test", transport=mock(handler))
        assert await client.list_countries() == {"IT": "Italy"}

    @pytest.mark.asyncio
    async def test_search_and_create(self) -> None:
        """Test the search query and a non-object create response."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                assert request.url.params["query"] == "Acme"
                return httpx.Response(200, json={"brands": [{"id": "1"}, "x"]})
            return httpx.Response(200, json=["unexpected"])

        client = CatalogClient(base_url="http://catalog.test", transport=mock(handler))
        assert await client.search_brands("Acme") == [{"id": "1"}]
        assert await client.create_brand({"name": "Acme"}) == {}


class TestNotionDocumentStore:
    """Tests for the Notion-backed store."""

    def test_property_conversion(self) -> None:
        """Test plain values to Notion property objects and back."""
        assert to_notion_property("Name", "Acme") == {
            "title": [{"type": "text", "text": {"content": "Acme"}}]
        }
        assert to_notion_property("Status", "failed") == {"select": {"name": "failed"}}
        assert to_notion_property("Source URL", SOURCE_URL) == {"url": SOURCE_URL}
        assert to_notion_property("Last Synced", "2026-01-01") == {
            "date": {"start": "2026-01-01"}
        }
        assert to_notion_property("Source ID", "3100123") == {
            "rich_text": [{"type": "text", "text": {"content": "3100123"}}]
        }

        assert from_notion_property(
            {"type": "rich_text", "rich_text": [{"plain_text": "31"}, {"plain_text": "00"}]}
        ) == "3100"
        assert from_notion_property({"type": "select", "select": None}) is None
        assert from_notion_property({"type": "url", "url": SOURCE_URL}) == SOURCE_URL

    @pytest.mark.asyncio
    async def test_create_query_patch_archive(self) -> None:
        """Test the requests issued for each store operation."""
        calls: list[tuple[str, str, dict]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content) if request.content else {}
            calls.append((request.method, request.url.path, body))
            if request.url.path.endswith("/query"):
                return httpx.Response(
                    200,
                    json={
                        "results": [
                            {
                                "id": "page-1",
                                "properties": {
                                    "Status": {"type": "select", "select": {"name": "pending"}}
                                },
                            },
                            {"id": "page-2", "archived": True, "properties": {}},
                        ]
                    },
                )
            return httpx.Response(200, json={"id": "page-new"})

        client = NotionClient(api_key="n-key", transport=mock(handler))
        store = NotionDocumentStore(client, {"brands": "db-brands", "brand_index": "db-index"})

        page_id = await store.create("brands", {"Name": "Acme", "Source ID": None}, [{"x": 1}])
        [entry] = await store.query("brand_index", {"Source ID": "3100123"})
        await store.patch("page-1", {"Status": "failed"})
        await store.archive(page_id)

        assert page_id == "page-new"
        assert entry.id == "page-1"
        assert entry.properties["Status"] == "pending"

        create, query, patch, archive = calls
        assert create[2]["parent"] == {"database_id": "db-brands"}
        assert "Source ID" not in create[2]["properties"]
        assert create[2]["children"] == [{"x": 1}]
        assert query[1] == "/v1/databases/db-index/query"
        assert query[2]["filter"] == {
            "property": "Source ID",
            "rich_text": {"equals": "3100123"},
        }
        assert patch[2] == {"properties": {"Status": {"select": {"name": "failed"}}}}
        assert archive[2] == {"archived": True}

    @pytest.mark.asyncio
    async def test_unconfigured_collection(self) -> None:
        """Test that a collection without a database id is a service error."""
        client = NotionClient(api_key="n-key", transport=mock(lambda r: httpx.Response(200)))
        store = NotionDocumentStore(client, {})

        with pytest.raises(ServiceError, match="brand_index"):
            await store.query("brand_index", {})

    def test_client_requires_key(self, monkeypatch) -> None:
        """Test that the Notion client refuses to start without a key."""
        monkeypatch.delenv("NOTION_API_KEY", raising=False)
        with pytest.raises(ValueError):
            NotionClient()
