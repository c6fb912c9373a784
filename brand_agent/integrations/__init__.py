"""HTTP clients for the page-fetch, contact-discovery, catalog and Notion services."""

from brand_agent.integrations.base import ServiceClient, ServiceError
from brand_agent.integrations.catalog import CatalogClient
from brand_agent.integrations.firecrawl import FetchResult, FirecrawlClient
from brand_agent.integrations.hunter import HunterClient
from brand_agent.integrations.notion import NotionClient, NotionDocumentStore

__all__ = [
    "ServiceClient",
    "ServiceError",
    "CatalogClient",
    "FetchResult",
    "FirecrawlClient",
    "HunterClient",
    "NotionClient",
    "NotionDocumentStore",
]
