"""
Pipeline Assembly Module
========================

Wires the caches, the document store, the service clients and the three
pipeline stages (scrape, gated save, downstream creation) from one
PipelineConfig. The CLI and the web app share a process-wide instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from brand_agent.core.schema import ProductScrapeSession, ScrapeSession
from brand_agent.db.repositories import SqlDocumentStore
from brand_agent.ingestion.artifacts import ArtifactCache
from brand_agent.ingestion.config import PipelineConfig, get_default_config
from brand_agent.ingestion.deferred import DeferredPayloadCache
from brand_agent.ingestion.documents import DocumentStore
from brand_agent.ingestion.downstream import DownstreamCreator
from brand_agent.ingestion.gate import ProvenanceGate
from brand_agent.ingestion.scraper import BrandScraper, PageFetcher
from brand_agent.ingestion.sessions import (
    Clock,
    ScrapeSessionStore,
    create_brand_session_store,
    create_product_session_store,
)
from brand_agent.integrations.catalog import CatalogClient
from brand_agent.integrations.firecrawl import FirecrawlClient
from brand_agent.integrations.hunter import HunterClient
from brand_agent.integrations.notion import NotionClient, NotionDocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    """One process's pipeline state and stages."""

    config: PipelineConfig
    sessions: ScrapeSessionStore[ScrapeSession]
    product_sessions: ScrapeSessionStore[ProductScrapeSession]
    artifacts: ArtifactCache
    deferred: DeferredPayloadCache
    store: DocumentStore
    scraper: BrandScraper
    gate: ProvenanceGate
    downstream: DownstreamCreator
    clients: list = field(default_factory=list)

    async def aclose(self) -> None:
        """Close every client and database engine the pipeline opened."""
        for client in self.clients:
            await client.aclose()
        self.clients.clear()


def build_store(config: PipelineConfig) -> tuple[DocumentStore, list]:
    """
    Create the configured document store.

    Returns:
        (store, resources the caller must close)
    """
    if config.store.backend == "notion":
        client = NotionClient(timeout=config.services.request_timeout)
        return NotionDocumentStore(client, config.store.databases), [client]

    db_path = Path(config.store.database_path).expanduser() if config.store.database_path else None
    store = SqlDocumentStore.open(db_path)
    return store, [store]


def build_pipeline(
    config: PipelineConfig | None = None,
    *,
    store: DocumentStore | None = None,
    fetcher: PageFetcher | None = None,
    hunter: HunterClient | None = None,
    catalog: CatalogClient | None = None,
    clock: Clock | None = None,
) -> Pipeline:
    """
    Assemble a pipeline.

    Any collaborator passed in is used as-is; the rest are created from
    ``config`` (the default configuration when omitted).
    """
    config = config or get_default_config()
    services = config.services
    clients: list = []

    if store is None:
        store, store_clients = build_store(config)
        clients.extend(store_clients)
    if fetcher is None:
        fetcher = FirecrawlClient(
            base_url=services.firecrawl_url,
            timeout=services.request_timeout,
            wait_for_ms=services.fetch_wait_ms,
        )
        clients.append(fetcher)
    if hunter is None:
        hunter = HunterClient(base_url=services.hunter_url, timeout=services.request_timeout)
        clients.append(hunter)
    if catalog is None:
        catalog = CatalogClient(base_url=services.catalog_url, timeout=services.request_timeout)
        clients.append(catalog)

    sessions = create_brand_session_store(
        config.brand_sessions.ttl_seconds, config.brand_sessions.max_entries, clock
    )
    product_sessions = create_product_session_store(
        config.product_sessions.ttl_seconds, config.product_sessions.max_entries, clock
    )
    deferred = DeferredPayloadCache(
        config.deferred_payloads.ttl_seconds, config.deferred_payloads.max_entries, clock
    )
    artifacts = ArtifactCache()

    logger.debug(f"Built pipeline with {config.store.backend} store")
    return Pipeline(
        config=config,
        sessions=sessions,
        product_sessions=product_sessions,
        artifacts=artifacts,
        deferred=deferred,
        store=store,
        scraper=BrandScraper(fetcher, sessions, product_sessions, artifacts),
        gate=ProvenanceGate(
            sessions, store, deferred, artifacts, hunter, hunter_limit=services.hunter_limit
        ),
        downstream=DownstreamCreator(
            deferred,
            catalog,
            store,
            search_attempts=services.create_search_attempts,
            search_delay=services.create_search_delay_seconds,
        ),
        clients=clients,
    )


# Global pipeline instance
_default_pipeline: Pipeline | None = None


def get_default_pipeline() -> Pipeline:
    """Get or create the process-wide pipeline."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = build_pipeline()
    return _default_pipeline


def reset_default_pipeline() -> None:
    """Forget the process-wide pipeline (useful for testing)."""
    global _default_pipeline
    _default_pipeline = None


async def close_default_pipeline() -> None:
    """Close the process-wide pipeline's clients and forget it."""
    global _default_pipeline
    if _default_pipeline is not None:
        await _default_pipeline.aclose()
    _default_pipeline = None
