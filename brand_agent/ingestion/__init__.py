"""
Brand Agent Ingestion Pipeline
==============================

Turns a single scrape of a brand page into a validated, persisted record.

Pipeline Stages:
1. Fetch - Page fetch client returns markdown, raw HTML, links and metadata
2. Extract - Pattern extractors recover contacts, distributors, catalogs, images
3. Session - The extraction is frozen as a short-lived scrape session
4. Save - The provenance gate resolves the record from the session and validates it
5. Defer - Fields for downstream creation are captured by record id
6. Create - The brand is created in the downstream catalog from that payload
"""

from brand_agent.ingestion.artifacts import ArtifactCache
from brand_agent.ingestion.config import (
    PipelineConfig,
    get_default_config,
    load_config,
)
from brand_agent.ingestion.deferred import DeferredPayloadCache
from brand_agent.ingestion.downstream import DownstreamCreator
from brand_agent.ingestion.gate import ProvenanceGate
from brand_agent.ingestion.pipeline import (
    Pipeline,
    build_pipeline,
    get_default_pipeline,
)
from brand_agent.ingestion.scraper import BrandScraper, BrandScrapeResult, extract_brand
from brand_agent.ingestion.sessions import ExpiringStore, ScrapeSessionStore
from brand_agent.ingestion.validation import (
    GroundTruth,
    validate_against_session,
    validate_brand_record,
)

__all__ = [
    # Config
    "PipelineConfig",
    "get_default_config",
    "load_config",
    # Stores
    "ArtifactCache",
    "DeferredPayloadCache",
    "ExpiringStore",
    "ScrapeSessionStore",
    # Stages
    "BrandScraper",
    "BrandScrapeResult",
    "extract_brand",
    "ProvenanceGate",
    "DownstreamCreator",
    "GroundTruth",
    "validate_against_session",
    "validate_brand_record",
    # Assembly
    "Pipeline",
    "build_pipeline",
    "get_default_pipeline",
]
