"""Brand Agent - provenance-gated ingestion of scraped brand pages."""

__version__ = "0.1.0"
