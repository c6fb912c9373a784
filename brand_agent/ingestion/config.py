"""
Pipeline Configuration Module
=============================

Loads pipeline settings from a YAML file: cache sizes and lifetimes,
the document-store backend, and external service endpoints. Secrets
(API keys) are read from the environment, never from the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from brand_agent.ingestion.deferred import (
    DEFERRED_PAYLOAD_MAX_ENTRIES,
    DEFERRED_PAYLOAD_TTL_SECONDS,
)
from brand_agent.ingestion.sessions import (
    BRAND_SESSION_MAX_ENTRIES,
    BRAND_SESSION_TTL_SECONDS,
    PRODUCT_SESSION_MAX_ENTRIES,
    PRODUCT_SESSION_TTL_SECONDS,
)


@dataclass
class CacheConfig:
    """Lifetime and capacity of one in-process cache."""

    ttl_seconds: float
    max_entries: int

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, default: CacheConfig) -> CacheConfig:
        """Create from dictionary, using ``default`` for missing values."""
        if data is None:
            return cls(default.ttl_seconds, default.max_entries)
        ttl = data.get("ttl_seconds")
        if ttl is None and "ttl_minutes" in data:
            ttl = float(data["ttl_minutes"]) * 60
        return cls(
            ttl_seconds=float(ttl if ttl is not None else default.ttl_seconds),
            max_entries=int(data.get("max_entries", default.max_entries)),
        )


@dataclass
class StoreConfig:
    """Where saved records and the brand index live."""

    backend: str = "sqlite"
    database_path: str | None = None
    databases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StoreConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        backend = str(data.get("backend", "sqlite")).lower()
        if backend not in ("sqlite", "notion"):
            raise ValueError(f"Unknown store backend: {backend}")
        return cls(
            backend=backend,
            database_path=data.get("database_path"),
            databases=dict(data.get("databases") or {}),
        )


@dataclass
class ServicesConfig:
    """External service endpoints and request settings."""

    firecrawl_url: str | None = None
    hunter_url: str | None = None
    catalog_url: str | None = None
    request_timeout: float = 30.0
    fetch_wait_ms: int = 2000
    hunter_limit: int = 50
    create_search_attempts: int = 3
    create_search_delay_seconds: float = 0.4

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ServicesConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            firecrawl_url=data.get("firecrawl_url"),
            hunter_url=data.get("hunter_url"),
            catalog_url=data.get("catalog_url"),
            request_timeout=float(data.get("request_timeout", 30.0)),
            fetch_wait_ms=int(data.get("fetch_wait_ms", 2000)),
            hunter_limit=int(data.get("hunter_limit", 50)),
            create_search_attempts=int(data.get("create_search_attempts", 3)),
            create_search_delay_seconds=float(data.get("create_search_delay_seconds", 0.4)),
        )


@dataclass
class PipelineConfig:
    """Top-level pipeline configuration."""

    brand_sessions: CacheConfig = field(
        default_factory=lambda: CacheConfig(BRAND_SESSION_TTL_SECONDS, BRAND_SESSION_MAX_ENTRIES)
    )
    product_sessions: CacheConfig = field(
        default_factory=lambda: CacheConfig(
            PRODUCT_SESSION_TTL_SECONDS, PRODUCT_SESSION_MAX_ENTRIES
        )
    )
    deferred_payloads: CacheConfig = field(
        default_factory=lambda: CacheConfig(
            DEFERRED_PAYLOAD_TTL_SECONDS, DEFERRED_PAYLOAD_MAX_ENTRIES
        )
    )
    store: StoreConfig = field(default_factory=StoreConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PipelineConfig:
        """Create from dictionary."""
        defaults = cls()
        if not data:
            return defaults
        caches = data.get("caches") or {}
        return cls(
            brand_sessions=CacheConfig.from_dict(
                caches.get("brand_sessions"), defaults.brand_sessions
            ),
            product_sessions=CacheConfig.from_dict(
                caches.get("product_sessions"), defaults.product_sessions
            ),
            deferred_payloads=CacheConfig.from_dict(
                caches.get("deferred_payloads"), defaults.deferred_payloads
            ),
            store=StoreConfig.from_dict(data.get("store")),
            services=ServicesConfig.from_dict(data.get("services")),
        )


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the pipeline.yaml file

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(config_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    config = PipelineConfig.from_dict(data)
    config.config_path = path
    return config


# Global config instance
_default_config: PipelineConfig | None = None


def get_default_config() -> PipelineConfig:
    """
    Get the default pipeline configuration.

    Loads from the path in the PIPELINE_CONFIG_PATH environment variable,
    or falls back to config/pipeline.yaml, or to built-in defaults when
    neither exists.
    """
    global _default_config

    if _default_config is None:
        config_path = os.environ.get("PIPELINE_CONFIG_PATH")
        if config_path:
            _default_config = load_config(config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            path = project_root / "config" / "pipeline.yaml"
            _default_config = load_config(path) if path.exists() else PipelineConfig()

    return _default_config


def reset_default_config() -> None:
    """Reset the default config (useful for testing)."""
    global _default_config
    _default_config = None
