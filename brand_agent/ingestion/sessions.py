"""
Session Store Module
====================

Short-lived, capacity-bounded in-process stores.

``ExpiringStore`` is the generic cache: entries expire after a TTL and the
oldest-created entries are evicted once the store grows past its capacity.
Reads return deep copies so callers can never mutate cached state.

``ScrapeSessionStore`` wraps it to hold one immutable snapshot per scrape,
keyed by a freshly generated session id.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from brand_agent.core.schema import ProductScrapeSession, ScrapeSession

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
S = TypeVar("S", ScrapeSession, ProductScrapeSession)

Clock = Callable[[], float]

BRAND_SESSION_TTL_SECONDS = 60 * 60
BRAND_SESSION_MAX_ENTRIES = 300
PRODUCT_SESSION_TTL_SECONDS = 60 * 60
PRODUCT_SESSION_MAX_ENTRIES = 1000


@dataclass
class _Entry(Generic[T]):
    value: T
    created_at: float


class ExpiringStore(Generic[T]):
    """
    TTL- and capacity-bounded key/value store for pydantic models.

    Args:
        ttl_seconds: Entries older than this are dropped
        max_entries: Upper bound on the number of entries after any insert
        clock: Returns the current time in seconds; defaults to time.time
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Clock | None = None,
        name: str = "store",
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock or time.time
        self._entries: dict[str, _Entry[T]] = {}

    def now(self) -> float:
        """Current time according to the store's clock."""
        return self._clock()

    def _is_expired(self, entry: _Entry[T], now: float) -> bool:
        return now - entry.created_at > self.ttl_seconds

    def prune(self) -> int:
        """
        Drop expired entries, then the oldest entries above capacity.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0
        for key in [k for k, e in self._entries.items() if self._is_expired(e, now)]:
            del self._entries[key]
            removed += 1

        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries.items(), key=lambda item: item[1].created_at)
            for key, _ in oldest[:overflow]:
                del self._entries[key]
            removed += overflow
            logger.debug(f"{self.name}: evicted {overflow} entries over capacity")

        return removed

    def put(self, key: str, value: T, created_at: float | None = None) -> None:
        """Store a deep copy of ``value`` under ``key`` (last write wins)."""
        self.prune()
        if key in self._entries:
            logger.warning(f"{self.name}: overwriting existing entry {key}")
        stamp = self._clock() if created_at is None else created_at
        self._entries[key] = _Entry(value=value.model_copy(deep=True), created_at=stamp)
        self.prune()

    def get(self, key: str) -> T | None:
        """Return a deep copy of the entry, or None if missing or expired."""
        self.prune()
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.value.model_copy(deep=True)

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        """Keys in insertion order."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ScrapeSessionStore(Generic[S]):
    """
    Holds one snapshot per scrape, keyed by a generated session id.

    Snapshots are never updated in place; a new scrape creates a new session.
    """

    def __init__(
        self,
        session_type: type[S],
        ttl_seconds: float,
        max_entries: int,
        clock: Clock | None = None,
    ) -> None:
        self.session_type = session_type
        self._store: ExpiringStore[S] = ExpiringStore(
            ttl_seconds, max_entries, clock, name=session_type.__name__
        )

    @property
    def ttl_seconds(self) -> float:
        return self._store.ttl_seconds

    @property
    def max_entries(self) -> int:
        return self._store.max_entries

    def create(self, **snapshot: Any) -> str:
        """
        Store a new snapshot.

        Args:
            **snapshot: Session fields other than session_id and created_at

        Returns:
            The new session id
        """
        session_id = str(uuid.uuid4())
        now = self._store.now()
        session = self.session_type(
            session_id=session_id,
            created_at=datetime.fromtimestamp(now, UTC),
            **snapshot,
        )
        self._store.put(session_id, session, created_at=now)
        return session_id

    def get(self, session_id: str) -> S | None:
        """Return a copy of the session, or None if it is unknown or expired."""
        return self._store.get(session_id)

    def prune(self) -> int:
        return self._store.prune()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._store

    def __len__(self) -> int:
        return len(self._store)


def create_brand_session_store(
    ttl_seconds: float = BRAND_SESSION_TTL_SECONDS,
    max_entries: int = BRAND_SESSION_MAX_ENTRIES,
    clock: Clock | None = None,
) -> ScrapeSessionStore[ScrapeSession]:
    """Create the store for brand scrape sessions."""
    return ScrapeSessionStore(ScrapeSession, ttl_seconds, max_entries, clock)


def create_product_session_store(
    ttl_seconds: float = PRODUCT_SESSION_TTL_SECONDS,
    max_entries: int = PRODUCT_SESSION_MAX_ENTRIES,
    clock: Clock | None = None,
) -> ScrapeSessionStore[ProductScrapeSession]:
    """Create the store for product scrape sessions."""
    return ScrapeSessionStore(ProductScrapeSession, ttl_seconds, max_entries, clock)
