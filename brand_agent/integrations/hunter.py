"""
Contact Discovery Client
========================

Domain search against the Hunter.io v2 API. Used only to enrich saved
records with people to contact; never as ground truth.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
from pydantic import ValidationError

from brand_agent.core.schema import HunterContact
from brand_agent.integrations.base import DEFAULT_TIMEOUT, ServiceClient, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_HUNTER_URL = "https://api.hunter.io/v2"
DEFAULT_DOMAIN_SEARCH_LIMIT = 50
# Plans that reject large limits still accept this one
FALLBACK_DOMAIN_SEARCH_LIMIT = 10


class HunterClient(ServiceClient):
    """Client for Hunter.io domain search."""

    service_name = "hunter"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("HUNTER_API_KEY")
        self._limit_cap = DEFAULT_DOMAIN_SEARCH_LIMIT
        super().__init__(
            base_url or os.getenv("HUNTER_API_URL", DEFAULT_HUNTER_URL),
            timeout=timeout,
            transport=transport,
        )

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    async def _search(self, domain: str, limit: int) -> Any:
        params = {"domain": domain, "limit": limit, "api_key": self.api_key}
        return await self._request("GET", "/domain-search", params=params)

    async def domain_search(
        self, domain: str, limit: int = DEFAULT_DOMAIN_SEARCH_LIMIT
    ) -> list[HunterContact]:
        """
        Find email addresses published for a domain.

        Args:
            domain: Bare domain, e.g. ``acme.com``
            limit: Maximum contacts to return

        Returns:
            Contacts with an email address, in the order Hunter ranks them
        """
        if not self.is_configured():
            raise ServiceError(self.service_name, "HUNTER_API_KEY is not set")

        normalized = domain.strip().lower()
        requested = min(limit, self._limit_cap)
        try:
            response = await self._search(normalized, requested)
        except ServiceError as e:
            if e.status_code != 400 or requested <= FALLBACK_DOMAIN_SEARCH_LIMIT:
                raise
            logger.warning(
                f"Domain search limit {requested} rejected; retrying with {FALLBACK_DOMAIN_SEARCH_LIMIT}"
            )
            self._limit_cap = FALLBACK_DOMAIN_SEARCH_LIMIT
            response = await self._search(normalized, FALLBACK_DOMAIN_SEARCH_LIMIT)

        emails = ((response or {}).get("data") or {}).get("emails") or []
        contacts: list[HunterContact] = []
        for item in emails:
            value = item.get("value") if isinstance(item, dict) else None
            if not isinstance(value, str) or not value.strip():
                continue
            try:
                contacts.append(
                    HunterContact(
                        email=value,
                        first_name=item.get("first_name"),
                        last_name=item.get("last_name"),
                        position=item.get("position"),
                        confidence=item.get("confidence"),
                    )
                )
            except ValidationError:
                logger.debug(f"Skipping malformed contact for {normalized}: {item}")
        logger.info(f"Domain search for {normalized} returned {len(contacts)} contacts")
        return contacts
