"""Shared HTTP plumbing for external service clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ServiceError(Exception):
    """Raised when an external service is unreachable or rejects a request."""

    def __init__(self, service: str, message: str, status_code: int | None = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class ServiceClient:
    """
    Thin async JSON client around httpx.

    Subclasses set ``service_name`` and call ``_request``; transport-level
    failures and non-2xx responses surface as ServiceError.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise ServiceError(self.service_name, f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            detail = response.text[:500]
            raise ServiceError(
                self.service_name,
                f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(
                self.service_name, f"{method} {path} returned invalid JSON"
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
