"""
Bookstore Resource Client.

Thin async HTTP client for a JSON collection server. Provides:
- Endpoint resolution through ApiConfig (API base URL or static files)
- Standardized request/response envelope
- GET (list), POST, PATCH and DELETE helpers
- NetworkFailure on transport errors and non-2xx statuses

No retries and no default timeout: callers decide.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import time

import httpx
from loguru import logger

from core.errors import NetworkFailure
from patterns.domain_config import ApiConfig


# ---------------------------------------------------------------------------
# Request / Response envelope
# ---------------------------------------------------------------------------

@dataclass
class ResourceRequest:
    """Standardized outbound request."""
    method: str  # GET, POST, PATCH, DELETE
    resource: str
    item_id: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass
class ResourceResponse:
    """Standardized inbound response."""
    status_code: int
    url: str
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def as_list(data: Any) -> list[Any]:
    """Normalize a collection payload to a list, even for a single object."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


# ---------------------------------------------------------------------------
# ResourceClient
# ---------------------------------------------------------------------------

class ResourceClient:
    """
    Client for collection endpoints (``stores``, ``books``, ``authors``,
    ``inventory``, ``users``).

    Pass ``transport`` to route requests somewhere other than the network,
    e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.config = config or ApiConfig()
        self._transport = transport
        self._headers = {"Accept": "application/json", **(headers or {})}

    def url_for(self, resource: str, item_id: Any = None) -> str:
        path = resource if item_id is None else f"{resource}/{item_id}"
        return self.config.resolve_url(path)

    # --- Core request ---

    async def request(self, req: ResourceRequest) -> ResourceResponse:
        """Execute one request. Raises NetworkFailure unless the status is 2xx."""
        url = self.url_for(req.resource, req.item_id)
        headers = {**self._headers, **req.headers}

        start = time.time()
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                resp = await client.request(
                    method=req.method,
                    url=url,
                    params=req.params or None,
                    json=req.body,
                    headers=headers,
                    timeout=req.timeout,
                )
            except httpx.HTTPError as exc:
                logger.error("{} {} failed: {}", req.method, url, exc)
                raise NetworkFailure(f"{req.method} {url} failed: {exc}", url=url) from exc

        latency = (time.time() - start) * 1000

        if not 200 <= resp.status_code < 300:
            logger.error("{} {} returned HTTP {}", req.method, url, resp.status_code)
            raise NetworkFailure(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            )

        return ResourceResponse(
            status_code=resp.status_code,
            url=str(resp.request.url),
            data=self._parse_body(resp),
            headers=dict(resp.headers),
            latency_ms=latency,
        )

    @staticmethod
    def _parse_body(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # --- Verb helpers ---

    async def list(
        self, resource: str, params: dict[str, Any] | None = None
    ) -> list[Any]:
        """GET a collection, always returned as a list."""
        resp = await self.request(ResourceRequest("GET", resource, params=params or {}))
        logger.debug("Fetched {} ({:.0f} ms)", resp.url, resp.latency_ms)
        return as_list(resp.data)

    async def create(self, resource: str, body: dict[str, Any]) -> Any:
        resp = await self.request(ResourceRequest("POST", resource, body=body))
        return resp.data

    async def update(self, resource: str, item_id: Any, body: dict[str, Any]) -> Any:
        """Partial update (PATCH) of one item."""
        resp = await self.request(
            ResourceRequest("PATCH", resource, item_id=item_id, body=body)
        )
        return resp.data

    async def delete(self, resource: str, item_id: Any) -> Any:
        resp = await self.request(ResourceRequest("DELETE", resource, item_id=item_id))
        return resp.data
