"""
HTTP resource engine for resources served by another process.

Makes POST /internal/query calls with the translated ParameterTree and
GET /internal/schema calls for metadata discovery.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ..core.errors import ServiceError
from ..core.graph import ResourceNode
from ..core.query_types import EngineRequest, EngineResponse, ParameterTree
from .engine import ResourceEngine


class HttpResourceEngine(ResourceEngine):
    """
    Resource engine backed by a remote resource service.

    Usage:
        engine = HttpResourceEngine("http://employees:8002")
        response = await engine.query(graph.get_resource("EmployeeResource"), params)
        await engine.close()
    """

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the engine.

        Args:
            base_url: Base URL of the resource service (e.g., "http://employees:8002")
            timeout: HTTP request timeout in seconds
            client: Optional preconfigured client (tests pass one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def query(self, resource: ResourceNode, params: ParameterTree) -> EngineResponse:
        """
        Run one query on the remote service.

        Raises:
            ServiceError: If the service is unreachable or returns an error
        """
        request = EngineRequest(resource=resource.name, params=params)
        data = await self._request("POST", "/internal/query", json=request.model_dump())
        return EngineResponse(
            items=data.get("items", []),
            stats=data.get("stats", {}),
            total=data.get("total"),
        )

    async def schema(self) -> dict[str, Any]:
        """Fetch the service's resource metadata document."""
        return await self._request("GET", "/internal/schema")

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        url = f"{self.base_url}{path}"
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ServiceError(service=self.base_url, status_code=0, message=str(e))

        if response.status_code != 200:
            raise ServiceError(
                service=self.base_url,
                status_code=response.status_code,
                message=response.text,
            )
        return response.json()
