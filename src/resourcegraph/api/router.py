"""
FastAPI router for the GraphQL endpoint.

Endpoints:
- POST /graphql                  - Executes a GraphQL document
- GET  /graphql/schema.graphql   - Returns the served SDL (federated when enabled)
- POST /graphql/__refresh        - Drops the cached schema; the next request regenerates

Request format:
    {"query": "{ employees { nodes { firstName } } }", "variables": {...}, "operationName": null}

Engine errors are returned with status 400, other resourcegraph errors with 500:
    {"errors": [{"message": "...", "extensions": {"code": "InvalidFilterValue"}}]}
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from ..core.errors import ResourceEngineError, ResourceGraphError
from ..core.query_types import GraphQLRequest
from ..federation.sdl import federated_sdl
from ..runtime.engine import ResourceEngine
from ..runtime.runner import Runner
from ..schema.proxy import SchemaProxy

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()

# Global instances (set by create_graphql_app)
_proxy: SchemaProxy | None = None
_runner: Runner | None = None
_schema_reloading: bool = False


def set_runner(proxy: SchemaProxy, runner: Runner, schema_reloading: bool = False):
    """Set the schema proxy and runner served by the router."""
    global _proxy, _runner, _schema_reloading
    _proxy = proxy
    _runner = runner
    _schema_reloading = schema_reloading


def get_proxy() -> SchemaProxy:
    """Get the schema proxy."""
    if _proxy is None:
        raise RuntimeError("Schema proxy not initialized. Call set_runner() first.")
    return _proxy


def get_runner() -> Runner:
    """Get the runner."""
    if _runner is None:
        raise RuntimeError("Runner not initialized. Call set_runner() first.")
    return _runner


def _error_response(error: ResourceGraphError) -> JSONResponse:
    status_code = 400 if isinstance(error, ResourceEngineError) else 500
    return JSONResponse(
        status_code=status_code,
        content={"errors": [{
            "message": str(error),
            "extensions": {"code": type(error).__name__},
        }]},
    )


@router.post("/graphql")
async def execute_graphql(
    request: GraphQLRequest,
    runner: Runner = Depends(get_runner),
    proxy: SchemaProxy = Depends(get_proxy),
) -> Any:
    """Execute a GraphQL document; the response is {"data": ...} and/or {"errors": [...]}."""
    if _schema_reloading:
        proxy.invalidate()
    try:
        return await runner.execute(request.query, request.variables, request.operationName)
    except ResourceGraphError as e:
        logger.warning(f"GraphQL request failed: {type(e).__name__}: {e}")
        return _error_response(e)


@router.get("/graphql/schema.graphql", response_class=PlainTextResponse)
async def get_schema_sdl(proxy: SchemaProxy = Depends(get_proxy)) -> str:
    """
    Return the served schema as SDL.

    Usage:
        curl http://localhost:8000/graphql/schema.graphql > schema.graphql
    """
    generated = proxy.current()
    if generated.federated:
        return federated_sdl(generated)
    return generated.sdl()


@router.post("/graphql/__refresh")
async def refresh_schema(proxy: SchemaProxy = Depends(get_proxy)) -> dict[str, Any]:
    """Regenerate the schema, e.g. after resource metadata changed."""
    proxy.invalidate()
    try:
        generated = proxy.current()
    except ResourceGraphError as e:
        return _error_response(e)
    return {
        "status": "ok",
        "query_fields": len(generated.query_fields),
        "federated": generated.federated,
    }


def create_graphql_app(
    proxy: SchemaProxy,
    engine: ResourceEngine,
    *,
    title: str = "resourcegraph",
    max_depth: Optional[int] = None,
    fanout_page_size: int = 999,
    define_context: Optional[Callable[[], dict[str, Any]]] = None,
    schema_reloading: bool = False,
) -> FastAPI:
    """
    Create a FastAPI application serving the GraphQL endpoint.

    Args:
        proxy: Schema proxy holding the generated schema
        engine: Resource engine queries are sent to
        max_depth: Optional max query depth
        fanout_page_size: Page size for federated fan-out queries
        define_context: Extra GraphQL context per request
        schema_reloading: Regenerate the schema on every request (development)

    Returns:
        Configured FastAPI app
    """
    runner = Runner(
        proxy,
        engine,
        max_depth=max_depth,
        fanout_page_size=fanout_page_size,
        define_context=define_context,
    )
    set_runner(proxy, runner, schema_reloading)

    app = FastAPI(title=title, description="GraphQL over resources")
    app.include_router(router)

    @app.on_event("shutdown")
    async def close_engine():
        await engine.close()

    return app
