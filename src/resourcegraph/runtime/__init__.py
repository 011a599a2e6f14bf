"""
Runtime module - selection translation, request context and resource engines.

Runner lives in runtime.runner; it depends on the federation loaders and is
exported from the top-level package.
"""

from __future__ import annotations

from .context import RequestContext, current_context, graphql_context, in_graphql, request_context
from .engine import MemoryEngine, ResourceEngine
from .service_client import HttpResourceEngine
from .translator import SelectionTranslator

__all__ = [
    "ResourceEngine",
    "MemoryEngine",
    "HttpResourceEngine",
    "SelectionTranslator",
    "RequestContext",
    "current_context",
    "in_graphql",
    "request_context",
    "graphql_context",
]
