"""
API module - FastAPI endpoints.
"""

from __future__ import annotations

from .router import create_graphql_app, get_proxy, get_runner, router, set_runner

__all__ = [
    "router",
    "set_runner",
    "get_proxy",
    "get_runner",
    "create_graphql_app",
]
