"""
Schema proxy: holds the last generated schema.

The first current() call generates lazily; invalidate() drops the cached
schema so the next request regenerates (from a fresh graph when a loader
is configured). A regenerated schema replaces the old one in a single
assignment, so requests already holding the old one finish with it.

Usage:
    proxy = SchemaProxy(graph, federation=True)
    generated = proxy.current()
    proxy.invalidate()
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from graphql import GraphQLField
from graphql.type import GraphQLNamedType

from ..core.graph import ResourceGraph
from .builder import GeneratedSchema, SchemaBuilder

logger = logging.getLogger(__name__)

GraphLoader = Callable[[], ResourceGraph]


class SchemaProxy:
    def __init__(
        self,
        graph: Optional[ResourceGraph] = None,
        loader: Optional[GraphLoader] = None,
        entrypoints: Optional[list[str]] = None,
        federation: bool = False,
        extra_query_fields: Optional[dict[str, GraphQLField]] = None,
        extra_types: Optional[list[GraphQLNamedType]] = None,
    ):
        if graph is None and loader is None:
            raise ValueError("SchemaProxy needs a graph or a loader")
        self.graph = graph
        self.loader = loader
        self.entrypoints = entrypoints
        self.federation = federation
        self.extra_query_fields = extra_query_fields
        self.extra_types = extra_types
        self._generated: Optional[GeneratedSchema] = None
        self._lock = threading.Lock()

    def generate(self) -> GeneratedSchema:
        """Build a new schema and make it current."""
        graph = self.loader() if self.loader else self.graph
        builder = SchemaBuilder(graph, self.extra_query_fields, self.extra_types)
        generated = builder.generate(self.entrypoints)
        if self.federation:
            from ..federation.decorator import decorate
            generated = decorate(generated)
        self.graph = graph
        self._generated = generated
        return generated

    def current(self) -> GeneratedSchema:
        generated = self._generated
        if generated is None:
            with self._lock:
                generated = self._generated or self.generate()
        return generated

    def invalidate(self) -> None:
        logger.info("Schema invalidated; regenerating on next request")
        self._generated = None
