"""
resourcegraph - GraphQL over a declarative resource graph.

Generates a GraphQL schema from resource metadata, translates each query's
selection tree into one parameter tree per top-level field, and runs it on
a resource engine. Optional federation adds entity resolution and
cross-service relationships with batched loading.

Usage:
    from resourcegraph import ResourceGraph, SchemaProxy, Runner, MemoryEngine

    graph = ResourceGraph.load("resources.yaml")
    runner = Runner(SchemaProxy(graph), MemoryEngine(graph, data))
    result = await runner.execute("{ employees { nodes { firstName } } }")
"""

from __future__ import annotations

from .core import (
    AttributeDef,
    EngineRequest,
    EngineResponse,
    FederationConfigError,
    FilterDef,
    GraphQLRequest,
    InvalidAttributeAccess,
    InvalidFilterValue,
    ParameterTree,
    RelationshipDef,
    RelationshipEdge,
    ResourceDef,
    ResourceEngineError,
    ResourceGraph,
    ResourceGraphError,
    ResourceNode,
    ResourceNotFound,
    ResourceRegistry,
    ServiceError,
    ThroughDef,
    TranslationError,
    UnknownResourceReference,
    UnreadableAttribute,
    UnsupportedPagination,
    UnsupportedSelection,
    ValidationError,
)
from .schema import GeneratedSchema, QueryField, SchemaBuilder, SchemaProxy
from .runtime import (
    HttpResourceEngine,
    MemoryEngine,
    ResourceEngine,
    SelectionTranslator,
    graphql_context,
    request_context,
)
from .federation import FederatedRelationship, FederatedResource
from .federation.decorator import FederationDecorator
from .federation.loaders import LoaderRegistry
from .federation.sdl import federated_sdl
from .runtime.runner import Runner
from .api import create_graphql_app

__version__ = "0.1.0"

__all__ = [
    # Definitions
    "ResourceDef",
    "AttributeDef",
    "FilterDef",
    "ThroughDef",
    "RelationshipDef",
    "ResourceRegistry",
    # Graph
    "ResourceGraph",
    "ResourceNode",
    "RelationshipEdge",
    # Schema
    "SchemaBuilder",
    "SchemaProxy",
    "GeneratedSchema",
    "QueryField",
    # Runtime
    "Runner",
    "SelectionTranslator",
    "ResourceEngine",
    "MemoryEngine",
    "HttpResourceEngine",
    "request_context",
    "graphql_context",
    # Federation
    "FederationDecorator",
    "FederatedResource",
    "FederatedRelationship",
    "LoaderRegistry",
    "federated_sdl",
    # API
    "create_graphql_app",
    # Query types
    "ParameterTree",
    "EngineResponse",
    "EngineRequest",
    "GraphQLRequest",
    # Errors
    "ResourceGraphError",
    "ValidationError",
    "ResourceNotFound",
    "UnknownResourceReference",
    "TranslationError",
    "UnsupportedSelection",
    "FederationConfigError",
    "ResourceEngineError",
    "UnreadableAttribute",
    "InvalidAttributeAccess",
    "InvalidFilterValue",
    "UnsupportedPagination",
    "ServiceError",
]
