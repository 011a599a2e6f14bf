"""
Core module - resource definitions, the resource graph, errors and wire types.
"""

from __future__ import annotations

from .errors import (
    FederationConfigError,
    InvalidAttributeAccess,
    InvalidFilterValue,
    ResourceEngineError,
    ResourceGraphError,
    ResourceNotFound,
    ServiceError,
    TranslationError,
    UnknownResourceReference,
    UnreadableAttribute,
    UnsupportedPagination,
    UnsupportedSelection,
    ValidationError,
)
from .query_types import EngineRequest, EngineResponse, GraphQLRequest, ParameterTree
from .graph import RelationshipEdge, ResourceGraph, ResourceNode
from .defs import AttributeDef, FilterDef, RelationshipDef, ResourceDef, ThroughDef
from .registry import ResourceRegistry

__all__ = [
    # Definitions
    "AttributeDef",
    "FilterDef",
    "ThroughDef",
    "RelationshipDef",
    "ResourceDef",
    "ResourceRegistry",
    # Graph
    "ResourceGraph",
    "ResourceNode",
    "RelationshipEdge",
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
