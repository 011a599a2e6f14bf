"""
Schema module - GraphQL schema synthesis from the resource graph.
"""

from __future__ import annotations

from .builder import GeneratedSchema, QueryField, SchemaBuilder
from .proxy import SchemaProxy
from .type_registry import FieldSource, TypeRegistry, TypeRegistryEntry

__all__ = [
    "SchemaBuilder",
    "GeneratedSchema",
    "QueryField",
    "SchemaProxy",
    "TypeRegistry",
    "TypeRegistryEntry",
    "FieldSource",
]
