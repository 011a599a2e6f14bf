"""
Federation module - cross-service relationships.

Only the declaration DSL is exported here, since resource definitions import
it. The decorator, loaders and SDL printer live in their submodules.
"""

from __future__ import annotations

from .dsl import FederatedRelationship, FederatedResource, TypeProxy

__all__ = [
    "FederatedRelationship",
    "FederatedResource",
    "TypeProxy",
]
