"""
Resource registry - collects ResourceDefs and builds the metadata document.

Usage:
    from resourcegraph.core.registry import ResourceRegistry

    registry = ResourceRegistry()
    registry.register(employees)
    registry.register(positions)

    metadata = registry.build()   # plain dict, JSON/YAML serializable
    graph = registry.graph()      # ResourceGraph, keeps federated params hooks
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from ..federation.dsl import FederatedResource
from .defs import ResourceDef
from .graph import ResourceGraph

INHERITED_KEYS = ("attributes", "extra_attributes", "filters", "sorts", "stats", "relationships")


class ResourceRegistry:
    """
    Collects resource definitions.

    Two-phase build:
    1. Serialize every registered ResourceDef
    2. Link polymorphic hierarchies: parents learn their children and
       children inherit whatever the parent declares that they don't
    """

    METADATA_VERSION = 1

    def __init__(self, resources: Optional[Iterable[ResourceDef]] = None):
        self._resources: dict[str, ResourceDef] = {}
        for resource in resources or []:
            self.register(resource)

    def register(self, resource: ResourceDef) -> ResourceDef:
        self._resources[resource.name] = resource
        return resource

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def get(self, name: str) -> Optional[ResourceDef]:
        return self._resources.get(name)

    def build(self) -> dict[str, Any]:
        """
        Build the metadata document from registered resources.

        Returns:
            {"version": 1, "resources": [...]}
        """
        # Phase 1: serialize
        resources = {name: definition.to_dict() for name, definition in self._resources.items()}

        # Phase 2: polymorphic links
        for name, data in resources.items():
            parent_name = data.get("parent")
            if not parent_name or parent_name not in resources:
                continue
            parent = resources[parent_name]
            if name not in parent["children"]:
                parent["children"].append(name)
            parent["polymorphic"] = True
            self._inherit(parent, data)

        return {
            "version": self.METADATA_VERSION,
            "resources": list(resources.values()),
        }

    def _inherit(self, parent: dict[str, Any], child: dict[str, Any]) -> None:
        for key in INHERITED_KEYS:
            merged = dict(parent.get(key) or {})
            merged.update(child.get(key) or {})
            child[key] = merged

    def federated_resources(self) -> list[FederatedResource]:
        return [
            resource
            for definition in self._resources.values()
            for resource in definition.federated_resources
        ]

    def graph(self) -> ResourceGraph:
        return ResourceGraph(self.build(), federated=self.federated_resources())

    def save(self, path: str | Path) -> None:
        """Write the metadata document as JSON or YAML, by file suffix."""
        path = Path(path)
        metadata = self.build()
        with open(path, "w") as f:
            if path.suffix == ".json":
                json.dump(metadata, f, indent=2, default=str)
            else:
                yaml.safe_dump(metadata, f, default_flow_style=False, sort_keys=False)
