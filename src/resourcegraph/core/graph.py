"""
Read-only view over resource metadata.

The metadata document looks like:
    {
        "resources": [
            {
                "name": "EmployeeResource",
                "type": "employees",
                "attributes": {"first_name": {"type": "string", "readable": true, ...}},
                "relationships": {"positions": {"type": "has_many", "resource": "PositionResource"}},
                ...
            }
        ]
    }

It is produced by ResourceRegistry.build() or loaded from a JSON/YAML file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from ..federation.dsl import FederatedResource
from .errors import ResourceNotFound, UnknownResourceReference

logger = logging.getLogger(__name__)

TO_MANY_KINDS = ("has_many", "many_to_many")


class RelationshipEdge:
    """One relationship of a resource, resolved lazily against the graph."""

    def __init__(self, graph: "ResourceGraph", owner: str, name: str, data: dict[str, Any]):
        self._graph = graph
        self.owner = owner
        self.name = name
        self.kind: str = data.get("type", "belongs_to")
        self.foreign_key: Optional[str] = data.get("foreign_key")
        self.primary_key: str = data.get("primary_key") or "id"
        self.foreign_type: Optional[str] = data.get("foreign_type")
        self.types: dict[str, str] = dict(data.get("types") or {})
        self.through: Optional[dict[str, str]] = data.get("through")
        self.description: Optional[str] = data.get("description")
        self._remote = bool(data.get("remote"))
        self._resource_name: Optional[str] = data.get("resource")
        self._resource_names: list[str] = list(data.get("resources") or self.types.values())

    def __repr__(self) -> str:
        return f"RelationshipEdge({self.owner}.{self.name}, {self.kind})"

    @property
    def polymorphic(self) -> bool:
        return self.kind == "polymorphic_belongs_to"

    @property
    def to_many(self) -> bool:
        return self.kind in TO_MANY_KINDS

    @property
    def accepts_arguments(self) -> bool:
        """belongs_to style relationships never take filter/sort/page."""
        return self.kind in ("has_many", "many_to_many", "has_one")

    @property
    def remote(self) -> bool:
        if self._remote:
            return True
        if self.polymorphic:
            return False
        return self.resource.remote

    @property
    def resource_name(self) -> Optional[str]:
        return self._resource_name

    @property
    def resource(self) -> "ResourceNode":
        if self.polymorphic:
            raise UnknownResourceReference(
                f"{self.owner}.{self.name}",
                referenced_by="polymorphic_belongs_to has no single target",
            )
        return self._graph.reference(self._resource_name, self.owner)

    @property
    def candidates(self) -> list["ResourceNode"]:
        """Possible target resources of a polymorphic_belongs_to edge."""
        if not self.polymorphic:
            return [self.resource]
        return [self._graph.reference(name, self.owner) for name in self._resource_names]


class ResourceNode:
    """Typed accessors over one resource's metadata."""

    def __init__(self, graph: "ResourceGraph", data: dict[str, Any]):
        self._graph = graph
        self._data = data
        self.name: str = data["name"]
        self.type: str = data.get("type") or data["name"]
        self.description: Optional[str] = data.get("description")
        self.polymorphic: bool = bool(data.get("polymorphic"))
        self.children: list[str] = list(data.get("children") or [])
        self.parent: Optional[str] = data.get("parent")
        self.remote: Optional[str] = data.get("remote") or None
        self.graphql_entrypoint: str = data.get("graphql_entrypoint") or self.type
        self.attributes: dict[str, dict[str, Any]] = dict(data.get("attributes") or {})
        self.extra_attributes: dict[str, dict[str, Any]] = dict(data.get("extra_attributes") or {})
        self.filters: dict[str, dict[str, Any]] = dict(data.get("filters") or {})
        self.sorts: dict[str, dict[str, Any]] = dict(data.get("sorts") or {})
        self.stats: dict[str, list[str]] = {k: list(v) for k, v in (data.get("stats") or {}).items()}
        self._relationships: Optional[dict[str, RelationshipEdge]] = None

    def __repr__(self) -> str:
        return f"ResourceNode({self.name})"

    @property
    def relationships(self) -> dict[str, RelationshipEdge]:
        if self._relationships is None:
            self._relationships = {
                name: RelationshipEdge(self._graph, self.name, name, data)
                for name, data in (self._data.get("relationships") or {}).items()
            }
        return self._relationships

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def attribute(self, name: str) -> Optional[dict[str, Any]]:
        return self.attributes.get(name) or self.extra_attributes.get(name)

    def is_extra_attribute(self, name: str) -> bool:
        return name in self.extra_attributes and name not in self.attributes

    def schema_attributes(self, extra: bool = False) -> dict[str, dict[str, Any]]:
        """Readable attributes exposed in the GraphQL schema."""
        source = self.extra_attributes if extra else self.attributes
        return {
            name: config for name, config in source.items()
            if config.get("readable", True) and config.get("schema", True)
        }

    def relationship(self, name: str) -> Optional[RelationshipEdge]:
        return self.relationships.get(name)

    def is_polymorphic_belongs_to(self, name: str) -> bool:
        edge = self.relationships.get(name)
        return bool(edge and edge.polymorphic)

    def related_resource(self, name: str) -> "ResourceNode":
        edge = self.relationships.get(name)
        if edge is None:
            raise UnknownResourceReference(name, referenced_by=self.name)
        return edge.resource

    def child_resources(self) -> list["ResourceNode"]:
        return [self._graph.reference(name, self.name) for name in self.children]

    def parent_resource(self) -> Optional["ResourceNode"]:
        if not self.parent:
            return None
        return self._graph.reference(self.parent, self.name)


class ResourceGraph:
    """
    Wrapper over resource metadata.

    Usage:
        graph = ResourceGraph.load("resources.yaml")
        employees = graph.get_resource("EmployeeResource")
        employees.relationships["positions"].resource
    """

    def __init__(
        self,
        metadata: dict[str, Any],
        federated: Optional[Iterable[FederatedResource]] = None,
    ):
        self.metadata = metadata
        self._raw = {r["name"]: r for r in metadata.get("resources", [])}
        self._nodes: dict[str, ResourceNode] = {}
        self._federated = list(federated or [])
        self._federated_index: Optional[dict[str, FederatedResource]] = None

    @classmethod
    def from_dict(cls, metadata: dict[str, Any]) -> "ResourceGraph":
        return cls(metadata)

    @classmethod
    def load(cls, path: str | Path) -> "ResourceGraph":
        """Load metadata from a .json, .yaml or .yml file."""
        path = Path(path)
        with open(path) as f:
            if path.suffix == ".json":
                metadata = json.load(f)
            else:
                metadata = yaml.safe_load(f) or {}
        logger.info(f"Loaded {len(metadata.get('resources', []))} resources from {path}")
        return cls(metadata)

    def __contains__(self, name: str) -> bool:
        return name in self._raw

    def get_resource(self, name: str) -> ResourceNode:
        node = self._nodes.get(name)
        if node is None:
            data = self._raw.get(name)
            if data is None:
                raise ResourceNotFound(name)
            node = ResourceNode(self, data)
            self._nodes[name] = node
        return node

    def reference(self, name: Optional[str], referenced_by: str) -> ResourceNode:
        """Resolve a resource named by another resource's metadata."""
        if not name or name not in self._raw:
            raise UnknownResourceReference(str(name), referenced_by=referenced_by)
        return self.get_resource(name)

    def resources(self) -> list[ResourceNode]:
        return [self.get_resource(name) for name in self._raw]

    def find_by_type(self, wire_type: str) -> Optional[ResourceNode]:
        for node in self.resources():
            if node.type == wire_type:
                return node
        return None

    def federated_resources(self) -> dict[str, FederatedResource]:
        """Federated resources keyed by GraphQL type (or union) name."""
        if self._federated_index is None:
            index: dict[str, FederatedResource] = {}
            declared = [
                FederatedResource.from_dict(data)
                for raw in self._raw.values()
                for data in raw.get("federated_resources") or []
            ]
            # Python-side declarations last, so their params hooks win
            for resource in declared + self._federated:
                existing = index.get(resource.klass_name)
                if existing is None:
                    index[resource.klass_name] = FederatedResource(resource.type_name, dict(resource.relationships))
                else:
                    existing.merge(resource)
            self._federated_index = index
        return self._federated_index
