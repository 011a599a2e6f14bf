"""
Core dataclass definitions for resourcegraph.

These declare resources in Python: attributes, filters, sorts, stats,
relationships and polymorphic hierarchies. ResourceRegistry turns them
into the metadata document that ResourceGraph wraps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from ..federation.dsl import FederatedRelationship, FederatedResource, ParamsHook, TypeProxy
from .utils import to_pascal_case, to_snake_case

# True, False, or "graphql" (only while a GraphQL request is executing)
Gate = Union[bool, Literal["graphql"]]

STRING_OPERATORS = [
    "eq", "not_eq", "eql", "not_eql",
    "prefix", "not_prefix", "suffix", "not_suffix",
    "match", "not_match",
]
COMPARABLE_OPERATORS = ["eq", "not_eq", "gt", "gte", "lt", "lte"]

DEFAULT_OPERATORS: dict[str, list[str]] = {
    "string": STRING_OPERATORS,
    "uuid": ["eq", "not_eq"],
    "integer_id": COMPARABLE_OPERATORS,
    "integer": COMPARABLE_OPERATORS,
    "big_decimal": COMPARABLE_OPERATORS,
    "float": COMPARABLE_OPERATORS,
    "date": COMPARABLE_OPERATORS,
    "datetime": COMPARABLE_OPERATORS,
    "boolean": ["eq"],
}

RelationshipKind = Literal["has_many", "has_one", "belongs_to", "many_to_many", "polymorphic_belongs_to"]


def default_operators(type: str) -> list[str]:
    if type.startswith("array_of_"):
        return ["eq"]
    return list(DEFAULT_OPERATORS.get(type, ["eq", "not_eq"]))


@dataclass
class AttributeDef:
    """Definition of a resource attribute."""
    name: str
    type: str  # string, integer, integer_id, uuid, float, boolean, date, datetime, hash, array, array_of_*
    readable: Gate = True
    writable: Gate = True
    filterable: Gate = True
    sortable: Gate = True
    description: Optional[str] = None
    nullable: bool = True
    schema: bool = True  # False = usable by the engine, hidden from the GraphQL schema

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "readable": self.readable,
            "writable": self.writable,
            "filterable": self.filterable,
            "sortable": self.sortable,
            "description": self.description,
            "nullable": self.nullable,
            "schema": self.schema,
        }


@dataclass
class FilterDef:
    """Definition of a filter on a resource attribute."""
    name: str
    type: str
    operators: list[str] = field(default_factory=list)
    required: bool = False
    allow: Optional[list[Any]] = None
    deny: Optional[list[Any]] = None
    single: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "operators": list(self.operators or default_operators(self.type)),
            "required": self.required,
            "allow": self.allow,
            "deny": self.deny,
            "single": self.single,
        }


@dataclass
class ThroughDef:
    """Join table for many-to-many relationships."""
    table: str
    foreign_key: str
    target_key: str


@dataclass
class RelationshipDef:
    """
    Definition of a relationship to another resource.

    polymorphic_belongs_to relationships carry no single resource; they use
    types (discriminant value -> resource name) plus foreign_type instead.
    """
    name: str
    kind: RelationshipKind
    resource: Optional[str] = None
    foreign_key: Optional[str] = None
    primary_key: str = "id"
    foreign_type: Optional[str] = None
    types: dict[str, str] = field(default_factory=dict)
    through: Optional[ThroughDef] = None
    remote: bool = False
    description: Optional[str] = None

    @property
    def to_many(self) -> bool:
        return self.kind in ("has_many", "many_to_many")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind,
            "foreign_key": self.foreign_key,
            "primary_key": self.primary_key,
            "remote": self.remote,
            "description": self.description,
        }
        if self.kind == "polymorphic_belongs_to":
            data["foreign_type"] = self.foreign_type
            data["types"] = dict(self.types)
            data["resources"] = list(dict.fromkeys(self.types.values()))
        else:
            data["resource"] = self.resource
        if self.through:
            data["through"] = {
                "table": self.through.table,
                "foreign_key": self.through.foreign_key,
                "target_key": self.through.target_key,
            }
        return data


@dataclass
class ResourceDef:
    """
    Complete definition of a resource.

    Example:
        employees = ResourceDef(name="EmployeeResource", type="employees")
        employees.attribute("first_name", "string")
        employees.has_many("positions", resource="PositionResource")
    """
    name: str
    type: str
    attributes: dict[str, AttributeDef] = field(default_factory=dict)
    extra_attributes: dict[str, AttributeDef] = field(default_factory=dict)
    filters: dict[str, FilterDef] = field(default_factory=dict)
    relationships: dict[str, RelationshipDef] = field(default_factory=dict)
    stats: dict[str, list[str]] = field(default_factory=dict)
    polymorphic: bool = False
    children: list[str] = field(default_factory=list)
    parent: Optional[str] = None
    remote: Optional[str] = None  # URL of the owning service, when remote
    graphql_entrypoint: Optional[str] = None
    description: Optional[str] = None
    federated_resources: list[FederatedResource] = field(default_factory=list)

    def __post_init__(self):
        if "id" not in self.attributes:
            self.attributes = {"id": AttributeDef("id", "integer_id", nullable=False), **self.attributes}

    # --- declaration helpers ---

    def attribute(self, name: str, type: str, **options: Any) -> AttributeDef:
        attribute = AttributeDef(name=name, type=type, **options)
        self.attributes[name] = attribute
        return attribute

    def extra_attribute(self, name: str, type: str, **options: Any) -> AttributeDef:
        options.setdefault("writable", False)
        options.setdefault("filterable", False)
        options.setdefault("sortable", False)
        attribute = AttributeDef(name=name, type=type, **options)
        self.extra_attributes[name] = attribute
        return attribute

    def filter(self, name: str, type: Optional[str] = None, **options: Any) -> FilterDef:
        if type is None:
            type = self.attributes[name].type
        definition = FilterDef(name=name, type=type, **options)
        self.filters[name] = definition
        return definition

    def stat(self, name: str, *calculations: str) -> None:
        self.stats[name] = list(calculations)

    def has_many(self, name: str, resource: str, foreign_key: Optional[str] = None, **options: Any) -> RelationshipDef:
        foreign_key = foreign_key or f"{to_snake_case(self._base_name())}_id"
        return self._relate(RelationshipDef(name, "has_many", resource=resource, foreign_key=foreign_key, **options))

    def has_one(self, name: str, resource: str, foreign_key: Optional[str] = None, **options: Any) -> RelationshipDef:
        foreign_key = foreign_key or f"{to_snake_case(self._base_name())}_id"
        return self._relate(RelationshipDef(name, "has_one", resource=resource, foreign_key=foreign_key, **options))

    def belongs_to(self, name: str, resource: str, foreign_key: Optional[str] = None, **options: Any) -> RelationshipDef:
        foreign_key = foreign_key or f"{name}_id"
        return self._relate(RelationshipDef(name, "belongs_to", resource=resource, foreign_key=foreign_key, **options))

    def many_to_many(self, name: str, resource: str, through: ThroughDef, **options: Any) -> RelationshipDef:
        return self._relate(RelationshipDef(
            name, "many_to_many", resource=resource, foreign_key=through.foreign_key, through=through, **options,
        ))

    def polymorphic_belongs_to(
        self,
        name: str,
        types: dict[str, str],
        foreign_key: Optional[str] = None,
        foreign_type: Optional[str] = None,
        **options: Any,
    ) -> RelationshipDef:
        return self._relate(RelationshipDef(
            name,
            "polymorphic_belongs_to",
            foreign_key=foreign_key or f"{name}_id",
            foreign_type=foreign_type or f"{name}_type",
            types=dict(types),
            **options,
        ))

    def _relate(self, relationship: RelationshipDef) -> RelationshipDef:
        self.relationships[relationship.name] = relationship
        return relationship

    def _base_name(self) -> str:
        name = self.name.split("::")[-1].split(".")[-1]
        return name[: -len("Resource")] if name.endswith("Resource") and name != "Resource" else name

    # --- federation ---

    def federated_type(self, type_name: str) -> TypeProxy:
        return TypeProxy(self, type_name)

    def federated_has_many(
        self,
        name: str,
        type: str,
        foreign_key: Optional[str] = None,
        magic: bool = True,
        params: Optional[ParamsHook] = None,
    ) -> FederatedRelationship:
        """
        Declare that an external type has many of this resource.

        With magic enabled, make sure the foreign key is readable and
        filterable (readable only during GraphQL execution) without
        clobbering an existing readable, filterable attribute or filter.
        """
        foreign_key = foreign_key or f"{to_snake_case(type)}_id"
        resource = FederatedResource(type)
        self.federated_resources.append(resource)
        relationship = resource.add_relationship("has_many", name, self.name, foreign_key, params=params)

        if not magic:
            return relationship

        existing = self.attributes.get(foreign_key)
        attribute = existing if existing and existing.readable and existing.filterable else None
        has_filter = foreign_key in self.filters
        if not attribute and not has_filter:
            self.attributes[foreign_key] = AttributeDef(
                foreign_key, "integer",
                readable="graphql", filterable="graphql",
                writable=False, sortable=False, schema=False,
            )
        elif has_filter and not attribute:
            prior = self.filters[foreign_key]
            self.attributes[foreign_key] = AttributeDef(
                foreign_key, prior.type,
                readable="graphql", filterable=True,
                writable=False, sortable=False, schema=False,
            )
        elif attribute and not has_filter:
            self.filter(foreign_key, attribute.type)
        return relationship

    def federated_belongs_to(
        self,
        name: str,
        type: Optional[Union[str, dict[str, str]]] = None,
        foreign_key: Optional[str] = None,
        foreign_type: Optional[str] = None,
    ) -> FederatedRelationship:
        """
        Declare that this resource belongs to an external type.

        type may be a mapping of discriminant value to GraphQL type name,
        in which case foreign_type names the discriminant attribute.
        """
        type = type or to_pascal_case(name)
        foreign_key = foreign_key or f"{to_snake_case(name)}_id"
        resource = FederatedResource(type)
        if resource.polymorphic:
            foreign_type = foreign_type or f"{to_snake_case(name)}_type"
        self.federated_resources.append(resource)

        for key in filter(None, [foreign_key, foreign_type]):
            if key not in self.attributes:
                self.attributes[key] = AttributeDef(
                    key, "string",
                    readable="graphql", filterable=False,
                    writable=False, sortable=False, schema=False,
                )
        return resource.add_relationship("belongs_to", name, self.name, foreign_key, foreign_type=foreign_type)

    # --- serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Metadata document for this resource, as consumed by ResourceGraph."""
        filters = {
            name: FilterDef(name, attribute.type).to_dict()
            for name, attribute in self.attributes.items()
            if attribute.filterable
        }
        filters.update({name: definition.to_dict() for name, definition in self.filters.items()})
        sorts = {
            name: {"description": attribute.description}
            for name, attribute in self.attributes.items()
            if attribute.sortable
        }
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "graphql_entrypoint": self.graphql_entrypoint or self.type,
            "polymorphic": self.polymorphic,
            "children": list(self.children),
            "parent": self.parent,
            "remote": self.remote,
            "attributes": {name: attribute.to_dict() for name, attribute in self.attributes.items()},
            "extra_attributes": {name: attribute.to_dict() for name, attribute in self.extra_attributes.items()},
            "filters": filters,
            "sorts": sorts,
            "stats": {name: list(calcs) for name, calcs in self.stats.items()},
            "relationships": {name: rel.to_dict() for name, rel in self.relationships.items()},
            "federated_resources": [resource.to_dict() for resource in self.federated_resources],
        }
