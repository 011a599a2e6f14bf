"""
Schema synthesis: walks the resource graph and builds a GraphQL schema.

For every entry point resource this produces:
- an object type per resource (plus an "I<Type>" interface and one object
  type per child for polymorphic resources)
- connection types for to-many relationships
- filter/sort/page input types (see arguments.py)
- a list field and a show field on Query

Usage:
    builder = SchemaBuilder(graph)
    generated = builder.generate()            # every non-remote resource
    generated = builder.generate(["EmployeeResource"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLField,
    GraphQLFloat,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLString,
    GraphQLUnionType,
    print_schema,
)
from graphql.type import GraphQLNamedType

from ..core.errors import UnknownResourceReference
from ..core.graph import RelationshipEdge, ResourceGraph, ResourceNode
from ..core.utils import graphql_type_name, pluralize, singularize, to_camel_case, to_pascal_case
from .arguments import ArgumentBuilder
from .scalars import CUSTOM_SCALARS, output_type_for
from .type_registry import FieldSource, TypeRegistry, TypeRegistryEntry, read_value

logger = logging.getLogger(__name__)

QUERY_TYPE = "Query"


@dataclass(frozen=True)
class QueryField:
    """A resource-backed top-level field."""
    resource: str
    kind: Literal["list", "show"]


@dataclass
class GeneratedSchema:
    """Everything one generation pass produces."""
    type_registry: TypeRegistry
    query_fields: dict[str, QueryField]
    schema: GraphQLSchema
    graph: ResourceGraph
    federated: bool = False

    def query_field(self, name: str) -> Optional[QueryField]:
        return self.query_fields.get(name)

    def resource_for_query_field(self, name: str) -> ResourceNode:
        return self.graph.get_resource(self.query_fields[name].resource)

    def sdl(self) -> str:
        return print_schema(self.schema)


# =============================================================================
# Resolvers
# =============================================================================


def attribute_resolver(name: str) -> Callable[..., Any]:
    def resolve(obj, _info, **_args):
        return read_value(obj, name)
    return resolve


def connection_resolver(name: str) -> Callable[..., Any]:
    def resolve(obj, _info, **_args):
        return {"nodes": read_value(obj, name) or []}
    return resolve


def root_resolver(root, info, **_args):
    """Resource-backed top-level fields read what the runner prefetched."""
    if isinstance(root, dict):
        return root.get(info.path.key)
    return None


def _static_kind(type_: GraphQLNamedType) -> str:
    if isinstance(type_, GraphQLInputObjectType):
        return "input"
    if isinstance(type_, GraphQLEnumType):
        return "enum"
    if isinstance(type_, GraphQLScalarType):
        return "scalar"
    if isinstance(type_, GraphQLInterfaceType):
        return "interface"
    if isinstance(type_, GraphQLUnionType):
        return "union"
    return "object"


class SchemaBuilder:
    """
    Builds a GeneratedSchema from a ResourceGraph.

    extra_query_fields are hand-written Query fields merged into the
    generated Query type; their resolvers run unchanged.
    """

    def __init__(
        self,
        graph: ResourceGraph,
        extra_query_fields: Optional[dict[str, GraphQLField]] = None,
        extra_types: Optional[list[GraphQLNamedType]] = None,
    ):
        self.graph = graph
        self.extra_query_fields = dict(extra_query_fields or {})
        self.extra_types = list(extra_types or [])
        self.registry = TypeRegistry()
        self.arguments = ArgumentBuilder(self.registry)

    def generate(self, entrypoints: Optional[list[str]] = None) -> GeneratedSchema:
        self.registry = TypeRegistry()
        self.arguments = ArgumentBuilder(self.registry)
        for scalar in CUSTOM_SCALARS:
            self.registry.register_static(scalar, "scalar")
        for type_ in self.extra_types:
            self.registry.register_static(type_, _static_kind(type_))

        query = self.registry.register(TypeRegistryEntry(QUERY_TYPE, "object"))
        for name, field in self.extra_query_fields.items():
            query.add_field(name, self._constant(field))

        query_fields: dict[str, QueryField] = {}
        for resource in self._entrypoint_resources(entrypoints):
            self._add_entrypoint(query, query_fields, resource)

        schema = self.registry.build_schema(QUERY_TYPE)
        logger.info(
            f"Generated schema: {len(self.registry)} types, "
            f"{len(query_fields)} resource query fields"
        )
        return GeneratedSchema(
            type_registry=self.registry,
            query_fields=query_fields,
            schema=schema,
            graph=self.graph,
        )

    def _entrypoint_resources(self, entrypoints: Optional[list[str]]) -> list[ResourceNode]:
        if entrypoints is None:
            return [r for r in self.graph.resources() if not r.remote]
        resources = []
        for name in entrypoints:
            if name not in self.graph:
                raise UnknownResourceReference(name, referenced_by="entrypoints")
            resources.append(self.graph.get_resource(name))
        return [r for r in resources if not r.remote]

    # =========================================================================
    # Entry points
    # =========================================================================

    def _add_entrypoint(
        self,
        query: TypeRegistryEntry,
        query_fields: dict[str, QueryField],
        resource: ResourceNode,
    ) -> None:
        type_name = graphql_type_name(resource.name)
        output = self._generate_type(resource)
        connection = self._connection(resource, output, top_level=True)
        arguments = self.arguments.arguments_for(resource, type_name)

        list_name = to_camel_case(pluralize(resource.graphql_entrypoint))
        show_name = to_camel_case(singularize(resource.graphql_entrypoint))

        query.add_field(list_name, lambda r: GraphQLField(
            GraphQLNonNull(r.ref(connection)),
            args=arguments,
            resolve=root_resolver,
            description=resource.description,
        ))
        query_fields[list_name] = QueryField(resource.name, "list")

        if show_name == list_name:
            logger.warning(
                f"Entry point '{resource.graphql_entrypoint}' of {resource.name} has the same "
                f"singular and plural form; only the list field is generated"
            )
            return

        id_arguments = {"id": GraphQLArgument(GraphQLNonNull(GraphQLString))}
        query.add_field(show_name, lambda r: GraphQLField(
            r.ref(output),
            args=id_arguments,
            resolve=root_resolver,
            description=resource.description,
        ))
        query_fields[show_name] = QueryField(resource.name, "show")

    # =========================================================================
    # Object and interface types
    # =========================================================================

    def _generate_type(self, resource: ResourceNode) -> str:
        """Generate types for a resource; returns the name fields should point at."""
        if resource.remote:
            raise UnknownResourceReference(resource.name, referenced_by="remote resources have no local type")
        if not resource.polymorphic:
            return self._generate_object(resource)

        interface_name = f"I{graphql_type_name(resource.name)}"
        if interface_name in self.registry:
            return interface_name

        interface = self.registry.register(TypeRegistryEntry(
            interface_name,
            "interface",
            resource=resource.name,
            wire_type=resource.type,
            is_interface=True,
            description=resource.description,
        ))
        self._fill_fields(interface, resource)

        for concrete in [resource] + resource.child_resources():
            name = self._generate_object(concrete)
            self.registry[name].add_interface(interface_name)
            if name not in interface.implementers:
                interface.implementers.append(name)
        return interface_name

    def _generate_object(self, resource: ResourceNode) -> str:
        name = graphql_type_name(resource.name)
        if name in self.registry:
            return name
        entry = self.registry.register(TypeRegistryEntry(
            name,
            "object",
            resource=resource.name,
            wire_type=resource.type,
            description=resource.description,
        ))
        self._fill_fields(entry, resource)
        return name

    def _concrete_types(self, output: str) -> list[str]:
        entry = self.registry[output]
        if entry.is_interface:
            return list(entry.implementers)
        return [output]

    def _fill_fields(self, entry: TypeRegistryEntry, resource: ResourceNode) -> None:
        entry.add_field("id", self._constant(GraphQLField(
            GraphQLNonNull(GraphQLString), resolve=attribute_resolver("id"),
        )), FieldSource("attribute", "id"))
        entry.add_field("_type", self._constant(GraphQLField(
            GraphQLNonNull(GraphQLString), resolve=attribute_resolver("_type"),
        )), FieldSource("type", "_type"))

        for extra, kind in ((False, "attribute"), (True, "extra_attribute")):
            for name, config in resource.schema_attributes(extra=extra).items():
                if name == "id":
                    continue
                output_type = output_type_for(config.get("type") or "string")
                if config.get("nullable") is False:
                    output_type = GraphQLNonNull(output_type)
                entry.add_field(to_camel_case(name), self._constant(GraphQLField(
                    output_type,
                    resolve=attribute_resolver(name),
                    description=config.get("description"),
                )), FieldSource(kind, name))

        for edge in resource.relationships.values():
            if edge.remote:
                continue
            self._add_relationship_field(entry, edge)

    # =========================================================================
    # Relationships
    # =========================================================================

    def _add_relationship_field(self, entry: TypeRegistryEntry, edge: RelationshipEdge) -> None:
        field_name = to_camel_case(edge.name)
        source = FieldSource("relationship", edge.name)
        description = edge.description

        if edge.polymorphic:
            interface_name = self._polymorphic_belongs_to_interface(edge)
            entry.add_field(field_name, lambda r: GraphQLField(
                r.ref(interface_name), resolve=attribute_resolver(edge.name), description=description,
            ), source)
            return

        target = edge.resource
        output = self._generate_type(target)
        target_type_name = graphql_type_name(target.name)

        if edge.to_many:
            connection = self._connection(target, output)
            arguments = self.arguments.arguments_for(target, target_type_name)
            entry.add_field(field_name, lambda r: GraphQLField(
                GraphQLNonNull(r.ref(connection)),
                args=arguments,
                resolve=connection_resolver(edge.name),
                description=description,
            ), source)
        else:
            arguments = self.arguments.arguments_for(target, target_type_name) if edge.accepts_arguments else {}
            entry.add_field(field_name, lambda r: GraphQLField(
                r.ref(output),
                args=arguments,
                resolve=attribute_resolver(edge.name),
                description=description,
            ), source)

    def _polymorphic_belongs_to_interface(self, edge: RelationshipEdge) -> str:
        owner = self.graph.get_resource(edge.owner)
        name = f"{graphql_type_name(owner.name)}__{edge.name}"
        if name in self.registry:
            return name
        interface = self.registry.register(TypeRegistryEntry(name, "interface", is_interface=True))
        interface.add_field("id", self._constant(GraphQLField(
            GraphQLNonNull(GraphQLString), resolve=attribute_resolver("id"),
        )), FieldSource("attribute", "id"))
        interface.add_field("_type", self._constant(GraphQLField(
            GraphQLNonNull(GraphQLString), resolve=attribute_resolver("_type"),
        )), FieldSource("type", "_type"))

        for candidate in edge.candidates:
            if candidate.remote:
                continue
            for concrete in self._concrete_types(self._generate_type(candidate)):
                self.registry[concrete].add_interface(name)
                if concrete not in interface.implementers:
                    interface.implementers.append(concrete)
        return name

    # =========================================================================
    # Connections and stats
    # =========================================================================

    def _connection(self, resource: ResourceNode, output: str, top_level: bool = False) -> str:
        type_name = graphql_type_name(resource.name)
        name = f"{type_name}TopLevelConnection" if top_level else f"{type_name}Connection"
        if name in self.registry:
            return name
        entry = self.registry.register(TypeRegistryEntry(name, "object"))
        entry.add_field("nodes", lambda r: GraphQLField(
            GraphQLNonNull(GraphQLList(GraphQLNonNull(r.ref(output)))),
            resolve=attribute_resolver("nodes"),
        ), FieldSource("nodes", "nodes"))
        if top_level and resource.stats:
            stats = self._stats(resource, type_name)
            entry.add_field("stats", lambda r: GraphQLField(
                r.ref(stats), resolve=attribute_resolver("stats"),
            ), FieldSource("stats", "stats"))
        return name

    def _stats(self, resource: ResourceNode, type_name: str) -> str:
        name = f"{type_name}Stats"
        if name in self.registry:
            return name
        entry = self.registry.register(TypeRegistryEntry(name, "object"))
        for stat, calculations in resource.stats.items():
            stat_type = f"{type_name}{to_pascal_case(stat)}Stat"
            stat_entry = self.registry.register(TypeRegistryEntry(stat_type, "object"))
            for calculation in calculations:
                stat_entry.add_field(to_camel_case(calculation), self._constant(GraphQLField(
                    GraphQLFloat, resolve=attribute_resolver(calculation),
                )), FieldSource("stat", calculation))
            entry.add_field(to_camel_case(stat), self._ref_field(stat_type, stat), FieldSource("stat", stat))
        return name

    # =========================================================================
    # Field factories
    # =========================================================================

    @staticmethod
    def _constant(field: GraphQLField) -> Callable[[TypeRegistry], GraphQLField]:
        return lambda _registry: field

    @staticmethod
    def _ref_field(type_name: str, attribute: str) -> Callable[[TypeRegistry], GraphQLField]:
        return lambda r: GraphQLField(r.ref(type_name), resolve=attribute_resolver(attribute))
