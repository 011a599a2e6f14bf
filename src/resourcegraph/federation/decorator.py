"""
Federation decorator: takes a GeneratedSchema, returns a federated one.

Outbound: every local resource type gets @key(fields: "id") and joins the
_Entity union, resolved through Query._entities with exactly the fields
the caller selected.

Inbound: federated relationships declared on local resources add
- an external stub type per remote type ("extend type X @key(fields: "id")")
- has-many fields on the stub, returning the local connection
- belongs-to fields on the local type, returning {__typename, id}
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLArgument,
    GraphQLField,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLString,
    GraphQLUnionType,
    InlineFragmentNode,
    SelectionNode,
    value_from_ast_untyped,
)

from ..core.errors import FederationConfigError
from ..core.graph import ResourceGraph, ResourceNode
from ..core.utils import graphql_type_name, to_camel_case
from ..runtime.translator import SelectionTranslator
from ..schema.arguments import ArgumentBuilder
from ..schema.builder import QUERY_TYPE, GeneratedSchema, attribute_resolver
from ..schema.type_registry import FieldSource, TypeRegistry, TypeRegistryEntry, read_value
from .dsl import FederatedRelationship, FederatedResource
from .sdl import federated_sdl

logger = logging.getLogger(__name__)

ENTITY_UNION = "_Entity"

GraphQLAny = GraphQLScalarType(
    name="_Any",
    serialize=lambda value: value,
    parse_value=lambda value: value,
    parse_literal=lambda node, variables=None: value_from_ast_untyped(node, variables),
)

GraphQLService = GraphQLObjectType("_Service", {
    "sdl": GraphQLField(GraphQLString, resolve=attribute_resolver("sdl")),
})


async def _connection(future) -> dict[str, Any]:
    return {"nodes": await future}


class FederationDecorator:
    """
    Usage:
        generated = SchemaBuilder(graph).generate()
        federated = FederationDecorator().decorate(generated)
    """

    def decorate(self, generated: GeneratedSchema) -> GeneratedSchema:
        registry = generated.type_registry.copy()
        graph = generated.graph
        federated = graph.federated_resources()

        for entry in registry.resource_entries():
            entry.key = "id"

        # Stubs must exist before any relationship field points at them
        for resource in federated.values():
            for type_name in resource.type_names:
                self._add_stub(registry, type_name)
            if resource.polymorphic:
                self._add_union(registry, resource)

        for resource in federated.values():
            for relationship in resource.relationships.values():
                local = self._local_resource(graph, registry, relationship)
                if relationship.is_has_many:
                    self._add_has_many(registry, resource, relationship, local)
                else:
                    self._add_belongs_to(registry, resource, relationship, local)

        self._add_entities(registry)

        decorated = GeneratedSchema(
            type_registry=registry,
            query_fields=dict(generated.query_fields),
            schema=registry.build_schema(QUERY_TYPE),
            graph=graph,
            federated=True,
        )
        logger.info(
            f"Federated schema: {len(registry.resource_entries())} entity types, "
            f"{len(federated)} external types"
        )
        return decorated

    # =========================================================================
    # Inbound
    # =========================================================================

    def _add_stub(self, registry: TypeRegistry, type_name: str) -> TypeRegistryEntry:
        existing = registry.get(type_name)
        if existing is not None:
            if existing.kind != "object":
                raise FederationConfigError(
                    f"External type '{type_name}' clashes with generated {existing.kind} '{type_name}'"
                )
            return existing
        entry = registry.register(TypeRegistryEntry(type_name, "object", external=True, key="id"))
        entry.add_field("id", lambda _r: GraphQLField(
            GraphQLNonNull(GraphQLString), resolve=attribute_resolver("id"),
        ), FieldSource("attribute", "id"))
        return entry

    def _add_union(self, registry: TypeRegistry, resource: FederatedResource) -> None:
        name = resource.klass_name
        existing = registry.get(name)
        if existing is not None and existing.kind != "union":
            raise FederationConfigError(f"Union '{name}' clashes with generated {existing.kind} '{name}'")
        registry.register(TypeRegistryEntry(name, "union", members=list(resource.type_names)))

    def _local_resource(self, graph: ResourceGraph, registry: TypeRegistry,
                        relationship: FederatedRelationship) -> ResourceNode:
        if relationship.local_resource not in graph:
            raise FederationConfigError(
                f"Federated relationship '{relationship.name}' is declared on unknown resource "
                f"'{relationship.local_resource}'"
            )
        local = graph.get_resource(relationship.local_resource)
        if local.remote:
            raise FederationConfigError(
                f"Federated relationship '{relationship.name}' is declared on remote resource '{local.name}'"
            )
        if graphql_type_name(local.name) not in registry:
            raise FederationConfigError(
                f"Resource '{local.name}' backs federated relationship '{relationship.name}' "
                f"but is not part of the generated schema"
            )
        return local

    def _local_output(self, registry: TypeRegistry, local: ResourceNode) -> str:
        type_name = graphql_type_name(local.name)
        interface = registry.get(f"I{type_name}")
        return interface.name if interface is not None else type_name

    def _connection(self, registry: TypeRegistry, local: ResourceNode) -> str:
        type_name = graphql_type_name(local.name)
        name = f"{type_name}Connection"
        if name not in registry:
            output = self._local_output(registry, local)
            entry = registry.register(TypeRegistryEntry(name, "object"))
            entry.add_field("nodes", lambda r: GraphQLField(
                GraphQLNonNull(GraphQLList(GraphQLNonNull(r.ref(output)))),
                resolve=attribute_resolver("nodes"),
            ), FieldSource("nodes", "nodes"))
        return name

    def _add_has_many(self, registry: TypeRegistry, resource: FederatedResource,
                      relationship: FederatedRelationship, local: ResourceNode) -> None:
        if relationship.foreign_key not in local.filters:
            raise FederationConfigError(
                f"{local.name}.{relationship.foreign_key} must be filterable to back "
                f"federated has_many '{relationship.name}'"
            )
        connection = self._connection(registry, local)
        arguments = ArgumentBuilder(registry).arguments_for(local, graphql_type_name(local.name))
        resolve = self._has_many_resolver(local.name, relationship)
        for type_name in resource.type_names:
            registry[type_name].add_field(to_camel_case(relationship.name), lambda r: GraphQLField(
                GraphQLNonNull(r.ref(connection)), args=arguments, resolve=resolve,
            ), FieldSource("federated", relationship.name))

    def _has_many_resolver(self, resource_name: str, relationship: FederatedRelationship):
        def resolve(obj, info, **_args):
            generated: GeneratedSchema = info.context["generated"]
            resource = generated.graph.get_resource(resource_name)
            translator = SelectionTranslator(generated, info.fragments, info.variable_values)
            field_def = info.parent_type.fields[info.field_name]
            params = translator.translate_connection(resource, field_def, info.field_nodes[0])
            loader = info.context["loaders"].has_many(resource, relationship, params)
            return _connection(loader.load(read_value(obj, "id")))
        return resolve

    def _add_belongs_to(self, registry: TypeRegistry, resource: FederatedResource,
                        relationship: FederatedRelationship, local: ResourceNode) -> None:
        type_name = graphql_type_name(local.name)
        local_types = [type_name]
        interface = registry.get(f"I{type_name}")
        if interface is not None:
            local_types = [interface.name] + list(interface.implementers)

        target = resource.klass_name
        requires = tuple(k for k in (relationship.foreign_key, relationship.foreign_type) if k)
        resolve = self._belongs_to_resolver(resource, relationship)
        for name in local_types:
            registry[name].add_field(to_camel_case(relationship.name), lambda r: GraphQLField(
                r.ref(target), resolve=resolve,
            ), FieldSource("federated", relationship.name, requires=requires))

    def _belongs_to_resolver(self, resource: FederatedResource, relationship: FederatedRelationship):
        def resolve(obj, _info, **_args):
            foreign_key = read_value(obj, relationship.foreign_key)
            discriminant = read_value(obj, relationship.foreign_type) if relationship.foreign_type else None
            typename = resource.typename_for(discriminant)
            if foreign_key is None or not typename:
                return None
            return {"__typename": typename, "id": str(foreign_key)}
        return resolve

    # =========================================================================
    # Outbound
    # =========================================================================

    def _add_entities(self, registry: TypeRegistry) -> None:
        registry.register_static(GraphQLAny, "scalar")
        registry.register_static(GraphQLService, "object")
        query = registry[QUERY_TYPE]
        query.add_field("_service", lambda _r: GraphQLField(
            GraphQLNonNull(GraphQLService), resolve=self._resolve_service,
        ))

        members = [e.name for e in registry.resource_entries()]
        members += [e.name for e in registry if e.external]
        if not members:
            return
        registry.register(TypeRegistryEntry(ENTITY_UNION, "union", members=members))
        representations = {
            "representations": GraphQLArgument(GraphQLNonNull(GraphQLList(GraphQLNonNull(GraphQLAny)))),
        }
        query.add_field("_entities", lambda r: GraphQLField(
            GraphQLNonNull(GraphQLList(r.ref(ENTITY_UNION))),
            args=representations,
            resolve=self._resolve_entities,
        ))

    @staticmethod
    def _resolve_service(_root, info) -> dict[str, str]:
        return {"sdl": federated_sdl(info.context["generated"])}

    def _resolve_entities(self, _root, info, representations: list[dict[str, Any]]) -> list[Any]:
        generated: GeneratedSchema = info.context["generated"]
        loaders = info.context["loaders"]
        translator = SelectionTranslator(generated, info.fragments, info.variable_values)
        params_by_type = {}
        results = []
        for representation in representations:
            typename = representation.get("__typename")
            entry = generated.type_registry.get(typename) if typename else None
            if entry is None or entry.external or not entry.resource:
                results.append(representation)
                continue
            resource = generated.graph.get_resource(entry.resource)
            if typename not in params_by_type:
                selections = self._entity_selections(generated, info, typename)
                params_by_type[typename] = translator.translate_selections(resource, typename, selections)
            loader = loaders.belongs_to(resource, params_by_type[typename])
            results.append(loader.load(representation.get("id")))
        return results

    def _entity_selections(self, generated: GeneratedSchema, info, typename: str) -> list[SelectionNode]:
        """Selections the caller made on one entity type, from fragments under _entities."""
        schema = generated.schema
        target = schema.get_type(typename)
        selections: list[SelectionNode] = []

        def visit(nodes: Sequence[SelectionNode]) -> None:
            for node in nodes:
                if isinstance(node, FieldNode):
                    continue
                if isinstance(node, FragmentSpreadNode):
                    fragment = info.fragments[node.name.value]
                    condition, children = fragment.type_condition, fragment.selection_set.selections
                elif isinstance(node, InlineFragmentNode):
                    condition, children = node.type_condition, node.selection_set.selections
                else:
                    continue
                condition_type = schema.get_type(condition.name.value) if condition else None
                if condition_type is None or condition_type is target:
                    selections.extend(children)
                elif isinstance(condition_type, (GraphQLInterfaceType, GraphQLUnionType)):
                    if condition_type.name == ENTITY_UNION:
                        visit(children)
                    elif schema.is_sub_type(condition_type, target):
                        selections.extend(children)

        for field_node in info.field_nodes:
            if field_node.selection_set:
                visit(field_node.selection_set.selections)
        return selections


def decorate(generated: GeneratedSchema) -> GeneratedSchema:
    return FederationDecorator().decorate(generated)
