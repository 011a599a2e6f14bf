"""
Selection translator: GraphQL selection tree -> ParameterTree.

Example:
    {
      employees(filter: {firstName: {eq: "Agatha"}}) {
        nodes {
          firstName
          positions(sort: [{att: title, dir: desc}]) { nodes { title } }
        }
      }
    }

compiles to:
    fields:  {"employees": ["first_name"], "positions": ["title"]}
    filter:  {"first_name": {"eq": "Agatha"}}
    sort:    "-positions.title"
    include: ["positions"]

Inline fragments on another resource (polymorphic children, or candidates
of a polymorphic_belongs_to) get their own field set under
"<path>.on__<wire type>", which starts from the shared parent fields.
Relationships selected only inside such a fragment are included under
"<path>.on__<wire type>--<relationship>".

A relationship selected under several aliases shares one include path, so
every selection of it must pass the same arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from graphql import (
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLIncludeDirective,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLSkipDirective,
    GraphQLUnionType,
    InlineFragmentNode,
    SelectionNode,
    SelectionSetNode,
    get_named_type,
)
from graphql.execution.values import get_argument_values, get_directive_values
from graphql.type import GraphQLField

from ..core.errors import TranslationError, UnsupportedSelection
from ..core.graph import RelationshipEdge, ResourceNode
from ..core.query_types import ParameterTree
from ..core.utils import fragment_segment, is_fragment_scoped, join_path, to_snake_case
from ..schema.builder import GeneratedSchema, QueryField

logger = logging.getLogger(__name__)


def _selections(selection_set: Optional[SelectionSetNode]) -> Sequence[SelectionNode]:
    return selection_set.selections if selection_set else ()


@dataclass
class _Partition:
    """Child selections of one node, split by what they read."""
    fields: list[str] = field(default_factory=list)
    extra_fields: list[str] = field(default_factory=list)
    relationships: list[tuple[FieldNode, RelationshipEdge, GraphQLObjectType]] = field(default_factory=list)
    fragments: list[tuple[Any, ResourceNode, Sequence[SelectionNode]]] = field(default_factory=list)
    arguments: dict[str, dict[str, Any]] = field(default_factory=dict)

    def add_field(self, name: str, extra: bool = False) -> None:
        bucket = self.extra_fields if extra else self.fields
        if name not in bucket:
            bucket.append(name)


class SelectionTranslator:
    """
    Compiles selections against one generated schema.

    fragments and variables come from the operation being executed;
    variables must already be coerced.
    """

    def __init__(
        self,
        generated: GeneratedSchema,
        fragments: Optional[dict[str, FragmentDefinitionNode]] = None,
        variables: Optional[dict[str, Any]] = None,
    ):
        self.generated = generated
        self.schema = generated.schema
        self.registry = generated.type_registry
        self.graph = generated.graph
        self.fragments = fragments or {}
        self.variables = variables or {}

    # =========================================================================
    # Entry points
    # =========================================================================

    def translate(self, query_field: QueryField, field_node: FieldNode) -> ParameterTree:
        """Translate one resource-backed top-level field."""
        resource = self.graph.get_resource(query_field.resource)
        field_def = self.schema.query_type.fields[field_node.name.value]
        arguments = self._arguments(field_def, field_node)
        output_type = get_named_type(field_def.type)
        params = ParameterTree()

        if query_field.kind == "show":
            params.filter["id"] = {"eq": arguments["id"]}
            self._process_node(resource, output_type, _selections(field_node.selection_set), params, None)
        else:
            self._apply_arguments(arguments, params, None)
            self._process_connection(resource, output_type, field_node, params, None, top_level=True)

        logger.debug(f"Translated {field_node.name.value}: {params.model_dump(exclude_defaults=True)}")
        return params

    def translate_connection(self, resource: ResourceNode, field_def: GraphQLField, field_node: FieldNode) -> ParameterTree:
        """Translate a connection field resolved outside the root query (federated has-many)."""
        params = ParameterTree()
        self._apply_arguments(self._arguments(field_def, field_node), params, None)
        self._process_connection(resource, get_named_type(field_def.type), field_node, params, None)
        return params

    def translate_selections(self, resource: ResourceNode, type_name: str, selections: Sequence[SelectionNode]) -> ParameterTree:
        """Translate a bare record selection (federation reference resolution)."""
        params = ParameterTree()
        self._process_node(resource, self.schema.get_type(type_name), selections, params, None)
        return params

    # =========================================================================
    # Arguments
    # =========================================================================

    def _arguments(self, field_def: GraphQLField, field_node: FieldNode) -> dict[str, Any]:
        return get_argument_values(field_def, field_node, self.variables)

    def _apply_arguments(self, arguments: dict[str, Any], params: ParameterTree, path: Optional[str]) -> None:
        for attribute, operators in (arguments.get("filter") or {}).items():
            if operators is None:
                continue
            key = join_path(path, attribute)
            params.filter.setdefault(key, {}).update(operators)

        sorts = arguments.get("sort") or []
        if sorts:
            params.add_sort(",".join(
                f"{'-' if sort.get('dir') == 'desc' else ''}{join_path(path, sort['att'])}"
                for sort in sorts
            ))

        page = arguments.get("page") or {}
        for key in ("size", "number"):
            if page.get(key) is not None:
                params.page[join_path(path, key)] = page[key]

    # =========================================================================
    # Connections and stats
    # =========================================================================

    def _process_connection(
        self,
        resource: ResourceNode,
        connection_type: GraphQLObjectType,
        field_node: FieldNode,
        params: ParameterTree,
        path: Optional[str],
        top_level: bool = False,
    ) -> None:
        nodes_selected = False
        stats_selected = False
        for child in self._flatten(connection_type, _selections(field_node.selection_set)):
            name = child.name.value
            if name == "nodes":
                nodes_selected = True
                node_type = get_named_type(connection_type.fields["nodes"].type)
                self._process_node(resource, node_type, _selections(child.selection_set), params, path)
            elif name == "stats":
                stats_selected = True
                self._gather_stats(connection_type, child, params)

        if not nodes_selected:
            params.add_fields(path or resource.type, [])
            if top_level and stats_selected:
                params.page[join_path(path, "size")] = 0

    def _gather_stats(self, connection_type: GraphQLObjectType, field_node: FieldNode, params: ParameterTree) -> None:
        stats_type = get_named_type(connection_type.fields["stats"].type)
        stats_entry = self.registry[stats_type.name]
        for stat_node in self._flatten(stats_type, _selections(field_node.selection_set)):
            source = stats_entry.field_sources.get(stat_node.name.value)
            if source is None:
                continue
            stat_type = get_named_type(stats_type.fields[stat_node.name.value].type)
            stat_entry = self.registry[stat_type.name]
            calculations = params.stats.setdefault(source.name, [])
            for calc_node in self._flatten(stat_type, _selections(stat_node.selection_set)):
                calc = stat_entry.field_sources.get(calc_node.name.value)
                if calc is not None and calc.name not in calculations:
                    calculations.append(calc.name)

    def _flatten(self, parent_type: Any, selections: Sequence[SelectionNode]) -> list[FieldNode]:
        """Field nodes of a non-resource type (connections, stats), fragments inlined."""
        result = []
        for selection in selections:
            if not self._included(selection):
                continue
            if isinstance(selection, FieldNode):
                if selection.name.value != "__typename":
                    result.append(selection)
            else:
                result.extend(self._flatten(parent_type, self._fragment_selections(selection)))
        return result

    # =========================================================================
    # Records
    # =========================================================================

    def _process_node(
        self,
        resource: ResourceNode,
        gql_type: Any,
        selections: Sequence[SelectionNode],
        params: ParameterTree,
        path: Optional[str],
    ) -> None:
        key = path or resource.type
        partition = self._partition(resource, gql_type, selections)
        params.add_fields(key, partition.fields)
        if partition.extra_fields:
            params.add_fields(key, partition.extra_fields, extra=True)

        shared = {}
        for field_node, edge, parent_type in partition.relationships:
            shared[edge.name] = edge
            self._process_relationship(edge, field_node, parent_type, params, path)

        for fragment_type, fragment_resource, fragment_selections in partition.fragments:
            if is_fragment_scoped(path):
                raise UnsupportedSelection(
                    f"Fragment on {fragment_type.name} is nested inside another fragment scope ({path})"
                )
            own = self._partition(fragment_resource, fragment_type, fragment_selections)
            if own.fragments:
                raise UnsupportedSelection(
                    f"Fragment on {own.fragments[0][0].name} inside fragment on {fragment_type.name} is not supported"
                )
            fragment_key = join_path(path, fragment_segment(fragment_resource.type))
            params.add_fields(fragment_key, partition.fields + own.fields)
            if partition.extra_fields or own.extra_fields:
                params.add_fields(fragment_key, partition.extra_fields + own.extra_fields, extra=True)

            for field_node, edge, parent_type in own.relationships:
                if edge.name in shared:
                    if own.arguments[edge.name] != partition.arguments[edge.name]:
                        raise UnsupportedSelection(
                            f"{resource.name}.{edge.name} is selected more than once with different arguments"
                        )
                    self._process_relationship(edge, field_node, parent_type, params, path)
                else:
                    segment = fragment_segment(fragment_resource.type, edge.name)
                    self._process_relationship(edge, field_node, parent_type, params, path, segment)

    def _process_relationship(
        self,
        edge: RelationshipEdge,
        field_node: FieldNode,
        parent_type: GraphQLObjectType,
        params: ParameterTree,
        path: Optional[str],
        segment: Optional[str] = None,
    ) -> None:
        child_path = join_path(path, segment or edge.name)
        params.add_include(child_path)
        field_def = parent_type.fields[field_node.name.value]
        child_type = get_named_type(field_def.type)

        if edge.polymorphic:
            self._process_polymorphic_belongs_to(child_type, _selections(field_node.selection_set), params, child_path)
            return

        target = edge.resource
        if edge.accepts_arguments:
            self._apply_arguments(self._arguments(field_def, field_node), params, child_path)
        if edge.to_many:
            self._process_connection(target, child_type, field_node, params, child_path)
        else:
            self._process_node(target, child_type, _selections(field_node.selection_set), params, child_path)

    def _process_polymorphic_belongs_to(
        self,
        interface: GraphQLInterfaceType,
        selections: Sequence[SelectionNode],
        params: ParameterTree,
        path: str,
    ) -> None:
        """Only id/_type are selectable directly; the rest arrives through fragments."""
        fields: list[str] = []
        fragments = []
        pending = list(selections)
        while pending:
            selection = pending.pop(0)
            if not self._included(selection):
                continue
            if isinstance(selection, FieldNode):
                name = selection.name.value
                if name != "__typename" and to_snake_case(name) not in fields:
                    fields.append(to_snake_case(name))
                continue
            fragment_type = self._fragment_type(selection, interface)
            entry = self.registry.get(fragment_type.name)
            if fragment_type is interface or entry is None or entry.resource is None:
                pending.extend(self._fragment_selections(selection))
            else:
                fragments.append((fragment_type, self.graph.get_resource(entry.resource), self._fragment_selections(selection)))

        params.add_fields(path, fields)
        for fragment_type, fragment_resource, fragment_selections in fragments:
            if is_fragment_scoped(path):
                raise UnsupportedSelection(
                    f"Fragment on {fragment_type.name} is nested inside another fragment scope ({path})"
                )
            own = self._partition(fragment_resource, fragment_type, fragment_selections)
            if own.fragments:
                raise UnsupportedSelection(
                    f"Fragment on {own.fragments[0][0].name} inside fragment on {fragment_type.name} is not supported"
                )
            fragment_key = join_path(path, fragment_segment(fragment_resource.type))
            params.add_fields(fragment_key, fields + own.fields)
            if own.extra_fields:
                params.add_fields(fragment_key, own.extra_fields, extra=True)
            for field_node, edge, parent_type in own.relationships:
                segment = fragment_segment(fragment_resource.type, edge.name)
                self._process_relationship(edge, field_node, parent_type, params, path, segment)

    # =========================================================================
    # Partitioning
    # =========================================================================

    def _partition(self, resource: ResourceNode, gql_type: Any, selections: Sequence[SelectionNode]) -> _Partition:
        partition = _Partition()
        self._partition_into(partition, resource, gql_type, selections)
        return partition

    def _partition_into(self, partition: _Partition, resource: ResourceNode, gql_type: Any,
                        selections: Sequence[SelectionNode]) -> None:
        entry = self.registry.get(gql_type.name)
        for selection in selections:
            if not self._included(selection):
                continue

            if isinstance(selection, FieldNode):
                name = selection.name.value
                if name == "__typename":
                    continue
                source = entry.field_sources.get(name) if entry else None
                if source is None:
                    partition.add_field(to_snake_case(name))
                elif source.kind == "extra_attribute":
                    partition.add_field(source.name, extra=True)
                elif source.kind == "relationship":
                    edge = resource.relationship(source.name)
                    if edge is None:
                        raise TranslationError(f"{resource.name} has no relationship '{source.name}'")
                    self._check_arguments(partition, resource, edge, gql_type, selection)
                    partition.relationships.append((selection, edge, gql_type))
                elif source.kind == "federated":
                    for required in source.requires:
                        partition.add_field(required)
                else:
                    partition.add_field(source.name)
                continue

            fragment_type = self._fragment_type(selection, gql_type)
            fragment_entry = self.registry.get(fragment_type.name)
            fragment_resource = fragment_entry.resource if fragment_entry else None
            if self._flattens(gql_type, fragment_type, resource, fragment_resource):
                self._partition_into(partition, resource, fragment_type, self._fragment_selections(selection))
            else:
                partition.fragments.append((
                    fragment_type,
                    self.graph.get_resource(fragment_resource),
                    self._fragment_selections(selection),
                ))

    def _check_arguments(self, partition: _Partition, resource: ResourceNode, edge: RelationshipEdge,
                         gql_type: Any, selection: FieldNode) -> None:
        """Every selection of one relationship shares a single include path, so arguments must agree."""
        arguments = self._arguments(gql_type.fields[selection.name.value], selection)
        seen = partition.arguments.setdefault(edge.name, arguments)
        if seen != arguments:
            raise UnsupportedSelection(
                f"{resource.name}.{edge.name} is selected more than once with different arguments"
            )

    def _flattens(self, gql_type: Any, fragment_type: Any, resource: ResourceNode, fragment_resource: Optional[str]) -> bool:
        """Fragments on the same type, the same resource, or a supertype merge into the parent."""
        if fragment_type is gql_type or fragment_resource is None or fragment_resource == resource.name:
            return True
        if isinstance(fragment_type, (GraphQLInterfaceType, GraphQLUnionType)) and isinstance(gql_type, GraphQLObjectType):
            return self.schema.is_sub_type(fragment_type, gql_type)
        return False

    # =========================================================================
    # Fragments and directives
    # =========================================================================

    def _fragment_type(self, selection: SelectionNode, default: Any) -> Any:
        if isinstance(selection, FragmentSpreadNode):
            condition = self._fragment_definition(selection).type_condition
        else:
            condition = selection.type_condition
        if condition is None:
            return default
        return self.schema.get_type(condition.name.value)

    def _fragment_selections(self, selection: SelectionNode) -> Sequence[SelectionNode]:
        if isinstance(selection, FragmentSpreadNode):
            return _selections(self._fragment_definition(selection).selection_set)
        if isinstance(selection, InlineFragmentNode):
            return _selections(selection.selection_set)
        return ()

    def _fragment_definition(self, spread: FragmentSpreadNode) -> FragmentDefinitionNode:
        definition = self.fragments.get(spread.name.value)
        if definition is None:
            raise TranslationError(f"Unknown fragment '{spread.name.value}'")
        return definition

    def _included(self, node: SelectionNode) -> bool:
        skip = get_directive_values(GraphQLSkipDirective, node, self.variables)
        if skip and skip.get("if") is True:
            return False
        include = get_directive_values(GraphQLIncludeDirective, node, self.variables)
        if include and include.get("if") is False:
            return False
        return True
