"""
Filter, sort and page argument types.

For a resource whose GraphQL type is Employee:

    input EmployeeFilter {
      firstName: EmployeeFilterFilterFirstName
    }
    input EmployeeFilterFilterFirstName { eq: String, notEq: String, prefix: String, ... }
    enum EmployeeSortAtt { firstName age }
    input EmployeeSort { att: EmployeeSortAtt!, dir: SortDir! = asc }
    input Page { size: Int, number: Int }

Input fields carry the snake_case attribute/operator name as out_name, so
coerced argument values come back in engine addressing.
"""

from __future__ import annotations

from typing import Any, Optional

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
)

from ..core.graph import ResourceNode
from ..core.utils import enum_value_name, to_camel_case, to_pascal_case
from .scalars import scalar_for
from .type_registry import TypeRegistry

PAGE_TYPE = "Page"
SORT_DIR_TYPE = "SortDir"


class ArgumentBuilder:
    """Creates (and memoizes in the registry) argument input types."""

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def arguments_for(self, resource: ResourceNode, type_name: str) -> dict[str, GraphQLArgument]:
        """filter/sort/page arguments for a to-many field or list entry point."""
        arguments: dict[str, GraphQLArgument] = {}
        filter_type = self.filter_type(resource, type_name)
        if filter_type is not None:
            input_type, required = filter_type
            arguments["filter"] = GraphQLArgument(GraphQLNonNull(input_type) if required else input_type)
        sort_type = self.sort_type(resource, type_name)
        if sort_type is not None:
            arguments["sort"] = GraphQLArgument(GraphQLList(GraphQLNonNull(sort_type)))
        arguments["page"] = GraphQLArgument(self.page_type())
        return arguments

    # --- page ---

    def page_type(self) -> GraphQLInputObjectType:
        if PAGE_TYPE in self.registry:
            return self.registry.ref(PAGE_TYPE)
        return self.registry.register_static(
            GraphQLInputObjectType(PAGE_TYPE, {
                "size": GraphQLInputField(GraphQLInt),
                "number": GraphQLInputField(GraphQLInt),
            }),
            "input",
        )

    # --- sort ---

    def sort_dir_type(self) -> GraphQLEnumType:
        if SORT_DIR_TYPE in self.registry:
            return self.registry.ref(SORT_DIR_TYPE)
        return self.registry.register_static(
            GraphQLEnumType(SORT_DIR_TYPE, {
                "asc": GraphQLEnumValue("asc"),
                "desc": GraphQLEnumValue("desc"),
            }),
            "enum",
        )

    def sort_type(self, resource: ResourceNode, type_name: str) -> Optional[GraphQLInputObjectType]:
        sorts = {
            name: config for name, config in resource.sorts.items()
            if self._visible(resource, name)
        }
        if not sorts:
            return None
        name = f"{type_name}Sort"
        if name in self.registry:
            return self.registry.ref(name)
        att_enum = self.registry.register_static(
            GraphQLEnumType(f"{type_name}SortAtt", {
                to_camel_case(att): GraphQLEnumValue(att, description=(config or {}).get("description"))
                for att, config in sorts.items()
            }),
            "enum",
        )
        return self.registry.register_static(
            GraphQLInputObjectType(name, {
                "att": GraphQLInputField(GraphQLNonNull(att_enum)),
                "dir": GraphQLInputField(GraphQLNonNull(self.sort_dir_type()), default_value="asc"),
            }),
            "input",
        )

    # --- filter ---

    def filter_type(self, resource: ResourceNode, type_name: str) -> Optional[tuple[GraphQLInputObjectType, bool]]:
        """Returns (input type, whether the filter argument is required), or None."""
        filters = {
            name: config for name, config in resource.filters.items()
            if self._visible(resource, name)
        }
        if not filters:
            return None
        required = any(config.get("required") for config in filters.values())
        name = f"{type_name}Filter"
        if name in self.registry:
            return self.registry.ref(name), required

        fields = {}
        for attribute, config in filters.items():
            attribute_type = self._attribute_filter_type(type_name, attribute, config)
            if config.get("required"):
                attribute_type = GraphQLNonNull(attribute_type)
            fields[to_camel_case(attribute)] = GraphQLInputField(attribute_type, out_name=attribute)
        input_type = self.registry.register_static(GraphQLInputObjectType(name, fields), "input")
        return input_type, required

    def _attribute_filter_type(self, type_name: str, attribute: str, config: dict[str, Any]) -> GraphQLInputObjectType:
        name = f"{type_name}FilterFilter{to_pascal_case(attribute)}"
        if name in self.registry:
            return self.registry.ref(name)

        value_type = scalar_for(config.get("type") or "string")
        if config.get("allow"):
            value_type = self.registry.register_static(
                GraphQLEnumType(f"{type_name}Filter{to_pascal_case(attribute)}Allow", _allow_values(config["allow"])),
                "enum",
            )

        fields = {}
        for operator in config.get("operators") or ["eq"]:
            operator_type = value_type
            if operator == "eq" and config.get("required"):
                operator_type = GraphQLNonNull(value_type)
            fields[to_camel_case(operator)] = GraphQLInputField(operator_type, out_name=operator)
        return self.registry.register_static(GraphQLInputObjectType(name, fields), "input")

    def _visible(self, resource: ResourceNode, name: str) -> bool:
        attribute = resource.attribute(name)
        return attribute is None or attribute.get("schema", True)


def _allow_values(allow: list[Any]) -> dict[str, GraphQLEnumValue]:
    """Enum values for an allow-list; names that collide after sanitizing get a numeric suffix."""
    values: dict[str, GraphQLEnumValue] = {}
    for value in dict.fromkeys(allow):
        base = name = enum_value_name(value)
        suffix = 2
        while name in values:
            name = f"{base}_{suffix}"
            suffix += 1
        values[name] = GraphQLEnumValue(value)
    return values
