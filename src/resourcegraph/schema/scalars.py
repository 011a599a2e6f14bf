"""
Custom scalars and the attribute type -> GraphQL type lookup.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from graphql import (
    GraphQLBoolean,
    GraphQLFloat,
    GraphQLInt,
    GraphQLList,
    GraphQLScalarType,
    GraphQLString,
    ValueNode,
    value_from_ast_untyped,
)
from graphql.type import GraphQLNamedType, GraphQLOutputType


def _serialize_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _parse_literal_json(value_node: ValueNode, variables: Optional[dict[str, Any]] = None) -> Any:
    return value_from_ast_untyped(value_node, variables)


GraphQLDate = GraphQLScalarType(
    name="Date",
    description="ISO 8601 calendar date",
    serialize=_serialize_date,
    parse_value=_parse_date,
    parse_literal=lambda node, _variables=None: _parse_date(value_from_ast_untyped(node)),
)

GraphQLDateTime = GraphQLScalarType(
    name="DateTime",
    description="ISO 8601 timestamp",
    serialize=_serialize_date,
    parse_value=_parse_datetime,
    parse_literal=lambda node, _variables=None: _parse_datetime(value_from_ast_untyped(node)),
)

GraphQLJSON = GraphQLScalarType(
    name="JSON",
    description="Arbitrary JSON value",
    serialize=lambda value: value,
    parse_value=lambda value: value,
    parse_literal=_parse_literal_json,
)

CUSTOM_SCALARS = [GraphQLDate, GraphQLDateTime, GraphQLJSON]

SCALAR_MAP: dict[str, GraphQLNamedType] = {
    "string": GraphQLString,
    "uuid": GraphQLString,
    "integer_id": GraphQLString,
    "integer": GraphQLInt,
    "big_decimal": GraphQLFloat,
    "float": GraphQLFloat,
    "boolean": GraphQLBoolean,
    "date": GraphQLDate,
    "datetime": GraphQLDateTime,
    "hash": GraphQLJSON,
}


def scalar_for(attribute_type: str) -> GraphQLNamedType:
    """Scalar for an attribute type; list types map to their element scalar."""
    if attribute_type.startswith("array_of_"):
        element = attribute_type[len("array_of_"):]
        return SCALAR_MAP.get(element.rstrip("s"), SCALAR_MAP.get(element, GraphQLJSON))
    if attribute_type == "array":
        return GraphQLJSON
    return SCALAR_MAP.get(attribute_type, GraphQLString)


def output_type_for(attribute_type: str) -> GraphQLOutputType:
    """GraphQL output type for an attribute, before nullability is applied."""
    if attribute_type == "array" or attribute_type.startswith("array_of_"):
        return GraphQLList(scalar_for(attribute_type))
    return scalar_for(attribute_type)
