"""
Query runner: parse, validate, translate, call the engine once per
resource-backed top-level field, then let graphql-core project the result.

Flow:
    query text
      -> parse / validate (+ max depth)          errors -> {"errors": [...]}
      -> collect top-level fields of the operation
      -> SelectionTranslator.translate()          ParameterTree per field
      -> engine.query()                           records
      -> execute() with the records as root value (aliases, __typename,
         fragments and hand-written fields are handled by graphql-core)

Usage:
    runner = Runner(SchemaProxy(graph), MemoryEngine(graph, data))
    result = await runner.execute("{ employees { nodes { firstName } } }")
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from graphql import (
    ExecutionContext,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    OperationDefinitionNode,
    SelectionSetNode,
    ValidationContext,
    ValidationRule,
    execute,
    parse,
    specified_rules,
    validate,
)
from graphql.execution.collect_fields import collect_fields
from graphql.pyutils import is_awaitable

from ..core.errors import ResourceGraphError
from ..core.query_types import EngineResponse
from ..federation.loaders import DEFAULT_FANOUT_PAGE_SIZE, LoaderRegistry
from ..schema.builder import GeneratedSchema
from ..schema.proxy import SchemaProxy
from .context import graphql_context, request_context
from .engine import ResourceEngine
from .translator import SelectionTranslator

logger = logging.getLogger(__name__)

PARSE_FAILED = "GRAPHQL_PARSE_FAILED"
VALIDATION_FAILED = "GRAPHQL_VALIDATION_FAILED"
BAD_USER_INPUT = "BAD_USER_INPUT"


def _error(error: GraphQLError, code: str) -> dict[str, Any]:
    formatted = dict(error.formatted)
    formatted["extensions"] = {**(formatted.get("extensions") or {}), "code": code}
    return formatted


# =============================================================================
# Max depth
# =============================================================================


def _depth(node, fragments: dict[str, Any], visited: frozenset[str] = frozenset()) -> int:
    """Deepest chain of fields below node; introspection fields are not counted."""
    selection_set = getattr(node, "selection_set", None)
    if selection_set is None:
        return 0
    deepest = 0
    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            if selection.name.value.startswith("__"):
                continue
            deepest = max(deepest, 1 + _depth(selection, fragments, visited))
        elif isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            fragment = fragments.get(name)
            if fragment is not None and name not in visited:
                deepest = max(deepest, _depth(fragment, fragments, visited | {name}))
        else:
            deepest = max(deepest, _depth(selection, fragments, visited))
    return deepest


def max_depth_rule(max_depth: int) -> type[ValidationRule]:
    """Validation rule rejecting operations nested deeper than max_depth fields."""

    class MaxDepthRule(ValidationRule):
        def __init__(self, context: ValidationContext):
            super().__init__(context)
            self.fragments = {
                d.name.value: d for d in context.document.definitions
                if isinstance(d, FragmentDefinitionNode)
            }

        def enter_operation_definition(self, node: OperationDefinitionNode, *_args):
            depth = _depth(node, self.fragments)
            if depth > max_depth:
                self.report_error(GraphQLError(
                    f"Query has depth of {depth}, which exceeds max depth of {max_depth}",
                    node,
                ))

    return MaxDepthRule


# =============================================================================
# Runner
# =============================================================================


class Runner:
    """
    Executes GraphQL documents against a generated schema and a resource engine.

    schemas is either a SchemaProxy (the current schema is captured once per
    request) or a fixed GeneratedSchema. define_context() supplies extra
    GraphQL context values and request context values per request.
    """

    def __init__(
        self,
        schemas: Union[SchemaProxy, GeneratedSchema],
        engine: ResourceEngine,
        max_depth: Optional[int] = None,
        fanout_page_size: int = DEFAULT_FANOUT_PAGE_SIZE,
        define_context: Optional[Callable[[], dict[str, Any]]] = None,
    ):
        self.schemas = schemas
        self.engine = engine
        self.max_depth = max_depth
        self.fanout_page_size = fanout_page_size
        self.define_context = define_context

    def generated(self) -> GeneratedSchema:
        if isinstance(self.schemas, SchemaProxy):
            return self.schemas.current()
        return self.schemas

    def rules(self) -> list[type[ValidationRule]]:
        rules = list(specified_rules)
        if self.max_depth is not None:
            rules.append(max_depth_rule(self.max_depth))
        return rules

    async def execute(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> dict[str, Any]:
        generated = self.generated()
        with graphql_context():
            try:
                document = parse(query)
            except GraphQLError as error:
                return {"errors": [_error(error, PARSE_FAILED)]}

            errors = validate(generated.schema, document, self.rules())
            if errors:
                logger.debug(f"Validation failed: {[e.message for e in errors]}")
                return {"errors": [_error(e, VALIDATION_FAILED) for e in errors]}

            extra = self.define_context() if self.define_context else {}
            context_value = {
                **extra,
                "generated": generated,
                "engine": self.engine,
                "loaders": LoaderRegistry(self.engine, self.fanout_page_size),
            }
            built = ExecutionContext.build(
                generated.schema,
                document,
                context_value=context_value,
                raw_variable_values=variables,
                operation_name=operation_name,
            )
            if isinstance(built, list):
                return {"errors": [_error(e, BAD_USER_INPUT) for e in built]}

            with request_context(**extra):
                root_value = await self.prefetch(generated, built)
                result = execute(
                    generated.schema,
                    document,
                    root_value=root_value,
                    context_value=context_value,
                    variable_values=variables,
                    operation_name=operation_name,
                )
                if is_awaitable(result):
                    result = await result

            loaders = context_value["loaders"]
            if len(loaders):
                logger.info(f"Federated resolution used {len(loaders)} loaders")

        for error in result.errors or []:
            if isinstance(error.original_error, ResourceGraphError):
                raise error.original_error
        return result.formatted

    async def prefetch(self, generated: GeneratedSchema, context: ExecutionContext) -> dict[str, Any]:
        """Run one engine query per resource-backed top-level field, keyed by response key."""
        operation = context.operation
        if operation.operation.value != "query":
            return {}
        root_fields = collect_fields(
            generated.schema,
            context.fragments,
            context.variable_values,
            generated.schema.query_type,
            operation.selection_set,
        )
        translator = SelectionTranslator(generated, context.fragments, context.variable_values)
        root_value: dict[str, Any] = {}
        for response_key, field_nodes in root_fields.items():
            query_field = generated.query_field(field_nodes[0].name.value)
            if query_field is None:
                continue
            resource = generated.graph.get_resource(query_field.resource)
            params = translator.translate(query_field, _merge(field_nodes))
            response = await self.engine.query(resource, params)
            root_value[response_key] = self.reshape(query_field.kind, response)
        return root_value

    @staticmethod
    def reshape(kind: str, response: EngineResponse) -> Any:
        if kind == "show":
            return response.items[0] if response.items else None
        return {"nodes": response.items, "stats": response.stats}


def _merge(field_nodes: list[FieldNode]) -> FieldNode:
    """One node carrying the selections of every node sharing a response key."""
    if len(field_nodes) == 1:
        return field_nodes[0]
    first = field_nodes[0]
    selections = []
    for node in field_nodes:
        if node.selection_set:
            selections.extend(node.selection_set.selections)
    return FieldNode(
        alias=first.alias,
        name=first.name,
        arguments=first.arguments,
        directives=first.directives,
        selection_set=SelectionSetNode(selections=tuple(selections)),
        loc=first.loc,
    )
