"""
Resource engines.

A resource engine executes a ParameterTree against a data source and
returns records. The GraphQL layer only shapes requests and responses;
filtering, sorting, pagination, includes and attribute gating belong to
the engine.

MemoryEngine is a complete engine over in-process lists of dicts. It is
used by tests and examples and documents the addressing every engine
must understand:

- fields[<wire type>] for the root, fields[<dotted path>] for includes,
  fields[<path>.on__<wire type>] for fragment-scoped field sets
- include paths may contain "on__<wire type>--<relationship>" segments,
  which only apply to records of that wire type
- filter/sort/page keys are dotted paths ending in the attribute (or
  "size"/"number" for page)
"""

from __future__ import annotations

import logging
import statistics
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Iterable, Optional

from ..core.errors import InvalidAttributeAccess, InvalidFilterValue, UnreadableAttribute
from ..core.graph import RelationshipEdge, ResourceGraph, ResourceNode
from ..core.query_types import EngineResponse, ParameterTree
from ..core.utils import fragment_segment, join_path, parse_fragment_segment, parse_sort
from .context import in_graphql

logger = logging.getLogger(__name__)

ALWAYS_RENDERED = ("id", "_type")
KNOWN_OPERATORS = [
    "eq", "not_eq", "eql", "not_eql", "prefix", "not_prefix", "suffix", "not_suffix",
    "match", "not_match", "gt", "gte", "lt", "lte",
]


class ResourceEngine(ABC):
    """Interface consumed by the runner and the federation loaders."""

    @abstractmethod
    async def query(self, resource: ResourceNode, params: ParameterTree) -> EngineResponse:
        """Run one query; nested includes are resolved by the engine."""

    async def schema(self) -> dict[str, Any]:
        """Resource metadata document served by this engine, when it can describe itself."""
        raise NotImplementedError(f"{type(self).__name__} cannot describe its resources")

    async def close(self) -> None:
        pass


def _allowed(gate: Any) -> bool:
    if gate == "graphql":
        return in_graphql()
    return bool(gate)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _coerce(value: Any, like: Any) -> Any:
    """Coerce a filter value to the type of the record value it is compared with."""
    if value is None or like is None or isinstance(value, type(like)):
        return value
    try:
        if isinstance(like, bool):
            return str(value).lower() in ("1", "true")
        if isinstance(like, (int, float)):
            return float(value)
        if isinstance(like, datetime):
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if isinstance(like, date):
            return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        return value
    return value


def _equals(actual: Any, expected: Any, case_sensitive: bool = False) -> bool:
    if actual is None or expected is None:
        return actual is expected
    if isinstance(actual, str) or isinstance(expected, str):
        left, right = str(actual), str(expected)
        if isinstance(actual, bool):
            left = left.lower()
        if not case_sensitive:
            return left.lower() == right.lower()
        return left == right
    return _coerce(expected, actual) == actual


def _string_op(actual: Any, expected: Any, op: str) -> bool:
    if actual is None:
        return False
    left, right = str(actual).lower(), str(expected).lower()
    if op == "prefix":
        return left.startswith(right)
    if op == "suffix":
        return left.endswith(right)
    return right in left


def _compare(actual: Any, expected: Any, op: str) -> bool:
    if actual is None:
        return False
    expected = _coerce(expected, actual)
    try:
        if op == "gt":
            return actual > expected
        if op == "gte":
            return actual >= expected
        if op == "lt":
            return actual < expected
        return actual <= expected
    except TypeError:
        return False


def matches(actual: Any, operator: str, value: Any) -> bool:
    """Evaluate one filter operator; list values match if any element does."""
    negated = operator.startswith("not_")
    op = operator[4:] if negated else operator
    values = _as_list(value)
    if op in ("eq", "eql"):
        hit = any(_equals(actual, v, case_sensitive=(op == "eql")) for v in values)
    elif op in ("prefix", "suffix", "match"):
        hit = any(_string_op(actual, v, op) for v in values)
    elif op in ("gt", "gte", "lt", "lte"):
        hit = any(_compare(actual, v, op) for v in values)
    else:
        raise ValueError(f"Unknown filter operator '{operator}'")
    return not hit if negated else hit


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value))


def calculate(calculation: str, values: list[Any], count: int) -> Optional[float]:
    numbers = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
    if calculation == "count":
        return float(count)
    if not numbers:
        return None
    if calculation == "sum":
        return float(sum(numbers))
    if calculation == "average":
        return float(statistics.fmean(numbers))
    if calculation == "maximum":
        return float(max(numbers))
    if calculation == "minimum":
        return float(min(numbers))
    raise ValueError(f"Unknown calculation '{calculation}'")


class MemoryEngine(ResourceEngine):
    """
    In-memory resource engine.

    Usage:
        engine = MemoryEngine(graph, {
            "EmployeeResource": [{"id": 1, "first_name": "Stephen", "age": 60}],
            "PositionResource": [{"id": 1, "employee_id": 1, "title": "Manager"}],
        })
        response = await engine.query(graph.get_resource("EmployeeResource"), params)

    Join tables for many_to_many relationships are looked up in data by
    their table name.
    """

    def __init__(self, graph: ResourceGraph, data: dict[str, list[dict[str, Any]]], default_page_size: int = 20):
        self.graph = graph
        self.data = data
        self.default_page_size = default_page_size
        self.queries: list[tuple[str, ParameterTree]] = []

    async def schema(self) -> dict[str, Any]:
        return self.graph.metadata

    async def query(self, resource: ResourceNode, params: ParameterTree) -> EngineResponse:
        self.queries.append((resource.name, params.model_copy(deep=True)))
        logger.debug(f"MemoryEngine query {resource.name}: {params.model_dump(exclude_defaults=True)}")

        records = self._filter(resource, self._collect(resource), params, path=None)
        stats = self._stats(resource, records, params.stats)
        total = len(records)
        records = self._sort(resource, records, params.sort, path=None)
        records = self._paginate(records, params.page, path=None)
        items = [self._render(resource, node, record, params, path=None) for node, record in records]
        return EngineResponse(items=items, stats=stats, total=total)

    # =========================================================================
    # Collection
    # =========================================================================

    def _rows(self, resource: ResourceNode) -> list[dict[str, Any]]:
        return self.data.get(resource.name, self.data.get(resource.type, []))

    def _collect(self, resource: ResourceNode) -> list[tuple[ResourceNode, dict[str, Any]]]:
        """Records of a resource; polymorphic parents also collect their children."""
        records = [(resource, row) for row in self._rows(resource)]
        if resource.polymorphic:
            for child in resource.child_resources():
                records.extend((child, row) for row in self._rows(child))
        return records

    # =========================================================================
    # Filter / sort / page
    # =========================================================================

    def _scoped(self, items: dict[str, Any], path: Optional[str]) -> dict[str, Any]:
        """Entries of a dotted-key map addressed to exactly this path."""
        prefix = f"{path}." if path else ""
        scoped = {}
        for key, value in items.items():
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if "." not in rest:
                scoped[rest] = value
        return scoped

    def _filter(self, resource: ResourceNode, records, params: ParameterTree, path: Optional[str]):
        filters = self._scoped(params.filter, path)
        for name, operators in filters.items():
            config = resource.filters.get(name)
            attribute = resource.attribute(name) or {}
            if config is None or not _allowed(attribute.get("filterable", True)):
                raise InvalidAttributeAccess(resource.name, name, "filterable")
            for operator, value in operators.items():
                if operator not in (config.get("operators") or KNOWN_OPERATORS):
                    raise InvalidAttributeAccess(resource.name, f"{name}.{operator}", "a supported operator")
                self._check_value(resource, name, config, value)
                records = [(node, row) for node, row in records if matches(row.get(name), operator, value)]
        return records

    def _check_value(self, resource: ResourceNode, name: str, config: dict[str, Any], value: Any) -> None:
        values = _as_list(value)
        if config.get("single") and len(values) > 1:
            raise InvalidFilterValue(resource.name, name, value)
        for v in values:
            if config.get("allow") and v not in config["allow"]:
                raise InvalidFilterValue(resource.name, name, v)
            if config.get("deny") and v in config["deny"]:
                raise InvalidFilterValue(resource.name, name, v)

    def _sort(self, resource: ResourceNode, records, sort: Optional[str], path: Optional[str]):
        prefix = f"{path}." if path else ""
        specs = []
        for key, direction in parse_sort(sort):
            if not key.startswith(prefix) or "." in key[len(prefix):]:
                continue
            name = key[len(prefix):]
            if name not in resource.sorts:
                raise InvalidAttributeAccess(resource.name, name, "sortable")
            specs.append((name, direction))
        for name, direction in reversed(specs):
            records = sorted(records, key=lambda item: _sort_key(item[1].get(name)), reverse=(direction == "desc"))
        return records

    def _paginate(self, records, page: dict[str, int], path: Optional[str]):
        scoped = self._scoped(page, path)
        size = scoped.get("size", self.default_page_size)
        number = max(scoped.get("number", 1), 1)
        start = (number - 1) * size
        return records[start:start + size]

    # =========================================================================
    # Stats
    # =========================================================================

    def _stats(self, resource: ResourceNode, records, requested: dict[str, list[str]]) -> dict[str, dict[str, Any]]:
        result: dict[str, dict[str, Any]] = {}
        for stat, calculations in requested.items():
            declared = resource.stats.get(stat)
            if declared is None:
                raise InvalidAttributeAccess(resource.name, stat, "a declared stat")
            values = [row.get(stat) for _node, row in records]
            result[stat] = {}
            for calculation in calculations:
                if calculation not in declared:
                    raise InvalidAttributeAccess(resource.name, f"{stat}.{calculation}", "a declared calculation")
                result[stat][calculation] = calculate(calculation, values, len(records))
        return result

    # =========================================================================
    # Rendering and includes
    # =========================================================================

    def _field_set(self, params: ParameterTree, bucket: dict[str, list[str]], root: ResourceNode,
                   node: ResourceNode, path: Optional[str]) -> Optional[list[str]]:
        fragment_key = join_path(path, fragment_segment(node.type))
        if fragment_key in bucket:
            return bucket[fragment_key]
        return bucket.get(path or root.type)

    def _render(self, root: ResourceNode, node: ResourceNode, row: dict[str, Any],
                params: ParameterTree, path: Optional[str]) -> dict[str, Any]:
        record: dict[str, Any] = {"id": row.get("id"), "_type": node.type}

        requested = self._field_set(params, params.fields, root, node, path)
        if requested is None:
            names = [n for n, c in node.attributes.items() if _allowed(c.get("readable", True))]
        else:
            names = list(requested)
        for name in names:
            if name in ALWAYS_RENDERED:
                continue
            config = node.attributes.get(name)
            if config is None:
                continue
            if not _allowed(config.get("readable", True)):
                raise UnreadableAttribute(node.name, name)
            record[name] = row.get(name)

        for name in self._field_set(params, params.extra_fields, root, node, path) or []:
            config = node.extra_attributes.get(name)
            if config is None:
                continue
            if not _allowed(config.get("readable", True)):
                raise UnreadableAttribute(node.name, name)
            record[name] = row.get(name)

        for segment in self._include_segments(params.include, path):
            wire_type, relationship = parse_fragment_segment(segment)
            if wire_type is not None and wire_type != node.type:
                continue
            edge = node.relationship(relationship)
            if edge is None or edge.remote:
                continue
            child_path = join_path(path, segment)
            record[relationship] = self._include(edge, row, params, child_path)
        return record

    def _include_segments(self, include: Iterable[str], path: Optional[str]) -> list[str]:
        prefix = f"{path}." if path else ""
        segments = []
        for item in include:
            if not item.startswith(prefix):
                continue
            rest = item[len(prefix):]
            head = rest.split(".", 1)[0]
            if head and head not in segments:
                segments.append(head)
        return segments

    def _include(self, edge: RelationshipEdge, row: dict[str, Any], params: ParameterTree, path: str):
        related = self._related(edge, row)
        if edge.polymorphic:
            if not related:
                return None
            node, target = related[0]
            return self._render(node, node, target, params, path)

        target = edge.resource
        related = self._filter(target, related, params, path)
        related = self._sort(target, related, params.sort, path)
        if edge.to_many:
            related = self._paginate(related, params.page, path)
            return [self._render(target, node, r, params, path) for node, r in related]
        if not related:
            return None
        node, first = related[0]
        return self._render(target, node, first, params, path)

    def _related(self, edge: RelationshipEdge, row: dict[str, Any]) -> list[tuple[ResourceNode, dict[str, Any]]]:
        if edge.polymorphic:
            resource_name = edge.types.get(str(row.get(edge.foreign_type)))
            if resource_name is None:
                return []
            target = self.graph.reference(resource_name, edge.owner)
            key = row.get(edge.foreign_key)
            return [(n, r) for n, r in self._collect(target) if _equals(r.get("id"), key)]

        candidates = self._collect(edge.resource)
        if edge.kind == "belongs_to":
            key = row.get(edge.foreign_key)
            return [(n, r) for n, r in candidates if key is not None and _equals(r.get(edge.primary_key), key)]
        if edge.kind == "many_to_many" and edge.through:
            through = edge.through
            targets = [
                join.get(through["target_key"])
                for join in self.data.get(through["table"], [])
                if _equals(join.get(through["foreign_key"]), row.get("id"))
            ]
            return [(n, r) for n, r in candidates if any(_equals(r.get("id"), t) for t in targets)]
        key = row.get(edge.primary_key)
        return [(n, r) for n, r in candidates if _equals(r.get(edge.foreign_key), key)]
