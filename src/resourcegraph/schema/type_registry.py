"""
Type registry: GraphQL type name -> entry.

Types are built in two phases. Entries are registered (and can be referenced
by name) before their fields are filled in, which is what lets cyclic
resource graphs terminate. build_schema() then allocates fresh GraphQL
handles for every object, interface and union entry; their fields are
thunks over the entry's field factories, evaluated once all handles exist.
Input, enum and scalar types are complete on registration and are reused
as-is across builds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator, Literal, Optional

from graphql import (
    GraphQLField,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLUnionType,
)
from graphql.type import GraphQLNamedType

FieldFactory = Callable[["TypeRegistry"], GraphQLField]

EntryKind = Literal["object", "interface", "union", "input", "enum", "scalar"]
SourceKind = Literal[
    "attribute", "extra_attribute", "relationship", "federated", "type", "stats", "nodes", "stat",
]


@dataclass(frozen=True)
class FieldSource:
    """What a GraphQL field reads: an attribute, a relationship, etc."""
    kind: SourceKind
    name: str
    requires: tuple[str, ...] = ()  # record attributes the resolver needs


@dataclass
class TypeRegistryEntry:
    """One synthesized GraphQL type."""
    name: str
    kind: EntryKind
    resource: Optional[str] = None
    wire_type: Optional[str] = None
    is_interface: bool = False
    implementers: list[str] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    members: list[str] = field(default_factory=list)
    fields: dict[str, FieldFactory] = field(default_factory=dict)
    field_sources: dict[str, FieldSource] = field(default_factory=dict)
    static: Optional[GraphQLNamedType] = None
    description: Optional[str] = None
    external: bool = False  # federation stub owned by another service
    key: Optional[str] = None  # federation @key field set

    def add_field(self, name: str, factory: FieldFactory, source: Optional[FieldSource] = None) -> None:
        self.fields[name] = factory
        if source is not None:
            self.field_sources[name] = source

    def add_interface(self, name: str) -> None:
        if name not in self.interfaces:
            self.interfaces.append(name)


def read_value(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return getattr(value, key, None)


class TypeRegistry:
    """
    Registry of synthesized types for one generated schema.

    Registration is idempotent: registering a name twice returns the
    existing entry.
    """

    def __init__(self):
        self._entries: dict[str, TypeRegistryEntry] = {}
        self._handles: dict[str, GraphQLNamedType] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> TypeRegistryEntry:
        return self._entries[name]

    def __iter__(self) -> Iterator[TypeRegistryEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> Optional[TypeRegistryEntry]:
        return self._entries.get(name)

    def register(self, entry: TypeRegistryEntry) -> TypeRegistryEntry:
        existing = self._entries.get(entry.name)
        if existing is not None:
            return existing
        self._entries[entry.name] = entry
        return entry

    def register_static(self, type_: GraphQLNamedType, kind: EntryKind) -> GraphQLNamedType:
        """Register a complete input/enum/scalar type, returning the registered handle."""
        entry = self.register(TypeRegistryEntry(name=type_.name, kind=kind, static=type_))
        return entry.static

    def resource_entries(self) -> list[TypeRegistryEntry]:
        """Local object types backed by a resource."""
        return [e for e in self._entries.values() if e.kind == "object" and e.resource and not e.external]

    def by_wire_type(self, wire_type: Optional[str]) -> Optional[TypeRegistryEntry]:
        for entry in self._entries.values():
            if entry.kind == "object" and entry.wire_type == wire_type and not entry.external:
                return entry
        return None

    def copy(self) -> "TypeRegistry":
        clone = TypeRegistry()
        for name, entry in self._entries.items():
            clone._entries[name] = replace(
                entry,
                implementers=list(entry.implementers),
                interfaces=list(entry.interfaces),
                members=list(entry.members),
                fields=dict(entry.fields),
                field_sources=dict(entry.field_sources),
            )
        return clone

    # --- handles ---

    def ref(self, name: str) -> GraphQLNamedType:
        """Current GraphQL handle for a registered type name."""
        handle = self._handles.get(name)
        if handle is None:
            entry = self._entries[name]
            if entry.static is None:
                raise KeyError(f"Type '{name}' has no handle until build_schema() runs")
            handle = entry.static
        return handle

    def resolve_abstract(self, entry: TypeRegistryEntry, value: Any) -> Optional[str]:
        """Pick the concrete type name for a record returned through an interface or union."""
        candidates = entry.implementers or entry.members
        typename = read_value(value, "__typename")
        if typename in candidates:
            return typename
        wire_type = read_value(value, "_type")
        for name in candidates:
            if self._entries[name].wire_type == wire_type:
                return name
        if len(candidates) == 1:
            return candidates[0]
        return None

    def build_schema(self, query: str = "Query") -> GraphQLSchema:
        self._handles = {}
        for entry in self._entries.values():
            self._handles[entry.name] = self._materialize(entry)
        types = [h for name, h in self._handles.items() if name != query]
        return GraphQLSchema(query=self._handles[query], types=types)

    def _materialize(self, entry: TypeRegistryEntry) -> GraphQLNamedType:
        if entry.static is not None:
            return entry.static
        if entry.kind == "interface":
            return GraphQLInterfaceType(
                entry.name,
                fields=lambda: self._fields_for(entry),
                resolve_type=lambda value, _info, _abstract: self.resolve_abstract(entry, value),
                description=entry.description,
            )
        if entry.kind == "union":
            return GraphQLUnionType(
                entry.name,
                types=lambda: [self.ref(m) for m in entry.members],
                resolve_type=lambda value, _info, _abstract: self.resolve_abstract(entry, value),
                description=entry.description,
            )
        return GraphQLObjectType(
            entry.name,
            fields=lambda: self._fields_for(entry),
            interfaces=lambda: [self.ref(i) for i in entry.interfaces],
            description=entry.description,
        )

    def _fields_for(self, entry: TypeRegistryEntry) -> dict[str, GraphQLField]:
        fields = {name: factory(self) for name, factory in entry.fields.items()}
        # Implementers inherit interface fields they don't declare themselves
        for interface_name in entry.interfaces:
            for name, factory in self._entries[interface_name].fields.items():
                if name not in fields:
                    fields[name] = factory(self)
        return fields
