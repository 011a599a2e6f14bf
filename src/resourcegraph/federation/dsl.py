"""
Declarations for relationships that point at types owned by another service.

Usage:
    employees = ResourceDef(name="PositionResource", type="positions", ...)
    employees.federated_type("Employee").has_many("positions", foreign_key="employee_id")
    notes.federated_belongs_to(
        "notable",
        type={"employees": "Employee", "teams": "Team"},
        foreign_type="notable_type",
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, Union

from ..core.utils import to_pascal_case

if TYPE_CHECKING:
    from ..core.defs import ResourceDef
    from ..core.query_types import ParameterTree

ParamsHook = Callable[["ParameterTree"], Optional["ParameterTree"]]


@dataclass
class FederatedRelationship:
    """A relationship between a local resource and an external type."""
    kind: Literal["has_many", "belongs_to"]
    name: str
    local_resource: str
    foreign_key: str
    foreign_type: Optional[str] = None
    params_hook: Optional[ParamsHook] = None

    @property
    def is_has_many(self) -> bool:
        return self.kind == "has_many"

    @property
    def is_belongs_to(self) -> bool:
        return self.kind == "belongs_to"

    def params(self, hook: ParamsHook) -> ParamsHook:
        """Register a hook that may rewrite loader parameters once per batch."""
        self.params_hook = hook
        return hook

    def apply_params(self, params: "ParameterTree") -> "ParameterTree":
        if self.params_hook is None:
            return params
        result = self.params_hook(params)
        return params if result is None else result

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "local_resource": self.local_resource,
            "foreign_key": self.foreign_key,
            "foreign_type": self.foreign_type,
        }


@dataclass
class FederatedResource:
    """
    All relationships that reference one external type.

    type_name is a plain GraphQL type name, or a mapping of discriminant
    value to type name for polymorphic belongs-to references.
    """
    type_name: Union[str, dict[str, str]]
    relationships: dict[str, FederatedRelationship] = field(default_factory=dict)

    @property
    def polymorphic(self) -> bool:
        return isinstance(self.type_name, dict)

    @property
    def klass_name(self) -> str:
        """Name of the GraphQL type (or union, when polymorphic) for this resource."""
        if self.polymorphic:
            first = next(iter(self.relationships))
            return f"I{to_pascal_case(first)}"
        return self.type_name

    @property
    def type_names(self) -> list[str]:
        if self.polymorphic:
            return list(dict.fromkeys(self.type_name.values()))
        return [self.type_name]

    def typename_for(self, discriminant: Any) -> Optional[str]:
        if self.polymorphic:
            if discriminant is None:
                return None
            return self.type_name.get(str(discriminant))
        return self.type_name

    def add_relationship(
        self,
        kind: Literal["has_many", "belongs_to"],
        name: str,
        local_resource: str,
        foreign_key: str,
        foreign_type: Optional[str] = None,
        params: Optional[ParamsHook] = None,
    ) -> FederatedRelationship:
        relationship = FederatedRelationship(
            kind=kind,
            name=name,
            local_resource=local_resource,
            foreign_key=foreign_key,
            foreign_type=foreign_type,
            params_hook=params,
        )
        self.relationships[name] = relationship
        return relationship

    def merge(self, other: "FederatedResource") -> None:
        self.relationships.update(other.relationships)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "relationships": {name: rel.to_dict() for name, rel in self.relationships.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FederatedResource":
        resource = cls(type_name=data["type"])
        for name, rel in data.get("relationships", {}).items():
            resource.add_relationship(
                kind=rel["kind"],
                name=name,
                local_resource=rel["local_resource"],
                foreign_key=rel["foreign_key"],
                foreign_type=rel.get("foreign_type"),
            )
        return resource


class TypeProxy:
    """Sugar for declaring several has-many relationships on one external type."""

    def __init__(self, resource: "ResourceDef", type_name: str):
        self._resource = resource
        self._type_name = type_name

    def has_many(
        self,
        name: str,
        foreign_key: Optional[str] = None,
        magic: bool = True,
        params: Optional[ParamsHook] = None,
    ) -> FederatedRelationship:
        return self._resource.federated_has_many(
            name,
            type=self._type_name,
            foreign_key=foreign_key,
            magic=magic,
            params=params,
        )
