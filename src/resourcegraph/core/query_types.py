"""
Pydantic models exchanged with resource engines.

ParameterTree is the translation output: everything an engine needs to run
one query, addressed with flat dotted keys.

Example:
    {
        "fields": {"employees": ["first_name"], "positions": ["title"]},
        "filter": {"first_name": {"eq": "Agatha"}},
        "sort": "-positions.title",
        "page": {"positions.size": 5},
        "include": ["positions"]
    }
"""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, Field


class ParameterTree(BaseModel):
    """Nested query parameters for one resource engine call."""
    fields: dict[str, list[str]] = Field(default_factory=dict)
    extra_fields: dict[str, list[str]] = Field(default_factory=dict)
    filter: dict[str, dict[str, Any]] = Field(default_factory=dict)
    sort: Optional[str] = None
    page: dict[str, int] = Field(default_factory=dict)
    include: list[str] = Field(default_factory=list)
    stats: dict[str, list[str]] = Field(default_factory=dict)

    def add_fields(self, key: str, names: list[str], extra: bool = False) -> None:
        """Merge names into the field set for key, preserving order."""
        bucket = self.extra_fields if extra else self.fields
        current = bucket.setdefault(key, [])
        for name in names:
            if name not in current:
                current.append(name)

    def add_include(self, path: str) -> None:
        if path not in self.include:
            self.include.append(path)

    def add_sort(self, spec: str) -> None:
        terms = self.sort.split(",") if self.sort else []
        terms += [term for term in spec.split(",") if term not in terms]
        self.sort = ",".join(terms)

    def shape(self) -> str:
        """Stable string form, used to key batches with identical parameters."""
        return json.dumps(self.model_dump(), sort_keys=True, default=str)


class EngineResponse(BaseModel):
    """
    Result of one engine query.

    items are plain records; each record carries "id", the "_type"
    discriminant, requested attributes, and included relationships
    nested under their relationship name.
    """
    items: list[dict[str, Any]] = Field(default_factory=list)
    stats: dict[str, dict[str, Any]] = Field(default_factory=dict)
    total: Optional[int] = None


class EngineRequest(BaseModel):
    """Wire request sent to a remote resource service."""
    resource: str
    params: ParameterTree


class GraphQLRequest(BaseModel):
    """Incoming GraphQL request body."""
    query: str
    variables: Optional[dict[str, Any]] = None
    operationName: Optional[str] = None
