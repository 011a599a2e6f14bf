"""
Ambient per-request context.

Resource engines read the current context to gate attributes that are only
readable while a GraphQL request is executing (readable: "graphql").
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from typing import Any, Iterator


@dataclass(frozen=True)
class RequestContext:
    """
    Context visible to resource engines during a request.

    Contains:
    - graphql: True while GraphQL translation and execution are in progress
    - values: whatever define_context() supplied for the request
    """
    graphql: bool = False
    values: dict[str, Any] = field(default_factory=dict)


_current: ContextVar[RequestContext] = ContextVar("resourcegraph_request_context", default=RequestContext())


def current_context() -> RequestContext:
    return _current.get()


def in_graphql() -> bool:
    return _current.get().graphql


@contextmanager
def request_context(**values: Any) -> Iterator[RequestContext]:
    """Set request values for the duration of the block."""
    ctx = replace(_current.get(), values={**_current.get().values, **values})
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


@contextmanager
def graphql_context() -> Iterator[RequestContext]:
    """Mark the current request as GraphQL-originated; the prior value is restored on exit."""
    ctx = replace(_current.get(), graphql=True)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)
