"""
Federated SDL printer.

graphql-core's printer knows nothing about federation directives, so
types are printed one by one and decorated:

    type Employee @key(fields: "id") { ... }
    extend type Team @key(fields: "id") {
      id: String! @external
      employees(...): EmployeeConnection!
    }

Federation machinery (_Any, _Entity, _Service, Query._entities and
Query._service) is left out, as gateways expect.
"""

from __future__ import annotations

import re

from graphql import is_specified_scalar_type, print_type

from ..schema.builder import GeneratedSchema

FEDERATION_TYPES = frozenset({"_Any", "_Entity", "_Service"})
FEDERATION_QUERY_FIELDS = ("_entities", "_service")

_TYPE_HEADER = re.compile(r'^(type \w+(?: implements [^{]+?)?) \{', re.M)
_ID_FIELD = re.compile(r'^(  id: String!)$', re.M)


def federated_sdl(generated: GeneratedSchema) -> str:
    registry = generated.type_registry
    blocks = []
    for name, type_ in generated.schema.type_map.items():
        if name.startswith("__") or name in FEDERATION_TYPES or is_specified_scalar_type(type_):
            continue
        text = print_type(type_)
        if type_ is generated.schema.query_type:
            text = "\n".join(
                line for line in text.split("\n")
                if not line.strip().startswith(FEDERATION_QUERY_FIELDS)
            )
        else:
            entry = registry.get(name)
            if entry is not None and entry.key:
                text = _TYPE_HEADER.sub(rf'\1 @key(fields: "{entry.key}") {{', text, count=1)
                if entry.external:
                    text = "extend " + _ID_FIELD.sub(r"\1 @external", text, count=1)
        blocks.append(text)
    return "\n\n".join(blocks) + "\n"
