"""
Utility functions for resourcegraph.

Includes:
- Case conversion (camelCase <-> snake_case)
- Pluralization of entry point names
- GraphQL naming helpers
- Dotted path helpers used by the translator and the engines
"""

from __future__ import annotations

import re
from typing import Optional


# =============================================================================
# Case conversion utilities
# =============================================================================

_CAMEL_TO_SNAKE_PATTERN = re.compile(r'([a-z0-9])([A-Z])')
_SNAKE_TO_CAMEL_PATTERN = re.compile(r'_([a-z0-9])')
_LEADING_UNDERSCORES = re.compile(r'^_+')


def to_snake_case(name: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        firstName -> first_name
        HTTPResponse -> http_response
        _type -> _type
    """
    prefix = _LEADING_UNDERSCORES.match(name)
    prefix = prefix.group(0) if prefix else ""
    body = name[len(prefix):]
    # Handle consecutive uppercase (HTTP -> http)
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', body)
    result = _CAMEL_TO_SNAKE_PATTERN.sub(r'\1_\2', result)
    return prefix + result.lower()


def to_camel_case(name: str) -> str:
    """
    Convert snake_case to camelCase, keeping leading underscores.

    Examples:
        first_name -> firstName
        _type -> _type
    """
    prefix = _LEADING_UNDERSCORES.match(name)
    prefix = prefix.group(0) if prefix else ""
    body = name[len(prefix):]

    def replace_underscore(match):
        return match.group(1).upper()

    return prefix + _SNAKE_TO_CAMEL_PATTERN.sub(replace_underscore, body)


def to_pascal_case(name: str) -> str:
    """
    Convert snake_case to PascalCase.

    Examples:
        credit_card -> CreditCard
        first_name -> FirstName
    """
    camel = to_camel_case(name.lstrip("_"))
    return camel[0].upper() + camel[1:] if camel else camel


# =============================================================================
# Inflection
# =============================================================================

_IRREGULAR = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
}
_UNCOUNTABLE = {"equipment", "information", "news", "series", "sheep", "species", "data"}

_PLURALS = [
    (re.compile(r'(quiz)$', re.I), r'\1zes'),
    (re.compile(r'(matr|vert|ind)(?:ix|ex)$', re.I), r'\1ices'),
    (re.compile(r'(octop|vir)(?:us|i)$', re.I), r'\1i'),
    (re.compile(r'(bu|statu|alia)s$', re.I), r'\1ses'),
    (re.compile(r'(x|ch|ss|sh)$', re.I), r'\1es'),
    (re.compile(r'([^aeiouy]|qu)y$', re.I), r'\1ies'),
    (re.compile(r'(?:([^f])fe|([lr])f)$', re.I), r'\1\2ves'),
    (re.compile(r'sis$', re.I), 'ses'),
    (re.compile(r's$', re.I), 's'),
    (re.compile(r'$'), 's'),
]

_SINGULARS = [
    (re.compile(r'(quiz)zes$', re.I), r'\1'),
    (re.compile(r'(matr)ices$', re.I), r'\1ix'),
    (re.compile(r'(vert|ind)ices$', re.I), r'\1ex'),
    (re.compile(r'(octop|vir)(?:us|i)$', re.I), r'\1us'),
    (re.compile(r'(alias|status|bus)(?:es)?$', re.I), r'\1'),
    (re.compile(r'(analy|ba|diagno|parenthe|progno|synop|the)(?:sis|ses)$', re.I), r'\1sis'),
    (re.compile(r'(x|ch|ss|sh)es$', re.I), r'\1'),
    (re.compile(r'([^aeiouy]|qu)ies$', re.I), r'\1y'),
    (re.compile(r'([lr])ves$', re.I), r'\1f'),
    (re.compile(r'([^f])ves$', re.I), r'\1fe'),
    (re.compile(r'ss$', re.I), 'ss'),
    (re.compile(r's$', re.I), ''),
]


def _inflect(word: str, rules, irregular: dict[str, str]) -> str:
    head, sep, last = word.rpartition("_")
    lower = last.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in irregular:
        return f"{head}{sep}{irregular[lower]}"
    for pattern, replacement in rules:
        if pattern.search(last):
            return f"{head}{sep}{pattern.sub(replacement, last, count=1)}"
    return word


def pluralize(word: str) -> str:
    """
    Pluralize the last segment of a snake_case word.

    Already-plural words are returned unchanged:
        employee -> employees
        employees -> employees
        credit_card -> credit_cards
    """
    if word.lower().rpartition("_")[2] in _IRREGULAR.values():
        return word
    return _inflect(word, _PLURALS, _IRREGULAR)


def singularize(word: str) -> str:
    """
    Singularize the last segment of a snake_case word.

        employees -> employee
        addresses -> address
        people -> person
    """
    reverse = {plural: single for single, plural in _IRREGULAR.items()}
    if word.lower().rpartition("_")[2] in _IRREGULAR:
        return word
    return _inflect(word, _SINGULARS, reverse)


# =============================================================================
# GraphQL naming
# =============================================================================

_RESOURCE_SUFFIX = re.compile(r'Resource$')
_INVALID_NAME_CHARS = re.compile(r'[^_0-9A-Za-z]')


def graphql_type_name(resource_name: str) -> str:
    """
    Derive the GraphQL object type name for a resource.

    Examples:
        EmployeeResource -> Employee
        PORO::EmployeeResource -> POROEmployee
        credit_cards -> CreditCards
    """
    name = resource_name.replace("::", "").replace(".", "")
    name = _RESOURCE_SUFFIX.sub("", name) or name
    if "_" in name or name[:1].islower():
        return to_pascal_case(name)
    return name


def enum_value_name(value: object) -> str:
    """Turn an arbitrary allow-list value into a valid GraphQL enum value name."""
    name = _INVALID_NAME_CHARS.sub("_", str(value))
    if not name or name[0].isdigit():
        name = f"_{name}"
    return name


# =============================================================================
# Dotted paths
# =============================================================================

FRAGMENT_PREFIX = "on__"
FRAGMENT_SEPARATOR = "--"


def join_path(*parts: Optional[str]) -> Optional[str]:
    """Join path segments with dots, skipping empty ones. Returns None for an empty path."""
    joined = ".".join(p for p in parts if p)
    return joined or None


def fragment_segment(wire_type: str, relationship: Optional[str] = None) -> str:
    """
    Build a fragment-scoped path segment.

        fragment_segment("workers") -> "on__workers"
        fragment_segment("workers", "tasks") -> "on__workers--tasks"
    """
    segment = f"{FRAGMENT_PREFIX}{wire_type}"
    if relationship:
        segment = f"{segment}{FRAGMENT_SEPARATOR}{relationship}"
    return segment


def parse_fragment_segment(segment: str) -> tuple[Optional[str], str]:
    """
    Split a path segment into (fragment wire type, relationship name).

        "on__workers--tasks" -> ("workers", "tasks")
        "positions" -> (None, "positions")
    """
    if not segment.startswith(FRAGMENT_PREFIX):
        return None, segment
    body = segment[len(FRAGMENT_PREFIX):]
    wire_type, _, relationship = body.partition(FRAGMENT_SEPARATOR)
    return wire_type, relationship


def is_fragment_scoped(path: Optional[str]) -> bool:
    """True when any segment of the dotted path is fragment-scoped."""
    if not path:
        return False
    return any(segment.startswith(FRAGMENT_PREFIX) for segment in path.split("."))


def parse_sort(sort: Optional[str]) -> list[tuple[str, str]]:
    """
    Parse a comma-joined sort string.

        "-positions.title,age" -> [("positions.title", "desc"), ("age", "asc")]
    """
    if not sort:
        return []
    result = []
    for item in sort.split(","):
        item = item.strip()
        if not item:
            continue
        if item.startswith("-"):
            result.append((item[1:], "desc"))
        else:
            result.append((item, "asc"))
    return result
