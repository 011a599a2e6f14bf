"""
Custom exceptions for the resourcegraph system.
"""

from __future__ import annotations

from typing import Optional


class ResourceGraphError(Exception):
    """Base exception for all resourcegraph errors."""
    pass


class ValidationError(ResourceGraphError):
    """Raised when a GraphQL document fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {errors}")


class ResourceNotFound(ResourceGraphError):
    """Raised when the resource graph has no resource with the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Resource '{name}' not found")


class UnknownResourceReference(ResourceGraphError):
    """Raised when a relationship or entry point names an unregistered resource."""

    def __init__(self, name: str, referenced_by: Optional[str] = None):
        self.name = name
        self.referenced_by = referenced_by
        where = f" (referenced by '{referenced_by}')" if referenced_by else ""
        super().__init__(f"Unknown resource '{name}'{where}")


class TranslationError(ResourceGraphError):
    """Raised when a selection cannot be translated into engine parameters."""
    pass


class UnsupportedSelection(TranslationError):
    """Raised for selection shapes the translator refuses to scope."""
    pass


class FederationConfigError(ResourceGraphError):
    """Raised at schema generation when federated relationships are misconfigured."""
    pass


# =============================================================================
# Resource engine errors (propagate unmodified through the runner)
# =============================================================================


class ResourceEngineError(ResourceGraphError):
    """Base class for errors raised by a resource engine."""
    pass


class UnreadableAttribute(ResourceEngineError):
    """Raised when a requested field is not readable in the current context."""

    def __init__(self, resource: str, attribute: str):
        self.resource = resource
        self.attribute = attribute
        super().__init__(f"{resource}: requested field '{attribute}' is not readable")


class InvalidAttributeAccess(ResourceEngineError):
    """Raised when an attribute is used in a way it does not allow (filter, sort)."""

    def __init__(self, resource: str, attribute: str, action: str):
        self.resource = resource
        self.attribute = attribute
        self.action = action
        super().__init__(f"{resource}: attribute '{attribute}' is not {action}")


class InvalidFilterValue(ResourceEngineError):
    """Raised when a filter value is outside the allow list or inside the deny list."""

    def __init__(self, resource: str, filter_name: str, value: object):
        self.resource = resource
        self.filter_name = filter_name
        self.value = value
        super().__init__(f"{resource}: invalid value {value!r} for filter '{filter_name}'")


class UnsupportedPagination(ResourceEngineError):
    """Raised when pagination is requested across more than one parent."""

    def __init__(self, message: str = "Pagination is not supported when loading more than one parent"):
        super().__init__(message)


class ServiceError(ResourceEngineError):
    """Raised when a remote resource service call fails."""

    def __init__(self, service: str, status_code: int, message: str):
        self.service = service
        self.status_code = status_code
        super().__init__(f"Service '{service}' returned {status_code}: {message}")
