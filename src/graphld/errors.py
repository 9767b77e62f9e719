"""
Error taxonomy for GraphLD.

Every public operation either returns a result or raises exactly one of
the exceptions below. Validation errors are raised before any call into
the graph engine or the context engine.
"""
from __future__ import annotations

from typing import Any, Optional


class GraphLDError(Exception):
    """Base class for all GraphLD errors."""

    def __init__(self, message: str, *, operation: Optional[str] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.payload = payload

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


# =============================================================================
# Validation
# =============================================================================

class ValidationError(GraphLDError, ValueError):
    """Missing or malformed query, context or document."""
    pass


class MissingQueryError(ValidationError):
    """No query was provided."""
    pass


class MissingContextError(ValidationError):
    """No JSON-LD context was provided."""
    pass


class MissingDocumentError(ValidationError):
    """No document was provided."""
    pass


class EmptyDocumentError(ValidationError):
    """The document produced no triples."""
    pass


# =============================================================================
# Store state
# =============================================================================

class ConflictError(GraphLDError):
    """Insert target already exists."""
    pass


class NotFoundError(GraphLDError):
    """Update or remove target does not exist."""
    pass


class MissingIdentifierError(ValidationError, NotFoundError):
    """The document has no @id, so there is no existing target to act on."""
    pass


# =============================================================================
# Values and traversal
# =============================================================================

class CoercionError(GraphLDError, ValueError):
    """A literal cannot be decoded to its declared datatype."""
    pass


class TraversalError(GraphLDError):
    """Malformed path expression or failed graph walk."""
    pass


class InvalidQueryStepError(TraversalError, ValidationError):
    """Unknown verb or malformed argument in a path step."""
    pass


class InvalidPredicateError(TraversalError):
    """A step predicate could not be expanded through the context."""
    pass


class ExpansionDepthError(TraversalError):
    """Recursive expansion exceeded the configured depth bound."""
    pass


# =============================================================================
# Collaborators
# =============================================================================

class StoreError(GraphLDError):
    """The graph engine reported a select, write or delete failure."""
    pass


class WriteError(StoreError):
    """Writing triples failed."""
    pass


class DeleteError(StoreError):
    """Deleting triples failed."""
    pass


class ContextError(GraphLDError):
    """JSON-LD context expansion or compaction failed."""
    pass


class CompactionError(ContextError):
    """Compacting a document against its context failed."""
    pass


class ConfigValidationError(GraphLDError, ValueError):
    """Configuration validation error."""
    pass
