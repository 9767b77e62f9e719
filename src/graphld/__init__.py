"""
GraphLD: JSON-LD documents over triple stores.

Maps linked-data documents to subject-predicate-object triples and
rebuilds nested documents from the graph, with a small path query
language for locating start nodes by relationship.
"""

__version__ = "0.3.0"

from graphld.client import connect
from graphld.codec import BlankNodeArena, Triple, group_by_subject, to_document, to_triples
from graphld.config import (
    ConfigValidator,
    ContextConfig,
    EndpointConfig,
    ExpansionConfig,
    GraphLDConfig,
)
from graphld.context import ContextEngine
from graphld.engines import CayleyGraphEngine, GraphEngine, MemoryGraphEngine, TraversalRequest
from graphld.errors import (
    CoercionError,
    CompactionError,
    ConflictError,
    ContextError,
    DeleteError,
    EmptyDocumentError,
    ExpansionDepthError,
    GraphLDError,
    InvalidPredicateError,
    InvalidQueryStepError,
    MissingContextError,
    MissingDocumentError,
    MissingIdentifierError,
    MissingQueryError,
    NotFoundError,
    StoreError,
    TraversalError,
    ValidationError,
    WriteError,
)
from graphld.expander import TripleExpander
from graphld.model import Model
from graphld.query import Has, In, Is, Out, PathQuery, build_path, parse_query
from graphld.terms import Literal, coerce_literal

__all__ = [
    "connect",
    "Model",
    # Codec
    "Triple",
    "BlankNodeArena",
    "to_triples",
    "to_document",
    "group_by_subject",
    "Literal",
    "coerce_literal",
    # Expansion and queries
    "TripleExpander",
    "PathQuery",
    "Out",
    "In",
    "Has",
    "Is",
    "parse_query",
    "build_path",
    # Collaborators
    "ContextEngine",
    "GraphEngine",
    "TraversalRequest",
    "MemoryGraphEngine",
    "CayleyGraphEngine",
    # Configuration
    "GraphLDConfig",
    "ExpansionConfig",
    "EndpointConfig",
    "ContextConfig",
    "ConfigValidator",
    # Errors
    "GraphLDError",
    "ValidationError",
    "MissingQueryError",
    "MissingContextError",
    "MissingDocumentError",
    "MissingIdentifierError",
    "EmptyDocumentError",
    "ConflictError",
    "NotFoundError",
    "CoercionError",
    "TraversalError",
    "InvalidQueryStepError",
    "InvalidPredicateError",
    "ExpansionDepthError",
    "StoreError",
    "WriteError",
    "DeleteError",
    "ContextError",
    "CompactionError",
]
