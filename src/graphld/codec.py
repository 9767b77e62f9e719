"""
Triple codec.

Converts JSON-LD documents into flat triples ready to be written to the
graph engine, and groups triples back into flat (one object per subject)
expanded JSON-LD.

Blank nodes produced by JSON-LD flattening are renamed through a
per-conversion arena so that every minted label is unique and repeated
references inside one document resolve to the same label.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from graphld.context import Context, ContextEngine
from graphld.errors import (
    EmptyDocumentError,
    MissingContextError,
    MissingDocumentError,
    ValidationError,
)
from graphld.terms import BLANK_PREFIX, RDF_TYPE, decode_object, encode_rdf_object, is_blank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Triple:
    """A subject-predicate-object statement in wire encoding."""
    subject: str
    predicate: str
    object: str

    def __post_init__(self):
        if not self.subject:
            raise ValidationError("Triple subject must not be empty")
        if not self.predicate:
            raise ValidationError("Triple predicate must not be empty")
        if not self.object:
            raise ValidationError("Triple object must not be empty")

    def to_dict(self) -> Dict[str, str]:
        return {"subject": self.subject, "predicate": self.predicate, "object": self.object}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Triple":
        return cls(subject=data["subject"], predicate=data["predicate"], object=data["object"])


# =============================================================================
# Blank node arena
# =============================================================================

@dataclass(frozen=True)
class LocalNode:
    """An anonymous node local to one conversion."""
    index: int


class BlankNodeArena:
    """
    Conversion-scoped table of anonymous nodes.

    Maps the labels emitted by JSON-LD flattening (``_:b0``, ``_:b1``...)
    to local nodes, and each local node to a freshly minted label. Local
    indices never leave the conversion; only minted labels do.
    """

    def __init__(self):
        self._locals: Dict[str, LocalNode] = {}
        self._labels: List[str] = []

    def __len__(self) -> int:
        return len(self._labels)

    def local(self, key: str) -> LocalNode:
        """Return the local node for a source label, creating it once."""
        node = self._locals.get(key)
        if node is None:
            node = LocalNode(len(self._labels))
            self._locals[key] = node
            self._labels.append(f"{BLANK_PREFIX}{uuid.uuid4().hex}")
        return node

    def label(self, node: LocalNode) -> str:
        return self._labels[node.index]

    def resolve(self, rdf_node: dict) -> str:
        """Return the wire term for a subject/object node from ``toRdf``."""
        if rdf_node.get("type") == "blank node":
            return self.label(self.local(rdf_node["value"]))
        return rdf_node["value"]


def _build_triple(rdf_triple: dict, arena: BlankNodeArena) -> Triple:
    obj = rdf_triple["object"]
    if obj.get("type") == "literal":
        object_term = encode_rdf_object(obj)
    else:
        object_term = arena.resolve(obj)
    return Triple(
        subject=arena.resolve(rdf_triple["subject"]),
        predicate=rdf_triple["predicate"]["value"],
        object=object_term,
    )


# =============================================================================
# Document -> triples
# =============================================================================

async def to_triples(document: Optional[dict], context_engine: ContextEngine) -> List[Triple]:
    """
    Convert a JSON-LD document into triples.

    Raises:
        MissingDocumentError: if no document is given
        MissingContextError: if the document has no ``@context``
        EmptyDocumentError: if flattening yields no triples
        ContextError: if the context engine rejects the document
    """
    if not document:
        raise MissingDocumentError("JSON-LD document missing.")
    if not isinstance(document, dict) or not document.get("@context"):
        raise MissingContextError("A valid JSON-LD context must be provided.")

    rdf_triples = await context_engine.to_rdf(document)

    arena = BlankNodeArena()
    triples = [_build_triple(t, arena) for t in rdf_triples]

    if not triples:
        raise EmptyDocumentError("Document empty after conversion to triples")

    logger.debug(f"Converted document into {len(triples)} triples ({len(arena)} blank nodes)")
    return triples


# =============================================================================
# Triples -> document
# =============================================================================

def distinct_subjects(triples: Iterable[Triple]) -> List[str]:
    """Subjects in first-occurrence order."""
    seen: Dict[str, None] = {}
    for triple in triples:
        seen.setdefault(triple.subject, None)
    return list(seen)


def predicates_by_subject(triples: Iterable[Triple]) -> Dict[str, List[str]]:
    """Map each subject to its distinct predicates, in first-occurrence order."""
    grouped: Dict[str, Dict[str, None]] = {}
    for triple in triples:
        grouped.setdefault(triple.subject, {}).setdefault(triple.predicate, None)
    return {subject: list(predicates) for subject, predicates in grouped.items()}


def group_by_subject(triples: Iterable[Triple]) -> List[dict]:
    """
    Group triples into flat expanded JSON-LD node objects, one per subject.

    ``rdf:type`` objects accumulate under ``@type``; blank node objects
    stay references; other objects are decoded into values.

    Raises:
        CoercionError: if a literal does not match its datatype
    """
    nodes: Dict[str, dict] = {}
    for triple in triples:
        node = nodes.get(triple.subject)
        if node is None:
            node = {"@id": triple.subject}
            nodes[triple.subject] = node

        if triple.predicate == RDF_TYPE:
            node.setdefault("@type", []).append(triple.object)
        elif is_blank(triple.object):
            node.setdefault(triple.predicate, []).append({"@id": triple.object})
        else:
            node.setdefault(triple.predicate, []).append(decode_object(triple.object))

    return list(nodes.values())


async def to_document(
    triples: List[Triple],
    context: Optional[Context],
    context_engine: ContextEngine,
) -> Any:
    """
    Rebuild a compacted document from flat triples.

    Returns an empty list when no triples are given.

    Raises:
        MissingContextError: if no context is given
        CompactionError: if compaction fails
    """
    if not triples:
        return []
    if not context:
        raise MissingContextError("No context provided.")

    return await context_engine.compact(group_by_subject(triples), context)
