"""
Document operations.

``Model`` reads and writes JSON-LD documents against a graph engine:

- find: locate start nodes (by identifier or path query), expand, compact
- insert: convert to triples, refuse existing subjects, write
- update: replace the predicates a document sets on an existing node
- remove: delete every triple reachable from a node through blank nodes

Update is delete-then-write with no transaction around the pair: if the
write fails after the delete succeeded, the old triples are gone and the
new ones are missing. The resulting WriteError says so and the caller has
to reconcile.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from graphld.codec import Triple, distinct_subjects, predicates_by_subject, to_document, to_triples
from graphld.config import GraphLDConfig
from graphld.context import Context, ContextEngine
from graphld.engines.base import GraphEngine, ack_error
from graphld.errors import (
    ConflictError,
    DeleteError,
    InvalidQueryStepError,
    MissingContextError,
    MissingDocumentError,
    MissingIdentifierError,
    MissingQueryError,
    NotFoundError,
    StoreError,
    WriteError,
)
from graphld.expander import TripleExpander
from graphld.query import build_path

logger = logging.getLogger(__name__)

Query = Union[str, Sequence[Any]]


class Model:
    """
    JSON-LD document access over a graph engine.

    Example:
        model = Model(MemoryGraphEngine(), config=config)
        await model.insert({"@context": "person", "@id": "http://x/john", "name": "John Lennon"})
        doc = await model.find(["John Lennon", ["In", "name"]], "person")
    """

    def __init__(
        self,
        engine: GraphEngine,
        context_engine: Optional[ContextEngine] = None,
        config: Optional[GraphLDConfig] = None,
    ):
        self.engine = engine
        self.config = config or GraphLDConfig()
        self.context_engine = context_engine or ContextEngine(self.config.context)
        self.expander = TripleExpander(engine, self.config.expansion)

    async def close(self) -> None:
        await self.engine.close()

    async def __aenter__(self) -> "Model":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _resolve_start(
        self,
        query: Sequence[Any],
        context: Optional[Context],
    ) -> List[str]:
        """Resolve a query to start node identifiers (possibly none)."""
        if len(query) > 1:
            path = await build_path(self.engine, self.context_engine, context, query)
            rows = await path.execute()
            ids: Dict[str, None] = {}
            for row in rows:
                ids.setdefault(row["id"], None)
            return list(ids)

        start = query[0]
        if not isinstance(start, str) or not start:
            raise InvalidQueryStepError("Query start node must be a string.")
        return [start]

    async def _expand_names(self, context: Context, names: Optional[Sequence[str]]) -> Optional[List[str]]:
        """Expand predicate names (terms, compact or absolute IRIs) through the context."""
        if not names:
            return None
        return await self.context_engine.expand_predicates(context, list(names))

    async def _expanded_id(self, document: dict) -> Optional[str]:
        """The absolute identifier of the document's root node."""
        doc_id = document.get("@id")
        if not doc_id:
            return None
        # compact IRIs like "x:john" look absolute; only expansion resolves them
        expanded = await self.context_engine.expand(document)
        if expanded and expanded[0].get("@id"):
            return expanded[0]["@id"]
        return doc_id

    async def _check_nodes_absent(self, nodes: List[str]) -> None:
        rows = await self.engine.select(nodes).execute()
        if rows:
            existing = sorted({row["id"] for row in rows})
            raise ConflictError(
                f"Some nodes already exist: {', '.join(existing)}",
                operation="insert",
                payload=existing,
            )

    async def _write(self, triples: List[Triple], operation: str) -> Dict[str, Any]:
        try:
            ack = await self.engine.write(triples)
        except StoreError as e:
            raise WriteError(e.message, operation=operation, payload=e.payload) from e
        error = ack_error(ack, "Failed to write data")
        if error:
            logger.error(f"{operation}: write rejected: {error}")
            raise WriteError(error, operation=operation, payload=ack)
        return ack

    async def _delete(self, triples: List[Triple], operation: str) -> Dict[str, Any]:
        try:
            ack = await self.engine.delete(triples)
        except StoreError as e:
            raise DeleteError(e.message, operation=operation, payload=e.payload) from e
        error = ack_error(ack, "Failed to delete data")
        if error:
            logger.error(f"{operation}: delete rejected: {error}")
            raise DeleteError(error, operation=operation, payload=ack)
        return ack

    # =========================================================================
    # Operations
    # =========================================================================

    async def find(
        self,
        query: Query,
        context: Context,
        options: Optional[Dict[str, Any]] = None,
    ) -> Optional[dict]:
        """
        Find a document.

        Args:
            query: A start node identifier, ``[identifier]``, or a path
                query ``[start_value, step, ...]``
            context: JSON-LD context used for predicate expansion and
                compaction
            options: ``deep`` (default from config), ``projections``
                (predicates fetched at the start node) and ``exclusions``
                (predicates whose objects are always embedded)

        Returns:
            The compacted document, or None when nothing matches.
        """
        if not query:
            raise MissingQueryError("No query provided")
        if not context:
            raise MissingContextError("A valid JSON-LD context must be provided.")
        if isinstance(query, str):
            query = [query]

        options = options or {}
        deep = options.get("deep")
        if deep is None:
            deep = self.config.expansion.deep

        start = await self._resolve_start(query, context)
        if not start:
            logger.debug(f"find: path {query!r} matched no nodes")
            return None

        projections = await self._expand_names(context, options.get("projections"))
        exclusions = await self._expand_names(context, options.get("exclusions"))

        expanded = await self.expander.expand(start, deep, projections, exclusions)
        if expanded is None:
            return None

        return await self.context_engine.compact(expanded, context)

    async def insert(self, document: dict) -> Any:
        """
        Insert a new document.

        A document without ``@id`` gets the identifier minted for its
        root node. Returns the written triples regrouped and compacted
        against the document's context.

        Raises:
            ConflictError: if any subject already exists in the store
            WriteError: if the store rejects the write
        """
        if not document:
            raise MissingDocumentError("JSON-LD document missing.")
        if not document.get("@context"):
            raise MissingContextError("A valid JSON-LD context must be provided.")

        triples = await to_triples(document, self.context_engine)

        subjects = distinct_subjects(triples)
        await self._check_nodes_absent(subjects)

        await self._write(triples, "insert")
        logger.info(f"Inserted {len(triples)} triples for {len(subjects)} subject(s)")

        return await to_document(triples, document["@context"], self.context_engine)

    async def update(self, document: dict) -> Any:
        """
        Update an existing document.

        Every predicate the document sets is replaced on its subject,
        including the anonymous sub-objects hanging off it; predicates
        the document does not mention are left untouched.

        Raises:
            MissingIdentifierError: if the document has no ``@id``
            NotFoundError: if the identifier is not in the store
            DeleteError / WriteError: if the store rejects a call
        """
        if not document:
            raise MissingDocumentError("JSON-LD document missing.")
        if not document.get("@context"):
            raise MissingContextError("A valid JSON-LD context must be provided.")
        if not document.get("@id"):
            raise MissingIdentifierError("Document must carry an @id to be updated.", operation="update")

        doc_id = await self._expanded_id(document)
        if not doc_id or not await self.engine.select([doc_id]).execute():
            raise NotFoundError(f"Node {doc_id or document['@id']} does not exist", operation="update")

        triples = await to_triples(document, self.context_engine)
        grouped = predicates_by_subject(triples)

        # subjects are independent; fetch concurrently
        fetched = await asyncio.gather(
            *(self.expander.collect(subject, predicates) for subject, predicates in grouped.items())
        )
        old: Dict[Triple, None] = {}
        for subject_triples in fetched:
            for triple in subject_triples:
                old.setdefault(triple, None)

        if old:
            await self._delete(list(old), "update")
        try:
            await self._write(triples, "update")
        except WriteError:
            if old:
                logger.warning(
                    f"update: {len(old)} old triples of {doc_id} were deleted but the new "
                    f"triples were not written; manual reconciliation required"
                )
            raise

        logger.info(f"Updated {doc_id}: replaced {len(old)} triples with {len(triples)}")
        return await to_document(triples, document["@context"], self.context_engine)

    async def remove(self, query: Query, context: Optional[Context] = None) -> int:
        """
        Remove a document and its anonymous sub-objects.

        Args:
            query: A start node identifier or path query (see ``find``)
            context: Required only for path queries

        Returns:
            The number of deleted triples.

        Raises:
            NotFoundError: if nothing matches or the node has no triples
            DeleteError: if the store rejects the delete
        """
        if not query:
            raise MissingQueryError("No query provided")
        if isinstance(query, str):
            query = [query]

        start = await self._resolve_start(query, context)
        if not start:
            raise NotFoundError(f"No nodes match {query!r}", operation="remove")

        triples = await self.expander.collect(start)
        if not triples:
            raise NotFoundError(f"Nothing stored for {', '.join(start)}", operation="remove")

        await self._delete(triples, "remove")
        logger.info(f"Removed {len(triples)} triples reachable from {', '.join(start)}")
        return len(triples)
