"""
JSON-LD context engine backed by PyLD.

Wraps PyLD expansion, compaction and RDF conversion behind coroutines so
the document operations can await them like any other collaborator call.
PyLD is synchronous; calls run in a worker thread.

Remote contexts are fetched with httpx and cached per engine. Short
context references (``"person"``) and URLs can be mapped to inline
context documents through ``ContextConfig.inline_contexts``.
"""
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pyld import jsonld

from graphld.config import ContextConfig
from graphld.errors import CompactionError, ContextError, InvalidPredicateError

logger = logging.getLogger(__name__)

Context = Union[str, Dict[str, Any], List[Any]]

_PYLD_ERRORS = (jsonld.JsonLdError, ContextError, KeyError, TypeError, ValueError)


class ContextEngine:
    """
    Expands and compacts JSON-LD documents.

    Example:
        engine = ContextEngine(ContextConfig(inline_contexts={"person": {...}}))
        triples = await engine.to_rdf(doc)
        compacted = await engine.compact(expanded, "person")
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()
        self._documents: Dict[str, dict] = {}

    # -------------------------------------------------------------------------
    # Context resolution
    # -------------------------------------------------------------------------

    def _load_document(self, url: str, options: Optional[dict] = None) -> dict:
        """PyLD document loader using httpx."""
        if url in self.config.inline_contexts:
            return self._remote_document(url, self.config.inline_contexts[url])

        if self.config.cache_contexts and url in self._documents:
            return self._documents[url]

        logger.debug(f"Fetching JSON-LD context {url}")
        try:
            response = httpx.get(
                url,
                headers={"Accept": "application/ld+json, application/json"},
                timeout=self.config.loader_timeout_seconds,
                follow_redirects=True,
            )
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ContextError(f"Failed to load context {url}: {e}") from e

        remote = self._remote_document(url, document)
        if self.config.cache_contexts:
            self._documents[url] = remote
        return remote

    @staticmethod
    def _remote_document(url: str, document: Any) -> dict:
        if isinstance(document, dict) and "@context" not in document:
            document = {"@context": document}
        return {
            "contentType": "application/ld+json",
            "contextUrl": None,
            "documentUrl": url,
            "document": document,
        }

    def resolve_context(self, context: Context) -> Context:
        """Replace inline-registered context references with their documents."""
        if isinstance(context, list):
            return [self.resolve_context(item) for item in context]
        if isinstance(context, str) and context in self.config.inline_contexts:
            inline = self.config.inline_contexts[context]
            if isinstance(inline, dict) and "@context" in inline:
                return copy.deepcopy(inline["@context"])
            return copy.deepcopy(inline)
        if isinstance(context, dict) and "@context" in context:
            return self.resolve_context(context["@context"])
        return context

    def resolve_document(self, document: dict) -> dict:
        """Copy ``document`` with its ``@context`` resolved."""
        resolved = dict(document)
        if "@context" in resolved:
            resolved["@context"] = self.resolve_context(resolved["@context"])
        return resolved

    def _options(self) -> dict:
        return {"documentLoader": self._load_document}

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def expand(self, document: Any) -> List[dict]:
        """Expand a document into canonical (expanded) JSON-LD form."""
        if isinstance(document, dict):
            document = self.resolve_document(document)
        try:
            return await asyncio.to_thread(jsonld.expand, document, self._options())
        except _PYLD_ERRORS as e:
            raise ContextError(f"Expansion failed: {e}", operation="expand") from e

    async def compact(self, expanded: Any, context: Context) -> dict:
        """
        Compact an expanded document against ``context``.

        The output keeps the caller's context reference (e.g. a URL or a
        registered short name) rather than the resolved context body.
        """
        resolved = self.resolve_context(context)
        try:
            compacted = await asyncio.to_thread(
                jsonld.compact, expanded, {"@context": resolved}, self._options()
            )
        except _PYLD_ERRORS as e:
            raise CompactionError(f"Compaction failed: {e}", operation="compact") from e

        if "@context" in compacted:
            if isinstance(context, dict) and "@context" in context:
                context = context["@context"]
            compacted["@context"] = context
        return compacted

    async def to_rdf(self, document: dict) -> List[dict]:
        """
        Flatten a document into RDF triples of the default graph.

        Each triple is a dict of ``subject`` / ``predicate`` / ``object``
        nodes carrying ``type`` ('IRI', 'blank node' or 'literal') and
        ``value``; literal objects also carry ``datatype`` and optionally
        ``language``.
        """
        document = self.resolve_document(document)
        try:
            dataset = await asyncio.to_thread(jsonld.to_rdf, document, self._options())
        except _PYLD_ERRORS as e:
            raise ContextError(f"RDF conversion failed: {e}", operation="to_rdf") from e
        return list(dataset.get("@default", []))

    async def expand_predicates(self, context: Context, names: Union[str, List[str]]) -> List[str]:
        """
        Expand short predicate names to absolute IRIs through ``context``.

        Raises:
            InvalidPredicateError: if a name is malformed or does not expand
        """
        if not context or not names:
            raise InvalidPredicateError("Missing context or predicate.")
        if isinstance(names, str):
            names = [names]
        for name in names:
            if not isinstance(name, str) or not name:
                raise InvalidPredicateError(f"Invalid predicate type: {name!r}")

        resolved = self.resolve_context(context)
        options = self._options()

        def expand_all() -> List[str]:
            predicates = []
            for name in names:
                expanded = jsonld.expand({"@context": resolved, name: 1}, options)
                keys = [key for key in (expanded[0] if expanded else {}) if not key.startswith("@")]
                if not keys:
                    raise InvalidPredicateError(f"Predicate {name!r} is not defined by the context")
                predicates.extend(keys)
            return predicates

        try:
            return await asyncio.to_thread(expand_all)
        except InvalidPredicateError:
            raise
        except _PYLD_ERRORS as e:
            raise InvalidPredicateError(f"Predicate expansion failed: {e}") from e
