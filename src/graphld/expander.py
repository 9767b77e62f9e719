"""
Triple expander.

Rebuilds nested expanded JSON-LD from the graph by walking outbound
edges from one or more start nodes. Blank nodes are expanded in place,
rdf:first / rdf:rest chains become ``@list`` values and literals are
decoded to native values.

Each fetch is processed in two phases: the recursive sub-expansions it
needs are dispatched concurrently, then the fetched triples are folded
into the accumulator one at a time, in the order the engine returned
them, using the finished sub-results.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Union

from graphld.codec import Triple
from graphld.config import ExpansionConfig
from graphld.engines.base import GraphEngine
from graphld.errors import ExpansionDepthError, StoreError
from graphld.terms import (
    RDF_FIRST,
    RDF_NIL,
    RDF_REST,
    RDF_TYPE,
    decode_object,
    is_blank,
)

logger = logging.getLogger(__name__)

Refs = Union[str, Sequence[str]]


class Action(Enum):
    """What the fold does with one fetched triple."""
    TYPE = auto()        # append to @type
    FIRST = auto()       # list element
    REST = auto()        # splice the rest of a list
    VALUE = auto()       # decode IRI / literal
    EXPAND = auto()      # embed the expanded object
    REFERENCE = auto()   # keep the object as a reference
    SKIP = auto()        # rdf:rest to rdf:nil
    EMPTY_LIST = auto()  # rdf:nil as a field value


@dataclass
class _Node:
    """Accumulator entry for one subject."""
    subject: str
    types: List[str] = field(default_factory=list)
    fields: Dict[str, List[Any]] = field(default_factory=dict)
    first: List[Any] = field(default_factory=list)
    rest: List[Any] = field(default_factory=list)
    is_list: bool = False

    def add(self, predicate: str, values: List[Any]) -> None:
        self.fields.setdefault(predicate, []).extend(values)

    def to_jsonld(self) -> dict:
        if self.is_list:
            return {"@list": self.first + self.rest}
        node: Dict[str, Any] = {"@id": self.subject}
        if self.types:
            node["@type"] = list(self.types)
        node.update(self.fields)
        return node


def _as_list(refs: Refs) -> List[str]:
    if isinstance(refs, str):
        return [refs]
    return list(refs)


async def _gather_or_cancel(coros) -> list:
    """Gather ``coros``; if one fails, cancel and drain the rest before re-raising."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class TripleExpander:
    """
    Expands graph nodes into nested documents.

    Example:
        expander = TripleExpander(engine)
        nodes = await expander.expand("http://x/john")
        triples = await expander.collect("http://x/john")
    """

    def __init__(self, engine: GraphEngine, config: Optional[ExpansionConfig] = None):
        self.engine = engine
        self.config = config or ExpansionConfig()

    # =========================================================================
    # Fetching
    # =========================================================================

    async def _fetch(
        self,
        refs: List[str],
        projections: Optional[Sequence[str]],
        semaphore: asyncio.Semaphore,
    ) -> List[Triple]:
        async with semaphore:
            rows = await (
                self.engine.select(refs)
                .tag("subject")
                .out(projections, tag="predicate")
                .tag("object")
                .execute()
            )
        try:
            return [
                Triple(row["subject"], row["predicate"], row.get("object", row.get("id")))
                for row in rows
            ]
        except (KeyError, TypeError) as e:
            raise StoreError(f"Malformed traversal row: {e}", operation="fetch") from e

    # =========================================================================
    # Expansion
    # =========================================================================

    async def expand(
        self,
        start: Refs,
        deep: bool = True,
        projections: Optional[Sequence[str]] = None,
        exclusions: Optional[Sequence[str]] = None,
    ) -> Optional[List[dict]]:
        """
        Expand ``start`` into a list of expanded JSON-LD node objects.

        Args:
            start: Start node identifier(s)
            deep: Expand blank nodes and lists recursively
            projections: Restrict the first fetch to these predicates
            exclusions: Predicates whose objects are always embedded
                (expanded) instead of being decoded as values

        Returns:
            Node objects in first-occurrence order, or None when the
            start nodes have no outbound edges.

        Raises:
            ExpansionDepthError: if nesting exceeds ``max_depth``
            CoercionError: if a literal does not match its datatype
            StoreError: if the engine fails
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        return await self._expand(
            _as_list(start),
            deep,
            list(projections) if projections else None,
            frozenset(exclusions or ()),
            frozenset(),
            0,
            semaphore,
        )

    def _plan(
        self,
        triple: Triple,
        deep: bool,
        exclusions: FrozenSet[str],
        ancestors: FrozenSet[str],
    ) -> Action:
        predicate, obj = triple.predicate, triple.object

        if predicate == RDF_TYPE:
            return Action.TYPE

        if deep and predicate == RDF_FIRST:
            return Action.FIRST

        if deep and predicate == RDF_REST:
            if obj == RDF_NIL:
                return Action.SKIP
            if obj in ancestors:
                logger.warning(f"Cyclic list chain at {obj}, truncating")
                return Action.SKIP
            return Action.REST

        if deep and obj == RDF_NIL:
            return Action.EMPTY_LIST

        forced = predicate in exclusions
        if not is_blank(obj) and not forced:
            return Action.VALUE

        if deep:
            if obj in ancestors:
                logger.warning(f"Cycle detected at {obj}, keeping reference")
                return Action.REFERENCE
            return Action.EXPAND

        return Action.REFERENCE

    async def _expand(
        self,
        refs: List[str],
        deep: bool,
        projections: Optional[List[str]],
        exclusions: FrozenSet[str],
        ancestors: FrozenSet[str],
        depth: int,
        semaphore: asyncio.Semaphore,
    ) -> Optional[List[dict]]:
        triples = await self._fetch(refs, projections, semaphore)
        if not triples:
            return None

        logger.debug(f"Fetched {len(triples)} triples for {len(refs)} node(s) at depth {depth}")
        ancestors = ancestors | frozenset(refs)
        actions = [self._plan(t, deep, exclusions, ancestors) for t in triples]

        # fan out
        async def sub_expand(triple: Triple, action: Action) -> Optional[List[dict]]:
            nested_element = (
                action is Action.FIRST
                and is_blank(triple.object)
                and triple.object not in ancestors
            )
            if action is Action.REST:
                # list chains do not nest
                next_depth = depth
            elif action is Action.EXPAND or nested_element:
                next_depth = depth + 1
                if next_depth > self.config.max_depth:
                    raise ExpansionDepthError(
                        f"Expansion exceeded max depth {self.config.max_depth} at {triple.object}"
                    )
            else:
                return None
            return await self._expand(
                [triple.object], deep, None, exclusions, ancestors, next_depth, semaphore
            )

        sub_results = await _gather_or_cancel(
            sub_expand(t, a) for t, a in zip(triples, actions)
        )

        # ordered fold-in
        nodes: Dict[str, _Node] = {}
        for triple, action, sub_result in zip(triples, actions, sub_results):
            nodes = self._fold(nodes, triple, action, sub_result)

        return [node.to_jsonld() for node in nodes.values()]

    @staticmethod
    def _fold(
        nodes: Dict[str, _Node],
        triple: Triple,
        action: Action,
        sub_result: Optional[List[dict]],
    ) -> Dict[str, _Node]:
        node = nodes.get(triple.subject)
        if node is None:
            node = _Node(triple.subject)
            nodes[triple.subject] = node

        if action is Action.TYPE:
            node.types.append(triple.object)

        elif action is Action.FIRST:
            node.is_list = True
            if sub_result:
                node.first.append(sub_result[0])
            elif is_blank(triple.object):
                node.first.append({"@id": triple.object})
            else:
                node.first.append(decode_object(triple.object))

        elif action is Action.REST:
            node.is_list = True
            if sub_result and "@list" in sub_result[0]:
                node.rest.extend(sub_result[0]["@list"])

        elif action is Action.SKIP:
            if triple.predicate == RDF_REST:
                node.is_list = True

        elif action is Action.EMPTY_LIST:
            node.add(triple.predicate, [{"@list": []}])

        elif action is Action.VALUE:
            node.add(triple.predicate, [decode_object(triple.object)])

        elif action is Action.EXPAND:
            if sub_result is not None:
                node.add(triple.predicate, sub_result)
            elif is_blank(triple.object):
                node.add(triple.predicate, [{"@id": triple.object}])
            else:
                node.add(triple.predicate, [decode_object(triple.object)])

        else:
            node.add(triple.predicate, [{"@id": triple.object}])

        return nodes

    # =========================================================================
    # Collection
    # =========================================================================

    async def collect(
        self,
        start: Refs,
        projections: Optional[Sequence[str]] = None,
    ) -> List[Triple]:
        """
        Collect every triple reachable from ``start`` through blank nodes.

        Walks breadth-first; ``projections`` restricts only the edges
        leaving the start nodes. Each blank node is visited once.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        frontier = _as_list(start)
        visited: Set[str] = set(frontier)
        seen: Dict[Triple, None] = {}
        first = True

        while frontier:
            fetched = await self._fetch(frontier, list(projections) if first and projections else None, semaphore)
            first = False
            next_frontier = []
            for triple in fetched:
                seen.setdefault(triple, None)
                if is_blank(triple.object) and triple.object not in visited:
                    visited.add(triple.object)
                    next_frontier.append(triple.object)
            frontier = next_frontier

        logger.debug(f"Collected {len(seen)} triples from {start}")
        return list(seen)
