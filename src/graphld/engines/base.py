"""
Graph engine contract.

A graph engine selects nodes, executes traversal requests and writes or
deletes triples. Traversal requests are immutable: every fluent call
returns a new request with one more step, so a partially built path can
be shared and extended safely.

    rows = await engine.select(["http://x/john"]).tag("subject") \\
        .out(None, tag="predicate").tag("object").execute()
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

if TYPE_CHECKING:
    from graphld.codec import Triple


class StepKind(Enum):
    """Traversal primitives."""
    OUT = "Out"
    IN = "In"
    HAS = "Has"
    IS = "Is"
    TAG = "Tag"


@dataclass(frozen=True)
class TraversalStep:
    """One primitive applied to the current node set."""
    kind: StepKind
    predicates: Optional[Tuple[str, ...]] = None
    values: Tuple[str, ...] = ()
    tag: Optional[str] = None


def _as_tuple(values: Union[None, str, Sequence[str]]) -> Optional[Tuple[str, ...]]:
    if values is None:
        return None
    if isinstance(values, str):
        return (values,)
    return tuple(values)


@dataclass(frozen=True)
class TraversalRequest:
    """
    A composed traversal, handed to the engine for execution.

    ``start`` is the initial node set (``None`` selects every node).
    """
    engine: "GraphEngine" = field(compare=False, repr=False)
    start: Optional[Tuple[str, ...]] = None
    steps: Tuple[TraversalStep, ...] = ()

    def _then(self, step: TraversalStep) -> "TraversalRequest":
        return replace(self, steps=self.steps + (step,))

    def out(self, predicates: Union[None, str, Sequence[str]] = None, tag: Optional[str] = None) -> "TraversalRequest":
        """Follow outbound edges, optionally tagging the traversed predicate."""
        return self._then(TraversalStep(StepKind.OUT, predicates=_as_tuple(predicates), tag=tag))

    def in_(self, predicates: Union[None, str, Sequence[str]] = None, tag: Optional[str] = None) -> "TraversalRequest":
        """Follow inbound edges, optionally tagging the traversed predicate."""
        return self._then(TraversalStep(StepKind.IN, predicates=_as_tuple(predicates), tag=tag))

    def has(self, predicate: str, value: str) -> "TraversalRequest":
        """Keep nodes with an outbound ``predicate`` edge to ``value``."""
        return self._then(TraversalStep(StepKind.HAS, predicates=(predicate,), values=(value,)))

    def is_(self, *values: str) -> "TraversalRequest":
        """Keep nodes equal to one of ``values``."""
        return self._then(TraversalStep(StepKind.IS, values=tuple(values)))

    def tag(self, name: str) -> "TraversalRequest":
        """Record the current node under ``name`` in each result row."""
        return self._then(TraversalStep(StepKind.TAG, tag=name))

    async def execute(self) -> List[Dict[str, Any]]:
        """Run the traversal; each row has ``id`` plus one key per tag."""
        return await self.engine.execute(self)


class GraphEngine(ABC):
    """Abstract graph storage and traversal engine."""

    def select(self, refs: Union[None, str, Sequence[str]] = None) -> TraversalRequest:
        """Start a traversal at ``refs`` (every node when ``None``)."""
        return TraversalRequest(engine=self, start=_as_tuple(refs))

    @abstractmethod
    async def execute(self, request: TraversalRequest) -> List[Dict[str, Any]]:
        """Execute a traversal request."""

    @abstractmethod
    async def write(self, triples: List["Triple"]) -> Dict[str, Any]:
        """Write triples; returns the engine acknowledgement payload."""

    @abstractmethod
    async def delete(self, triples: List["Triple"]) -> Dict[str, Any]:
        """Delete triples; returns the engine acknowledgement payload."""

    async def close(self) -> None:
        """Release engine resources."""
        return None

    async def __aenter__(self) -> "GraphEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


def ack_error(ack: Any, default: str) -> Optional[str]:
    """Return the error carried by an acknowledgement payload, if any."""
    if not ack:
        return default
    if isinstance(ack, dict) and ack.get("error"):
        return str(ack["error"])
    return None
