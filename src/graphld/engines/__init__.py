"""
Graph engines.

- GraphEngine / TraversalRequest: the engine contract
- MemoryGraphEngine: in-process engine on a Polars DataFrame
- CayleyGraphEngine: Cayley server over HTTP
"""

from graphld.engines.base import (
    GraphEngine,
    StepKind,
    TraversalRequest,
    TraversalStep,
    ack_error,
)
from graphld.engines.memory import MemoryGraphEngine
from graphld.engines.cayley import CayleyGraphEngine, compile_gizmo

__all__ = [
    "GraphEngine",
    "StepKind",
    "TraversalRequest",
    "TraversalStep",
    "ack_error",
    "MemoryGraphEngine",
    "CayleyGraphEngine",
    "compile_gizmo",
]
