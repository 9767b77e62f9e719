"""
In-process graph engine backed by a Polars DataFrame.

Triples are held as three Utf8 columns. Traversals run as a sequence of
joins over a binding frame whose ``id`` column is the current node set
and whose other columns are the tags recorded so far.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import polars as pl

from graphld.codec import Triple
from graphld.engines.base import GraphEngine, StepKind, TraversalRequest
from graphld.errors import TraversalError

logger = logging.getLogger(__name__)

_INTERNAL = ["__row", "__edge", "__source", "__predicate"]


class MemoryGraphEngine(GraphEngine):
    """
    A graph engine holding its triples in memory.

    Example:
        engine = MemoryGraphEngine()
        await engine.write([Triple("http://x/a", "http://x/p", '"v"')])
        rows = await engine.select("http://x/a").out().execute()
    """

    def __init__(self, triples: Optional[Iterable[Triple]] = None):
        self._df = self._create_empty_dataframe()
        if triples:
            self._df = pl.concat([self._df, self._to_frame(triples)]).unique(maintain_order=True)

    @staticmethod
    def _create_empty_dataframe() -> pl.DataFrame:
        return pl.DataFrame({
            "subject": pl.Series([], dtype=pl.Utf8),
            "predicate": pl.Series([], dtype=pl.Utf8),
            "object": pl.Series([], dtype=pl.Utf8),
        })

    @staticmethod
    def _to_frame(triples: Iterable[Triple]) -> pl.DataFrame:
        rows = [t.to_dict() for t in triples]
        return pl.DataFrame(
            rows,
            schema={"subject": pl.Utf8, "predicate": pl.Utf8, "object": pl.Utf8},
        )

    def __len__(self) -> int:
        return self._df.height

    @property
    def df(self) -> pl.DataFrame:
        """A copy of the stored triples."""
        return self._df.clone()

    def triples(self) -> List[Triple]:
        return [Triple.from_dict(row) for row in self._df.to_dicts()]

    def contains(self, triple: Triple) -> bool:
        return self._df.filter(
            (pl.col("subject") == triple.subject)
            & (pl.col("predicate") == triple.predicate)
            & (pl.col("object") == triple.object)
        ).height > 0

    def _nodes(self) -> pl.Series:
        return pl.concat([self._df["subject"], self._df["object"]]).unique()

    # =========================================================================
    # Traversal
    # =========================================================================

    def _start_frame(self, refs: Optional[Sequence[str]]) -> pl.DataFrame:
        nodes = self._nodes()
        if refs is None:
            return pl.DataFrame({"id": nodes.sort()})
        ids = pl.Series("id", list(refs), dtype=pl.Utf8).unique(maintain_order=True)
        return pl.DataFrame({"id": ids}).filter(pl.col("id").is_in(nodes.to_list()))

    def _follow(
        self,
        frame: pl.DataFrame,
        predicates: Optional[Sequence[str]],
        tag: Optional[str],
        inbound: bool,
    ) -> pl.DataFrame:
        edges = self._df
        if predicates is not None:
            edges = edges.filter(pl.col("predicate").is_in(list(predicates)))
        source, target = ("object", "subject") if inbound else ("subject", "object")
        edges = edges.with_row_index("__edge").select(
            pl.col(source).alias("__source"),
            pl.col("predicate").alias("__predicate"),
            pl.col(target).alias("__target"),
            pl.col("__edge"),
        )

        joined = (
            frame.with_row_index("__row")
            .join(edges, left_on="id", right_on="__source", how="inner")
            .sort(["__row", "__edge"])
        )
        if tag:
            joined = joined.with_columns(pl.col("__predicate").alias(tag))
        return joined.drop(["id", *_INTERNAL], strict=False).rename({"__target": "id"})

    def _has(self, frame: pl.DataFrame, predicate: str, value: str) -> pl.DataFrame:
        matches = self._df.filter(
            (pl.col("predicate") == predicate) & (pl.col("object") == value)
        )["subject"].unique()
        return frame.filter(pl.col("id").is_in(matches.to_list()))

    async def execute(self, request: TraversalRequest) -> List[Dict[str, Any]]:
        frame = self._start_frame(request.start)

        for step in request.steps:
            if step.kind is StepKind.OUT:
                frame = self._follow(frame, step.predicates, step.tag, inbound=False)
            elif step.kind is StepKind.IN:
                frame = self._follow(frame, step.predicates, step.tag, inbound=True)
            elif step.kind is StepKind.HAS:
                frame = self._has(frame, step.predicates[0], step.values[0])
            elif step.kind is StepKind.IS:
                frame = frame.filter(pl.col("id").is_in(list(step.values)))
            elif step.kind is StepKind.TAG:
                frame = frame.with_columns(pl.col("id").alias(step.tag))
            else:
                raise TraversalError(f"Unsupported traversal step: {step.kind}")

        logger.debug(f"Traversal with {len(request.steps)} steps returned {frame.height} rows")
        return frame.to_dicts()

    # =========================================================================
    # Mutation
    # =========================================================================

    async def write(self, triples: List[Triple]) -> Dict[str, Any]:
        if not triples:
            return {"error": "No quads to write."}
        self._df = pl.concat([self._df, self._to_frame(triples)]).unique(maintain_order=True)
        return {"result": f"Successfully wrote {len(triples)} quads."}

    async def delete(self, triples: List[Triple]) -> Dict[str, Any]:
        if not triples:
            return {"error": "No quads to delete."}
        self._df = self._df.join(
            self._to_frame(triples),
            on=["subject", "predicate", "object"],
            how="anti",
        )
        return {"result": f"Successfully deleted {len(triples)} quads."}
