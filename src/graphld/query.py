"""
Path queries.

A path query locates start nodes by relationship instead of by
identifier. It is written as a list whose first element is the start
value and whose remaining elements are steps ``[verb, argument]`` or
``[verb, argument, bypass_expansion]``:

    ["John Lennon", ["In", "name"]]
    ["http://x/john", ["Out", ["knows", "spouse"]], ["Has", ["name", "Cynthia"]]]
    ["Person", ["In", "http://www.w3.org/1999/02/22-rdf-syntax-ns#type", True]]

Steps are parsed into closed variants (Out, In, Has, Is) before anything
touches the context or graph engine, so malformed queries fail fast.
Predicate names are expanded through the JSON-LD context unless the
step asks to bypass expansion.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from graphld.context import Context, ContextEngine
from graphld.engines.base import GraphEngine, TraversalRequest
from graphld.errors import InvalidQueryStepError, MissingContextError, MissingQueryError
from graphld.terms import to_node_term

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool)


# =============================================================================
# Step variants
# =============================================================================

@dataclass(frozen=True)
class Out:
    """Follow outbound edges matching any of ``predicates``."""
    predicates: Tuple[str, ...]
    bypass_expansion: bool = False


@dataclass(frozen=True)
class In:
    """Follow inbound edges matching any of ``predicates``."""
    predicates: Tuple[str, ...]
    bypass_expansion: bool = False


@dataclass(frozen=True)
class Has:
    """Keep nodes with an outbound ``predicate`` edge to ``value``."""
    predicate: str
    value: Any
    bypass_expansion: bool = False


@dataclass(frozen=True)
class Is:
    """Keep nodes equal to ``value``."""
    value: Any


QueryStep = Union[Out, In, Has, Is]


@dataclass(frozen=True)
class PathQuery:
    """A parsed path query: an encoded start term and ordered steps."""
    start: str
    steps: Tuple[QueryStep, ...] = ()


# =============================================================================
# Parsing
# =============================================================================

def _predicates(verb: str, argument: Any) -> Tuple[str, ...]:
    if isinstance(argument, str) and argument:
        return (argument,)
    if isinstance(argument, (list, tuple)) and argument:
        if all(isinstance(p, str) and p for p in argument):
            return tuple(argument)
    raise InvalidQueryStepError(f'Invalid "{verb}" query.')


def parse_step(raw: Any) -> QueryStep:
    """
    Parse one raw step.

    Raises:
        InvalidQueryStepError: on an unknown verb or malformed argument
    """
    if not isinstance(raw, (list, tuple)) or len(raw) not in (2, 3):
        raise InvalidQueryStepError(f"Query step must be [verb, argument(, bypass)]: {raw!r}")

    verb, argument = raw[0], raw[1]
    bypass = raw[2] if len(raw) == 3 else False
    if not isinstance(bypass, bool):
        raise InvalidQueryStepError(f"Expansion bypass flag must be a boolean: {raw!r}")

    if verb == "Out":
        return Out(_predicates(verb, argument), bypass)

    if verb == "In":
        return In(_predicates(verb, argument), bypass)

    if verb == "Has":
        if (
            not isinstance(argument, (list, tuple))
            or len(argument) != 2
            or not isinstance(argument[0], str)
            or not argument[0]
            or not isinstance(argument[1], _SCALARS)
        ):
            raise InvalidQueryStepError('Invalid "Has" query.')
        return Has(argument[0], argument[1], bypass)

    if verb == "Is":
        if argument is None or argument == "" or not isinstance(argument, _SCALARS):
            raise InvalidQueryStepError('Invalid "Is" query.')
        return Is(argument)

    raise InvalidQueryStepError(f"Query contains invalid path: {verb!r}")


def parse_query(query: Optional[Sequence[Any]]) -> PathQuery:
    """
    Parse a raw query list into a PathQuery.

    The start value is kept as-is when it is an absolute IRI or blank
    node, and wrapped as a literal otherwise.
    """
    if not query:
        raise MissingQueryError("No query provided")

    start = query[0]
    if not isinstance(start, str) or not start:
        raise InvalidQueryStepError("Query start node must be a string.")

    steps = tuple(parse_step(raw) for raw in query[1:])
    return PathQuery(start=to_node_term(start), steps=steps)


# =============================================================================
# Building
# =============================================================================

async def _expand(
    context_engine: ContextEngine,
    context: Optional[Context],
    names: Sequence[str],
    bypass: bool,
) -> List[str]:
    if bypass:
        return list(names)
    return await context_engine.expand_predicates(context, list(names))


async def _expand_step(
    context_engine: ContextEngine,
    context: Optional[Context],
    step: QueryStep,
) -> Optional[List[str]]:
    if isinstance(step, (Out, In)):
        return await _expand(context_engine, context, step.predicates, step.bypass_expansion)
    if isinstance(step, Has):
        return await _expand(context_engine, context, [step.predicate], step.bypass_expansion)
    return None


def _apply(path: TraversalRequest, step: QueryStep, predicates: Optional[List[str]]) -> TraversalRequest:
    if isinstance(step, Out):
        return path.out(predicates)
    if isinstance(step, In):
        return path.in_(predicates)
    if isinstance(step, Has):
        return path.has(predicates[0], to_node_term(step.value))
    return path.is_(to_node_term(step.value))


async def build_path(
    engine: GraphEngine,
    context_engine: ContextEngine,
    context: Optional[Context],
    query: Union[Sequence[Any], PathQuery],
) -> TraversalRequest:
    """
    Compile a path query into a traversal request.

    Predicate expansions run concurrently; steps are composed onto the
    traversal strictly in the written order.

    Raises:
        MissingQueryError: if the query is empty
        InvalidQueryStepError: on a malformed step
        MissingContextError: if a step needs expansion and no context is given
        InvalidPredicateError: if a predicate does not expand
    """
    parsed = query if isinstance(query, PathQuery) else parse_query(query)

    needs_context = any(
        isinstance(step, (Out, In, Has)) and not step.bypass_expansion
        for step in parsed.steps
    )
    if needs_context and not context:
        raise MissingContextError("A valid JSON-LD context must be provided.")

    expansions = await asyncio.gather(
        *(_expand_step(context_engine, context, step) for step in parsed.steps)
    )

    path = engine.select([parsed.start])
    for step, predicates in zip(parsed.steps, expansions):
        path = _apply(path, step, predicates)

    logger.debug(f"Built path from {parsed.start} with {len(parsed.steps)} steps")
    return path
