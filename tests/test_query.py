"""Tests for path query parsing and building."""
import pytest

from graphld.codec import Triple
from graphld.engines.base import StepKind
from graphld.errors import (
    InvalidPredicateError,
    InvalidQueryStepError,
    MissingContextError,
    MissingQueryError,
    ValidationError,
)
from graphld.query import Has, In, Is, Out, PathQuery, build_path, parse_query, parse_step

from helpers import FOAF, JOHN, PAUL, SCHEMA, RecordingEngine

NAME = f"{FOAF}name"
KNOWS = f"{FOAF}knows"
SPOUSE = f"{SCHEMA}spouse"


@pytest.fixture
def beatles():
    return RecordingEngine([
        Triple(JOHN, NAME, '"John Lennon"'),
        Triple(JOHN, KNOWS, PAUL),
        Triple(JOHN, SPOUSE, "http://x/cynthia"),
        Triple(PAUL, NAME, '"Paul McCartney"'),
        Triple("http://x/cynthia", NAME, '"Cynthia"'),
    ])


# =============================================================================
# Parsing
# =============================================================================

class TestParseStep:
    def test_out_single(self):
        assert parse_step(["Out", "knows"]) == Out(("knows",))

    def test_out_many(self):
        assert parse_step(["Out", ["knows", "spouse"]]) == Out(("knows", "spouse"))

    def test_in_with_bypass(self):
        assert parse_step(["In", NAME, True]) == In((NAME,), True)

    def test_has(self):
        assert parse_step(["Has", ["name", "Cynthia"]]) == Has("name", "Cynthia")

    def test_is(self):
        assert parse_step(["Is", JOHN]) == Is(JOHN)

    @pytest.mark.parametrize("raw", [
        ["Foo", "bar"],
        ["out", "knows"],
        ["Out"],
        "Out",
        ["Out", ""],
        ["Out", []],
        ["Out", ["knows", 3]],
        ["Out", "knows", "yes"],
        ["Has", "name"],
        ["Has", ["name"]],
        ["Has", ["name", None]],
        ["Is", ""],
        ["Is", None],
        ["Is", ["a", "b"]],
    ])
    def test_invalid(self, raw):
        with pytest.raises(InvalidQueryStepError):
            parse_step(raw)

    def test_invalid_is_validation_error(self):
        with pytest.raises(ValidationError, match="invalid path"):
            parse_step(["Foo", "bar"])


class TestParseQuery:
    def test_literal_start(self):
        parsed = parse_query(["John Lennon", ["In", "name"]])
        assert parsed == PathQuery('"John Lennon"', (In(("name",)),))

    def test_iri_start(self):
        assert parse_query([JOHN]).start == JOHN

    def test_empty(self):
        with pytest.raises(MissingQueryError):
            parse_query([])

    def test_bad_start(self):
        with pytest.raises(InvalidQueryStepError):
            parse_query([42, ["Out", "knows"]])


# =============================================================================
# Building
# =============================================================================

class TestBuildPath:
    @pytest.mark.asyncio
    async def test_invalid_step_fails_before_traversal(self, beatles, context_engine):
        with pytest.raises(InvalidQueryStepError):
            await build_path(beatles, context_engine, "person", ["John Lennon", ["Foo", "bar"]])
        assert beatles.executed == []

    @pytest.mark.asyncio
    async def test_missing_context(self, beatles, context_engine):
        with pytest.raises(MissingContextError):
            await build_path(beatles, context_engine, None, ["John Lennon", ["In", "name"]])

    @pytest.mark.asyncio
    async def test_bypass_needs_no_context(self, beatles, context_engine):
        path = await build_path(beatles, context_engine, None, ["John Lennon", ["In", NAME, True]])
        assert await path.execute() == [{"id": JOHN}]

    @pytest.mark.asyncio
    async def test_steps_in_written_order(self, beatles, context_engine):
        path = await build_path(
            beatles,
            context_engine,
            "person",
            [PAUL, ["In", "knows"], ["Has", ["name", "John Lennon"]], ["Out", ["knows", "spouse"]], ["Is", PAUL]],
        )

        assert path.start == (PAUL,)
        assert [step.kind for step in path.steps] == [StepKind.IN, StepKind.HAS, StepKind.OUT, StepKind.IS]
        assert path.steps[0].predicates == (KNOWS,)
        assert path.steps[1].predicates == (NAME,)
        assert path.steps[1].values == ('"John Lennon"',)
        assert path.steps[2].predicates == (KNOWS, SPOUSE)
        assert path.steps[3].values == (PAUL,)

    @pytest.mark.asyncio
    async def test_in_by_literal(self, beatles, context_engine):
        path = await build_path(beatles, context_engine, "person", ["John Lennon", ["In", "name"]])
        assert await path.execute() == [{"id": JOHN}]

    @pytest.mark.asyncio
    async def test_out_many(self, beatles, context_engine):
        path = await build_path(beatles, context_engine, "person", [JOHN, ["Out", ["knows", "spouse"]]])
        rows = await path.execute()
        assert sorted(row["id"] for row in rows) == ["http://x/cynthia", PAUL]

    @pytest.mark.asyncio
    async def test_has_filter(self, beatles, context_engine):
        path = await build_path(
            beatles, context_engine, "person",
            [JOHN, ["Out", ["knows", "spouse"]], ["Has", ["name", "Cynthia"]]],
        )
        assert await path.execute() == [{"id": "http://x/cynthia"}]

    @pytest.mark.asyncio
    async def test_is_filter(self, beatles, context_engine):
        path = await build_path(
            beatles, context_engine, "person",
            [JOHN, ["Out", ["knows", "spouse"]], ["Is", PAUL]],
        )
        assert await path.execute() == [{"id": PAUL}]

    @pytest.mark.asyncio
    async def test_no_match(self, beatles, context_engine):
        path = await build_path(beatles, context_engine, "person", ["Ringo Starr", ["In", "name"]])
        assert await path.execute() == []

    @pytest.mark.asyncio
    async def test_unmapped_predicate(self, beatles, context_engine):
        with pytest.raises(InvalidPredicateError):
            await build_path(beatles, context_engine, "person", [JOHN, ["Out", "drummer"]])
        assert beatles.executed == []
