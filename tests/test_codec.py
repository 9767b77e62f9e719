"""Tests for the document <-> triple codec."""
import pytest

from graphld.codec import (
    BlankNodeArena,
    LocalNode,
    Triple,
    distinct_subjects,
    group_by_subject,
    predicates_by_subject,
    to_document,
    to_triples,
)
from graphld.errors import (
    CompactionError,
    EmptyDocumentError,
    MissingContextError,
    MissingDocumentError,
    ValidationError,
)
from graphld.terms import RDF_FIRST, RDF_NIL, RDF_REST, RDF_TYPE

from helpers import FOAF, JOHN, SCHEMA, XSD


# =============================================================================
# Triple
# =============================================================================

class TestTriple:
    def test_dict_round_trip(self):
        triple = Triple(JOHN, f"{FOAF}name", '"John"')
        assert Triple.from_dict(triple.to_dict()) == triple

    def test_empty_fields_rejected(self):
        with pytest.raises(ValidationError):
            Triple("", f"{FOAF}name", '"John"')
        with pytest.raises(ValidationError):
            Triple(JOHN, "", '"John"')
        with pytest.raises(ValidationError):
            Triple(JOHN, f"{FOAF}name", "")

    def test_hashable(self):
        assert len({Triple("a:s", "a:p", "a:o"), Triple("a:s", "a:p", "a:o")}) == 1


# =============================================================================
# Blank node arena
# =============================================================================

class TestBlankNodeArena:
    def test_same_key_same_node(self):
        arena = BlankNodeArena()
        assert arena.local("_:b0") is arena.local("_:b0")
        assert len(arena) == 1

    def test_distinct_keys_distinct_labels(self):
        arena = BlankNodeArena()
        first = arena.label(arena.local("_:b0"))
        second = arena.label(arena.local("_:b1"))
        assert first != second
        assert first.startswith("_:") and second.startswith("_:")

    def test_labels_are_minted(self):
        arena = BlankNodeArena()
        assert arena.label(arena.local("_:b0")) != "_:b0"

    def test_local_indices(self):
        arena = BlankNodeArena()
        assert arena.local("_:x") == LocalNode(0)
        assert arena.local("_:y") == LocalNode(1)

    def test_resolve_iri_passthrough(self):
        arena = BlankNodeArena()
        assert arena.resolve({"type": "IRI", "value": JOHN}) == JOHN
        assert len(arena) == 0


# =============================================================================
# Document -> triples
# =============================================================================

class TestToTriples:
    @pytest.mark.asyncio
    async def test_literals(self, context_engine, john_doc):
        triples = await to_triples(john_doc, context_engine)

        assert set(triples) == {
            Triple(JOHN, f"{FOAF}name", '"John Lennon"'),
            Triple(JOHN, f"{SCHEMA}birthDate", f'"1940-10-09"^^{XSD}date'),
        }

    @pytest.mark.asyncio
    async def test_type_and_reference(self, context_engine):
        doc = {
            "@context": "person",
            "@id": JOHN,
            "@type": "Person",
            "knows": "http://x/paul",
        }
        triples = await to_triples(doc, context_engine)

        assert Triple(JOHN, RDF_TYPE, f"{FOAF}Person") in triples
        assert Triple(JOHN, f"{FOAF}knows", "http://x/paul") in triples

    @pytest.mark.asyncio
    async def test_native_values(self, context_engine):
        doc = {"@context": "person", "@id": JOHN, "age": 40, "active": True}
        triples = await to_triples(doc, context_engine)

        assert Triple(JOHN, f"{FOAF}age", f'"40"^^{XSD}integer') in triples
        assert Triple(JOHN, f"{SCHEMA}active", f'"true"^^{XSD}boolean') in triples

    @pytest.mark.asyncio
    async def test_language_literal(self, context_engine):
        doc = {
            "@context": "person",
            "@id": JOHN,
            "description": {"@value": "Musiker", "@language": "de"},
        }
        triples = await to_triples(doc, context_engine)

        assert triples == [Triple(JOHN, f"{SCHEMA}description", '"Musiker"@de')]

    @pytest.mark.asyncio
    async def test_nested_object_shares_label(self, context_engine):
        doc = {"@context": "person", "@id": JOHN, "address": {"street": "Abbey Road"}}
        triples = await to_triples(doc, context_engine)

        address = next(t for t in triples if t.predicate == f"{SCHEMA}address")
        street = next(t for t in triples if t.predicate == f"{SCHEMA}streetAddress")
        assert address.object.startswith("_:")
        assert street.subject == address.object
        assert street.object == '"Abbey Road"'

    @pytest.mark.asyncio
    async def test_blank_labels_unique_across_conversions(self, context_engine):
        doc = {"@context": "person", "@id": JOHN, "address": {"street": "Abbey Road"}}
        first = await to_triples(doc, context_engine)
        second = await to_triples(doc, context_engine)

        blank_first = {t.subject for t in first if t.subject.startswith("_:")}
        blank_second = {t.subject for t in second if t.subject.startswith("_:")}
        assert blank_first and blank_second
        assert blank_first.isdisjoint(blank_second)

    @pytest.mark.asyncio
    async def test_list_chain(self, context_engine):
        doc = {"@context": "person", "@id": JOHN, "nick": ["Johnny", "Winston", "Lennon"]}
        triples = await to_triples(doc, context_engine)

        firsts = [t for t in triples if t.predicate == RDF_FIRST]
        rests = [t for t in triples if t.predicate == RDF_REST]
        assert sorted(t.object for t in firsts) == ['"Johnny"', '"Lennon"', '"Winston"']
        assert len(rests) == 3
        assert sum(1 for t in rests if t.object == RDF_NIL) == 1

        # walk the chain from the head
        head = next(t.object for t in triples if t.predicate == f"{FOAF}nick")
        values, node = [], head
        while node != RDF_NIL:
            values.append(next(t.object for t in firsts if t.subject == node))
            node = next(t.object for t in rests if t.subject == node)
        assert values == ['"Johnny"', '"Winston"', '"Lennon"']

    @pytest.mark.asyncio
    async def test_document_without_id(self, context_engine):
        triples = await to_triples({"@context": "person", "name": "Anon"}, context_engine)

        assert len(triples) == 1
        assert triples[0].subject.startswith("_:")

    @pytest.mark.asyncio
    async def test_missing_document(self, context_engine):
        with pytest.raises(MissingDocumentError):
            await to_triples(None, context_engine)

    @pytest.mark.asyncio
    async def test_missing_context(self, context_engine):
        with pytest.raises(MissingContextError):
            await to_triples({"@id": JOHN, f"{FOAF}name": "John"}, context_engine)

    @pytest.mark.asyncio
    async def test_empty_document(self, context_engine):
        with pytest.raises(EmptyDocumentError):
            await to_triples({"@context": "person"}, context_engine)


# =============================================================================
# Triples -> document
# =============================================================================

class TestGrouping:
    def test_distinct_subjects(self):
        triples = [
            Triple("a:1", "a:p", "a:x"),
            Triple("a:2", "a:p", "a:x"),
            Triple("a:1", "a:q", "a:x"),
        ]
        assert distinct_subjects(triples) == ["a:1", "a:2"]

    def test_predicates_by_subject(self):
        triples = [
            Triple("a:1", "a:p", '"x"'),
            Triple("a:1", "a:p", '"y"'),
            Triple("a:1", "a:q", '"z"'),
            Triple("a:2", "a:p", '"w"'),
        ]
        assert predicates_by_subject(triples) == {"a:1": ["a:p", "a:q"], "a:2": ["a:p"]}

    def test_group_by_subject(self):
        triples = [
            Triple(JOHN, RDF_TYPE, f"{FOAF}Person"),
            Triple(JOHN, f"{FOAF}name", '"John"'),
            Triple(JOHN, f"{SCHEMA}address", "_:a1"),
            Triple("_:a1", f"{SCHEMA}streetAddress", '"Abbey Road"'),
        ]
        assert group_by_subject(triples) == [
            {
                "@id": JOHN,
                "@type": [f"{FOAF}Person"],
                f"{FOAF}name": [{"@value": "John"}],
                f"{SCHEMA}address": [{"@id": "_:a1"}],
            },
            {"@id": "_:a1", f"{SCHEMA}streetAddress": [{"@value": "Abbey Road"}]},
        ]


class TestToDocument:
    @pytest.mark.asyncio
    async def test_round_trip(self, context_engine, john_doc):
        triples = await to_triples(john_doc, context_engine)
        assert await to_document(triples, "person", context_engine) == john_doc

    @pytest.mark.asyncio
    async def test_no_triples(self, context_engine):
        assert await to_document([], "person", context_engine) == []

    @pytest.mark.asyncio
    async def test_missing_context(self, context_engine):
        with pytest.raises(MissingContextError):
            await to_document([Triple(JOHN, f"{FOAF}name", '"John"')], None, context_engine)

    @pytest.mark.asyncio
    async def test_compaction_failure(self, context_engine):
        bad_context = {"name": {"@id": 5}}
        with pytest.raises(CompactionError):
            await to_document([Triple(JOHN, f"{FOAF}name", '"John"')], bad_context, context_engine)
