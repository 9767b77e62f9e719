"""Shared constants and test doubles."""
from graphld.engines.memory import MemoryGraphEngine

FOAF = "http://xmlns.com/foaf/0.1/"
SCHEMA = "http://schema.org/"
XSD = "http://www.w3.org/2001/XMLSchema#"

PERSON_CONTEXT = {
    "@context": {
        "Person": f"{FOAF}Person",
        "name": f"{FOAF}name",
        "nick": {"@id": f"{FOAF}nick", "@container": "@list"},
        "knows": {"@id": f"{FOAF}knows", "@type": "@id"},
        "age": f"{FOAF}age",
        "height": f"{SCHEMA}height",
        "active": f"{SCHEMA}active",
        "description": f"{SCHEMA}description",
        "born": {"@id": f"{SCHEMA}birthDate", "@type": f"{XSD}date"},
        "spouse": {"@id": f"{SCHEMA}spouse", "@type": "@id"},
        "address": f"{SCHEMA}address",
        "street": f"{SCHEMA}streetAddress",
        "city": f"{SCHEMA}addressLocality",
    }
}

JOHN = "http://x/john"
PAUL = "http://x/paul"


class RecordingEngine(MemoryGraphEngine):
    """Memory engine that records every call made to it."""

    def __init__(self, triples=None):
        super().__init__(triples)
        self.executed = []
        self.writes = []
        self.deletes = []

    async def execute(self, request):
        self.executed.append(request)
        return await super().execute(request)

    async def write(self, triples):
        self.writes.append(list(triples))
        return await super().write(triples)

    async def delete(self, triples):
        self.deletes.append(list(triples))
        return await super().delete(triples)
