"""
RDF term encoding used on the wire to the graph engine.

Terms are plain strings:

    http://example.org/john          IRI
    _:8d1c2f...                      blank node
    "John Lennon"                    plain (xsd:string) literal
    "Lennon"@en                      language-tagged literal
    "1940-10-09"^^http://...#date    typed literal

Literal decoding (``coerce_literal``) turns an encoded literal into a
JSON-LD value object, applying the native type for integers, doubles and
booleans.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from rdflib.namespace import RDF, XSD

from graphld.errors import CoercionError


# =============================================================================
# Vocabulary
# =============================================================================

RDF_TYPE = str(RDF.type)
RDF_FIRST = str(RDF.first)
RDF_REST = str(RDF.rest)
RDF_NIL = str(RDF.nil)
RDF_LANGSTRING = str(RDF.langString)
RDF_PLAINLITERAL = str(RDF.PlainLiteral)

XSD_NS = str(XSD)
XSD_STRING = str(XSD.string)
XSD_INTEGER = str(XSD.integer)
XSD_DOUBLE = str(XSD.double)
XSD_BOOLEAN = str(XSD.boolean)

BLANK_PREFIX = "_:"

_ABSOLUTE_IRI = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*:[^\s"<>{}|\\^`]+$')


# =============================================================================
# Term kinds
# =============================================================================

def is_blank(term: Any) -> bool:
    """Check whether a term is a blank node reference."""
    return isinstance(term, str) and term.startswith(BLANK_PREFIX)


def is_literal(term: Any) -> bool:
    """Check whether a term is an encoded literal."""
    return isinstance(term, str) and term.startswith('"')


def is_iri(term: Any) -> bool:
    """Check whether a term is an IRI (neither literal nor blank node)."""
    return isinstance(term, str) and bool(term) and not is_blank(term) and not is_literal(term)


def is_absolute_reference(value: Any) -> bool:
    """
    Check whether a raw query value already names a node.

    Blank node labels and absolute IRIs are references; anything else is
    a literal value.
    """
    if not isinstance(value, str):
        return False
    return is_blank(value) or bool(_ABSOLUTE_IRI.match(value))


# =============================================================================
# Literals
# =============================================================================

def _canonical_double(value: float) -> str:
    return re.sub(r"(\d)0*E\+?0*(\d)", r"\1E\2", "%1.15E" % value)


@dataclass(frozen=True)
class Literal:
    """
    An RDF literal.

    At most one of ``datatype`` and ``language`` is set; neither means a
    plain string.
    """
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None

    def __post_init__(self):
        if self.datatype and self.language:
            raise ValueError("A literal cannot carry both a datatype and a language tag")

    @property
    def effective_datatype(self) -> str:
        if self.language:
            return RDF_LANGSTRING
        return self.datatype or XSD_STRING

    def __str__(self) -> str:
        base = f'"{self.value}"'
        if self.language:
            return f"{base}@{self.language}"
        if self.datatype and self.datatype != XSD_STRING:
            return f"{base}^^{self.datatype}"
        return base

    @classmethod
    def parse(cls, term: str) -> "Literal":
        """Parse an encoded literal term."""
        if not is_literal(term):
            raise CoercionError(f"Not a literal: {term!r}")
        end = term.rfind('"')
        if end == 0:
            raise CoercionError(f"Unterminated literal: {term!r}")
        value = term[1:end]
        suffix = term[end + 1:]
        if not suffix:
            return cls(value)
        if suffix.startswith("@"):
            return cls(value, language=suffix[1:])
        if suffix.startswith("^^"):
            datatype = suffix[2:]
            if datatype.startswith("<") and datatype.endswith(">"):
                datatype = datatype[1:-1]
            return cls(value, datatype=datatype)
        raise CoercionError(f"Malformed literal suffix: {term!r}")

    @classmethod
    def from_value(cls, value: Any) -> "Literal":
        """Wrap a native Python value, choosing the XSD datatype from its type."""
        if isinstance(value, bool):
            return cls("true" if value else "false", datatype=XSD_BOOLEAN)
        if isinstance(value, int):
            return cls(str(value), datatype=XSD_INTEGER)
        if isinstance(value, float):
            # canonical xsd:double lexical form, as JSON-LD toRdf writes it
            return cls(_canonical_double(value), datatype=XSD_DOUBLE)
        return cls(str(value))


def create_literal(value: Any) -> str:
    """Encode a native value as a literal term."""
    return str(Literal.from_value(value))


def to_node_term(value: Any) -> str:
    """Use ``value`` as-is when it is a reference, otherwise encode it as a literal."""
    if is_absolute_reference(value):
        return value
    return create_literal(value)


def encode_rdf_object(obj: dict) -> str:
    """
    Encode a literal object as produced by JSON-LD ``toRdf``.

    xsd:string loses its type suffix, rdf:langString becomes a language
    suffix and every other datatype is kept explicitly.
    """
    value = obj["value"]
    datatype = obj.get("datatype")
    if datatype == RDF_LANGSTRING:
        return str(Literal(value, language=obj.get("language")))
    if not datatype or datatype == XSD_STRING:
        return str(Literal(value))
    return str(Literal(value, datatype=datatype))


# =============================================================================
# Coercion
# =============================================================================

def coerce_literal(term: str) -> dict:
    """
    Decode an encoded literal into a JSON-LD value object.

    Raises:
        CoercionError: if the lexical form does not match the datatype
    """
    literal = Literal.parse(term)
    value = literal.value
    datatype = literal.effective_datatype

    if datatype in (XSD_STRING, RDF_PLAINLITERAL):
        return {"@value": value}

    if datatype == RDF_LANGSTRING:
        return {"@value": value, "@language": literal.language}

    if datatype == XSD_INTEGER:
        try:
            return {"@value": int(value, 10)}
        except ValueError:
            raise CoercionError(f"value not integer: {value!r}")

    if datatype == XSD_DOUBLE:
        try:
            return {"@value": float(value)}
        except ValueError:
            raise CoercionError(f"value not double: {value!r}")

    if datatype == XSD_BOOLEAN:
        if value in ("true", "1"):
            return {"@value": True}
        if value in ("false", "0"):
            return {"@value": False}
        raise CoercionError(f"value not boolean: {value!r}")

    return {"@value": value, "@type": datatype}


def decode_object(term: str) -> dict:
    """Decode a concrete object term (IRI or literal) into a JSON-LD value."""
    if is_literal(term):
        return coerce_literal(term)
    return {"@id": term}
