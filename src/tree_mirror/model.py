"""
Data model for Tree Mirror.

Structured content exchanged with resource stores is a Document: a set
of triples whose objects are either locators (plain strings) or typed
Literal values. Timestamps travel as xsd:dateTime literals at
millisecond precision in UTC.

Example:
    doc = Document()
    doc.add(Triple(page, LDP_CONTAINS, member))
    doc.add(Triple(member, DCT_MODIFIED, timestamp_literal(created_at)))

    for member in doc.objects(page, LDP_CONTAINS):
        ...
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Union

from tree_mirror.errors import MalformedSource
from tree_mirror.vocab import (
    RDF_TYPE,
    TREE_NODE,
    TREE_PATH,
    TREE_RELATION,
    TREE_VALUE,
    XSD_DATETIME,
)


@dataclass(frozen=True)
class Literal:
    """A typed literal value."""

    value: str
    datatype: str | None = None

    def __str__(self) -> str:
        return self.value


Term = Union[str, Literal]


@dataclass(frozen=True)
class Triple:
    """A single (subject, predicate, object) statement."""

    subject: str
    predicate: str
    object: Term


# =============================================================================
# Timestamps
# =============================================================================

def utc_now() -> datetime:
    """Current time in UTC, truncated to milliseconds."""
    return truncate_ms(datetime.now(timezone.utc))


def truncate_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision."""
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision (2024-01-01T00:00:00.000Z)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def timestamp_literal(value: datetime) -> Literal:
    """Build an xsd:dateTime literal."""
    return Literal(format_timestamp(value), XSD_DATETIME)


def parse_timestamp(term: Term, context: str | None = None) -> datetime:
    """
    Interpret a term as an xsd:dateTime literal.

    Raises:
        MalformedSource: if the term is not a dateTime literal
    """
    if not isinstance(term, Literal) or term.datatype != XSD_DATETIME:
        raise MalformedSource(
            f"Could not interpret {term!r} as {XSD_DATETIME}", context
        )
    try:
        parsed = datetime.fromisoformat(term.value.replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedSource(f"Invalid dateTime {term.value!r}: {e}", context)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# Document
# =============================================================================

class Document:
    """
    A set of triples with simple pattern queries.

    Inserting a triple that is already present is a no-op, which keeps
    repeated inserts of the same mirror records idempotent.
    """

    def __init__(self, triples: Iterable[Triple] = ()) -> None:
        self._triples: set[Triple] = set(triples)

    def __len__(self) -> int:
        return len(self._triples)

    def __iter__(self) -> Iterator[Triple]:
        return iter(sorted(self._triples, key=_sort_key))

    def __contains__(self, triple: object) -> bool:
        return triple in self._triples

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self._triples == other._triples

    def __repr__(self) -> str:
        return f"Document({len(self._triples)} triples)"

    def add(self, triple: Triple) -> None:
        self._triples.add(triple)

    def update(self, triples: Iterable[Triple]) -> None:
        self._triples.update(triples)

    def discard(self, triple: Triple) -> None:
        self._triples.discard(triple)

    def copy(self) -> "Document":
        return Document(self._triples)

    def triples(
        self,
        subject: str | None = None,
        predicate: str | None = None,
        obj: Term | None = None,
    ) -> list[Triple]:
        """Return triples matching the pattern (None matches anything)."""
        return [
            t for t in self
            if (subject is None or t.subject == subject)
            and (predicate is None or t.predicate == predicate)
            and (obj is None or t.object == obj)
        ]

    def objects(self, subject: str | None, predicate: str) -> list[Term]:
        return [t.object for t in self.triples(subject, predicate)]

    def subjects(self, predicate: str, obj: Term | None = None) -> list[str]:
        return [t.subject for t in self.triples(None, predicate, obj)]

    def value(self, subject: str, predicate: str) -> Term | None:
        """First object for subject/predicate, or None."""
        found = self.objects(subject, predicate)
        return found[0] if found else None

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {"triples": [_triple_to_dict(t) for t in self]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """
        Create from dictionary.

        Raises:
            MalformedSource: if the payload does not have the expected shape
        """
        try:
            return cls(_triple_from_dict(item) for item in data["triples"])
        except (KeyError, TypeError) as e:
            raise MalformedSource(f"Unexpected document shape: {e}")

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "Document":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedSource(f"Document is not valid JSON: {e}")
        return cls.from_dict(data)


def triples_to_list(triples: Iterable[Triple]) -> list[dict[str, Any]]:
    """Serialize a sequence of triples (used for patch bodies)."""
    return [_triple_to_dict(t) for t in triples]


def _sort_key(triple: Triple) -> tuple[str, str, str]:
    return (triple.subject, triple.predicate, str(triple.object))


def _triple_to_dict(triple: Triple) -> dict[str, Any]:
    obj: dict[str, Any]
    if isinstance(triple.object, Literal):
        obj = {"@value": triple.object.value}
        if triple.object.datatype:
            obj["@type"] = triple.object.datatype
    else:
        obj = {"@id": triple.object}
    return {"s": triple.subject, "p": triple.predicate, "o": obj}


def _triple_from_dict(item: dict[str, Any]) -> Triple:
    obj = item["o"]
    term: Term
    if "@id" in obj:
        term = obj["@id"]
    else:
        term = Literal(obj["@value"], obj.get("@type"))
    return Triple(item["s"], item["p"], term)


# =============================================================================
# Domain records
# =============================================================================

@dataclass(frozen=True)
class Member:
    """A log entry as seen by the mirror: identifier, timestamp and page."""

    id: str
    created_at: datetime
    page_id: str


@dataclass(frozen=True)
class Relation:
    """A boundary-labeled pointer from a root to a page."""

    node: str
    kind: str
    path: str
    value: datetime


@dataclass
class PageEvent:
    """A root or page discovered by the page source."""

    locator: str
    relations: list[Relation] = field(default_factory=list)
    is_root: bool = False


@dataclass(frozen=True)
class StreamEnd:
    """Terminal event of a page source stream."""

    pages: int = 0


SourceEvent = Union[PageEvent, StreamEnd]


def relations_of(doc: Document, node: str) -> list[Relation]:
    """
    Read the boundary relations a node declares.

    Raises:
        MalformedSource: if a relation lacks its node, kind, path or value
    """
    relations = []
    for relation_id in doc.objects(node, TREE_RELATION):
        if isinstance(relation_id, Literal):
            raise MalformedSource(f"Relation of {node} is a literal", node)
        target = doc.value(relation_id, TREE_NODE)
        kind = doc.value(relation_id, RDF_TYPE)
        path = doc.value(relation_id, TREE_PATH)
        value = doc.value(relation_id, TREE_VALUE)
        if target is None or kind is None or path is None or value is None:
            raise MalformedSource(
                f"Relation {relation_id} of {node} misses node, type, path or value",
                node,
            )
        if isinstance(target, Literal) or isinstance(kind, Literal):
            raise MalformedSource(f"Relation {relation_id} has literal node or type", node)
        relations.append(
            Relation(
                node=target,
                kind=kind,
                path=str(path),
                value=parse_timestamp(value, node),
            )
        )
    return relations
