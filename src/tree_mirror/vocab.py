"""Vocabulary constants used in source pages and the mirror."""

from __future__ import annotations


class _Namespace(str):
    """A namespace IRI whose attributes expand to terms."""

    def __getattr__(self, name: str) -> str:
        if name.startswith("__"):
            raise AttributeError(name)
        return f"{self}{name}"


TREE = _Namespace("https://w3id.org/tree#")
DCT = _Namespace("http://purl.org/dc/terms/")
LDP = _Namespace("http://www.w3.org/ns/ldp#")
RDF = _Namespace("http://www.w3.org/1999/02/22-rdf-syntax-ns#")
XSD = _Namespace("http://www.w3.org/2001/XMLSchema#")

# Predicates with a fixed role in the mirror layout
RDF_TYPE = RDF.type
TREE_COLLECTION = TREE.Collection
TREE_NODE_TYPE = TREE.Node
TREE_VIEW = TREE.view
TREE_RELATION = TREE.relation
TREE_NODE = TREE.node
TREE_PATH = TREE.path
TREE_VALUE = TREE.value
TREE_MEMBER = TREE.member
LDP_CONTAINS = LDP.contains
DCT_MODIFIED = DCT.modified
DCT_ISSUED = DCT.issued
XSD_DATETIME = XSD.dateTime

# Default relation kind for time-partitioned logs
GREATER_THAN_OR_EQUAL = TREE.GreaterThanOrEqualToRelation
