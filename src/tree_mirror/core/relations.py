"""
Relation Index - page-boundary records known to the mirror root.
"""

from __future__ import annotations

from datetime import datetime
from urllib.parse import quote

from tree_mirror.errors import AmbiguousOpenPage, MalformedSource
from tree_mirror.model import Document, Relation, Triple, relations_of, timestamp_literal
from tree_mirror.vocab import (
    RDF_TYPE,
    TREE_NODE,
    TREE_PATH,
    TREE_RELATION,
    TREE_VALUE,
)


def relation_id(root_locator: str, node: str) -> str:
    """
    Stable identifier of the relation record pointing at a mirror node.

    Built from the whole node name below the root's container, so nested
    names such as 2023/1 and 2024/1 get distinct records.
    """
    container = root_locator.rsplit("/", 1)[0] + "/"
    name = node[len(container):] if node.startswith(container) else node
    return f"{root_locator}#relation-{quote(name.rstrip('/'), safe='')}"


def relation_triples(root_locator: str, relation: Relation) -> list[Triple]:
    """Records stored in the mirror root for one relation."""
    rid = relation_id(root_locator, relation.node)
    return [
        Triple(root_locator, TREE_RELATION, rid),
        Triple(rid, RDF_TYPE, relation.kind),
        Triple(rid, TREE_NODE, relation.node),
        Triple(rid, TREE_PATH, relation.path),
        Triple(rid, TREE_VALUE, timestamp_literal(relation.value)),
    ]


class RelationIndex:
    """
    Relations recorded in the mirror root.

    Pages are few compared to members, so lookups scan the list.

    Example:
        index = RelationIndex.from_document(root_doc, root_locator)
        if not index.contains(fragment):
            ...
        open_page = index.most_recent()
    """

    def __init__(self, root_locator: str, relations: list[Relation] | None = None) -> None:
        self.root_locator = root_locator
        self.relations: list[Relation] = list(relations or [])

    @classmethod
    def from_document(cls, doc: Document, root_locator: str) -> "RelationIndex":
        return cls(root_locator, relations_of(doc, root_locator))

    def __len__(self) -> int:
        return len(self.relations)

    @property
    def nodes(self) -> list[str]:
        return [r.node for r in self.relations]

    def contains(self, node: str) -> bool:
        """Is this mirror node already recorded?"""
        return any(r.node == node for r in self.relations)

    def most_recent(self) -> Relation:
        """
        The relation with the greatest boundary value (the open page).

        Raises:
            MalformedSource: if no relation is recorded
            AmbiguousOpenPage: if several relations share the greatest value
        """
        if not self.relations:
            raise MalformedSource(
                f"Mirror root {self.root_locator} has no relations",
                self.root_locator,
            )

        by_value: dict[datetime, list[Relation]] = {}
        for relation in self.relations:
            by_value.setdefault(relation.value, []).append(relation)

        latest = max(by_value)
        candidates = by_value[latest]
        if len(candidates) > 1:
            raise AmbiguousOpenPage(latest, [r.node for r in candidates])
        return candidates[0]
