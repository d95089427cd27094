"""
Mirror Reader - queries answered from the mirror alone.

Answers "which entries were added recently" without reading the source
log, by merging the fragments the mirror root points to.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from tree_mirror.config import Settings
from tree_mirror.connectors.store import ResourceStore
from tree_mirror.core.cursor import SyncCursor
from tree_mirror.core.relations import RelationIndex
from tree_mirror.core.translator import LocatorTranslator
from tree_mirror.errors import MalformedSource, NotBootstrapped, NotFound
from tree_mirror.model import Document, Literal, parse_timestamp
from tree_mirror.vocab import DCT_MODIFIED, TREE_MEMBER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecentMember:
    """A mirrored member and its creation time."""

    timestamp: datetime
    member_id: str


class MirrorReader:
    """
    Read-only access to a mirror.

    Example:
        reader = MirrorReader(settings, store)
        for member in await reader.recent_members(10):
            print(member.timestamp, member.member_id)
    """

    def __init__(self, settings: Settings, store: ResourceStore) -> None:
        translator = LocatorTranslator.from_settings(settings)
        self.store = store
        self.mirror_root = translator.mirror_root(settings.root_name)
        self.collection_id = f"{translator.source_root(settings.root_name)}#Collection"

    async def _root(self) -> Document:
        try:
            return await self.store.get(self.mirror_root)
        except NotFound as e:
            raise NotBootstrapped(
                f"No mirror exists at {self.mirror_root}", self.mirror_root
            ) from e

    async def recent_members(self, amount: int, start: int = 0) -> list[RecentMember]:
        """
        Members of the mirror, newest first.

        Args:
            amount: Number of members to return
            start: Number of newest members to skip

        Raises:
            NotBootstrapped: if the mirror root does not exist
        """
        root = await self._root()
        index = RelationIndex.from_document(root, self.mirror_root)

        fragments = await asyncio.gather(
            *(self._fragment(node) for node in index.nodes)
        )

        members: list[RecentMember] = []
        for fragment in fragments:
            if fragment is None:
                continue
            for member_id in fragment.objects(self.collection_id, TREE_MEMBER):
                if isinstance(member_id, Literal):
                    continue
                created = fragment.value(member_id, DCT_MODIFIED)
                if created is None:
                    raise MalformedSource(
                        f"Mirrored member has no timestamp: {member_id}", member_id
                    )
                members.append(RecentMember(parse_timestamp(created, member_id), member_id))

        logger.info(f"{len(members)} member(s) read from {self.mirror_root}")
        members.sort(key=lambda m: (m.timestamp, m.member_id), reverse=True)
        return members[start:start + amount]

    async def _fragment(self, node: str) -> Document | None:
        try:
            return await self.store.get(node)
        except NotFound:
            logger.warning(
                f"Fragment {node} is recorded but missing", extra={"locator": node}
            )
            return None

    async def status(self) -> dict[str, Any]:
        """Summary of cursor and relations for display."""
        root = await self._root()
        index = RelationIndex.from_document(root, self.mirror_root)
        cursor = SyncCursor(self.store, self.mirror_root).read(root)
        open_page = index.most_recent() if len(index) else None

        return {
            "root": self.mirror_root,
            "cursor": cursor.value,
            "relations": len(index),
            "open_page": open_page.node if open_page else None,
            "pages": [
                {"node": r.node, "value": r.value, "kind": r.kind}
                for r in sorted(index.relations, key=lambda r: r.value)
            ],
        }
