"""
Member Mirror - copies member identifiers and timestamps of a page.

Two modes:
- full: the fragment is replaced with every current member of the page
- filtered: only members created after a timestamp are inserted; existing
  fragment content is never removed or rewritten
"""

from __future__ import annotations

import logging
from datetime import datetime

from tree_mirror.connectors.store import ResourceStore
from tree_mirror.core.translator import LocatorTranslator
from tree_mirror.errors import MalformedSource
from tree_mirror.model import Document, Literal, Member, Triple, parse_timestamp
from tree_mirror.vocab import (
    DCT_MODIFIED,
    LDP_CONTAINS,
    RDF_TYPE,
    TREE_COLLECTION,
    TREE_MEMBER,
)

logger = logging.getLogger(__name__)


class MemberMirror:
    """
    Mirrors the members of source pages into mirror fragments.

    Example:
        mirror = MemberMirror(store, translator, collection_id)
        written = await mirror.mirror_full(page_locator)
        written = await mirror.mirror_after(open_page_locator, cursor)
    """

    def __init__(
        self,
        store: ResourceStore,
        translator: LocatorTranslator,
        collection_id: str,
    ) -> None:
        """
        Initialize member mirror.

        Args:
            store: Store used to read pages and write fragments
            translator: Source/mirror locator mapping
            collection_id: Subject of the membership records
        """
        self.store = store
        self.translator = translator
        self.collection_id = collection_id

    def extract_members(
        self,
        page_doc: Document,
        page_locator: str,
        after: datetime | None = None,
        boundary: datetime | None = None,
    ) -> list[Member]:
        """
        Read the members a page contains.

        Args:
            page_doc: Content of the source page
            page_locator: Locator of the source page
            after: Keep only members created strictly after this time
            boundary: Inclusive lower bound every member must respect

        Raises:
            MalformedSource: if a member has no creation timestamp or
                precedes the page boundary
        """
        members = []
        for member_id in page_doc.objects(None, LDP_CONTAINS):
            if isinstance(member_id, Literal):
                raise MalformedSource(f"Literal member in {page_locator}", page_locator)

            created = page_doc.value(member_id, DCT_MODIFIED)
            if created is None:
                raise MalformedSource(
                    f"Member has no {DCT_MODIFIED}: {member_id}", page_locator
                )
            created_at = parse_timestamp(created, page_locator)

            if boundary is not None and created_at < boundary:
                raise MalformedSource(
                    f"Member {member_id} ({created_at.isoformat()}) precedes "
                    f"page boundary {boundary.isoformat()}",
                    page_locator,
                )
            if after is not None and created_at <= after:
                continue
            members.append(Member(member_id, created_at, page_locator))
        return members

    def fragment_triples(self, members: list[Member], page_doc: Document) -> list[Triple]:
        """Membership record plus timestamp record per member."""
        triples = [Triple(self.collection_id, RDF_TYPE, TREE_COLLECTION)]
        for member in members:
            triples.append(Triple(self.collection_id, TREE_MEMBER, member.id))
            # Keep the literal exactly as the source wrote it
            triples.append(
                Triple(member.id, DCT_MODIFIED, page_doc.value(member.id, DCT_MODIFIED))
            )
        return triples

    async def mirror_full(
        self,
        page_locator: str,
        boundary: datetime | None = None,
    ) -> int:
        """Replace the fragment of a page with all of its current members."""
        page_doc = await self.store.get(page_locator)
        members = self.extract_members(page_doc, page_locator, boundary=boundary)
        fragment = self.translator.to_mirror(page_locator)

        await self.store.put(fragment, Document(self.fragment_triples(members, page_doc)))
        logger.info(f"{fragment} mirrored with {len(members)} member(s)")
        return len(members)

    async def mirror_after(
        self,
        page_locator: str,
        after: datetime,
        boundary: datetime | None = None,
    ) -> int:
        """Insert members created after `after` into the fragment of a page."""
        page_doc = await self.store.get(page_locator)
        members = self.extract_members(
            page_doc, page_locator, after=after, boundary=boundary
        )
        fragment = self.translator.to_mirror(page_locator)

        if not members:
            logger.info(f"{fragment} has no members after {after.isoformat()}")
            return 0

        await self.store.patch(fragment, insertions=self.fragment_triples(members, page_doc))
        logger.info(f"{fragment} was updated with {len(members)} member(s)")
        return len(members)
