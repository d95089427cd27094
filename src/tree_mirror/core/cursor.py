"""
Sync Cursor - the timestamp up to which the mirror is complete.

The cursor is a single dct:issued record on the mirror root. It is
replaced with one conditional patch that deletes the previous record and
inserts the new one in the same request, so a failed commit leaves the
previous cursor in place rather than two records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from tree_mirror.connectors.store import ResourceStore
from tree_mirror.errors import MissingCursor
from tree_mirror.model import Document, Triple, parse_timestamp, timestamp_literal
from tree_mirror.vocab import DCT_ISSUED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CursorState:
    """Cursor value together with the record it was read from."""

    value: datetime
    record: Triple


class SyncCursor:
    """
    Reads and replaces the cursor of a mirror root.

    Example:
        cursor = SyncCursor(store, mirror_root)
        state = cursor.read(root_doc)
        ...
        await cursor.commit(state, utc_now(), insertions=new_relations)
    """

    def __init__(self, store: ResourceStore, root_locator: str) -> None:
        self.store = store
        self.root_locator = root_locator

    def record(self, value: datetime) -> Triple:
        return Triple(self.root_locator, DCT_ISSUED, timestamp_literal(value))

    def read(self, root_doc: Document) -> CursorState:
        """
        Read the single cursor record.

        Raises:
            MissingCursor: if zero or several cursor records exist
        """
        records = root_doc.triples(self.root_locator, DCT_ISSUED)
        if len(records) != 1:
            raise MissingCursor(self.root_locator, len(records))
        record = records[0]
        return CursorState(parse_timestamp(record.object, self.root_locator), record)

    async def commit(
        self,
        previous: CursorState,
        new_value: datetime,
        insertions: Iterable[Triple] = (),
        advance: bool = True,
    ) -> CursorState:
        """
        Write pending root records and replace the cursor in one patch.

        The cursor never moves backwards. With advance=False only the
        insertions are written and the previous cursor is kept.

        Returns:
            The cursor state now stored in the mirror root
        """
        insertions = list(insertions)
        if not advance or new_value <= previous.value:
            if insertions:
                await self.store.patch(self.root_locator, insertions=insertions)
            if advance:
                logger.info(
                    f"Cursor at {self.root_locator} kept at "
                    f"{previous.value.isoformat()} (clock did not advance)"
                )
            return previous

        record = self.record(new_value)
        await self.store.patch(
            self.root_locator,
            insertions=[*insertions, record],
            deletions=[previous.record],
        )
        logger.info(f"Cursor updated at {self.root_locator} to {new_value.isoformat()}")
        return CursorState(parse_timestamp(record.object), record)
