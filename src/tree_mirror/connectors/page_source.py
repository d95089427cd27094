"""
Page Source - pull-based enumeration of a paginated source log.

Walks a root resource and the pages its relations point to, yielding
one event per resource followed by a terminal StreamEnd:

    async for event in TreePageSource(store).open(root, poll_interval=1.0):
        if isinstance(event, StreamEnd):
            break
        ...
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import AsyncIterator

from tree_mirror.connectors.store import ResourceStore
from tree_mirror.errors import MalformedSource, MirrorError, SourceUnavailable
from tree_mirror.model import PageEvent, Relation, SourceEvent, StreamEnd, relations_of

logger = logging.getLogger(__name__)


class TreePageSource:
    """
    Breadth-first page enumeration over a ResourceStore.

    The root event always comes first. Every page is emitted once, even
    when several relations point to it. A page that cannot be fetched is
    still emitted (without relations of its own) so the consumer decides
    how to handle it.
    """

    def __init__(self, store: ResourceStore) -> None:
        self.store = store

    async def open(
        self,
        root_locator: str,
        poll_interval: float = 0.0,
    ) -> AsyncIterator[SourceEvent]:
        """
        Stream root and page events.

        Args:
            root_locator: Locator of the source root
            poll_interval: Seconds to wait between page fetches

        Raises:
            SourceUnavailable: if the root cannot be fetched
            MalformedSource: if a relation is incomplete
        """
        try:
            root_doc = await self.store.get(root_locator)
        except MalformedSource:
            raise
        except MirrorError as e:
            raise SourceUnavailable(
                f"Source root does not exist at {root_locator}: {e}", root_locator
            ) from e

        root_relations = relations_of(root_doc, root_locator)
        logger.debug(f"{root_locator} lists {len(root_relations)} relation(s)")
        yield PageEvent(root_locator, root_relations, is_root=True)

        seen = {root_locator}
        queue: deque[Relation] = deque(root_relations)
        pages = 0

        while queue:
            relation = queue.popleft()
            if relation.node in seen:
                continue
            seen.add(relation.node)

            if poll_interval and pages:
                await asyncio.sleep(poll_interval)

            relations: list[Relation] = []
            try:
                page_doc = await self.store.get(relation.node)
            except MalformedSource:
                raise
            except MirrorError as e:
                logger.warning(
                    f"Could not read page {relation.node}: {e}",
                    extra={"locator": relation.node},
                )
            else:
                relations = relations_of(page_doc, relation.node)
                queue.extend(relations)

            pages += 1
            yield PageEvent(relation.node, relations)

        logger.info(f"Source {root_locator} has no more pages ({pages} read)")
        yield StreamEnd(pages=pages)
