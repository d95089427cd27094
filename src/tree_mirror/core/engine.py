"""
Sync Engine - Main orchestration for mirror synchronization.

Coordinates all components to keep the mirror of a source log current:
- Page source for enumerating the source root and its pages
- Locator translator for source/mirror locations
- Relation index for pages already known to the mirror
- Member mirror for copying member identifiers and timestamps
- Sync cursor for the point up to which the mirror is complete

A cycle either bootstraps a missing mirror or increments an existing one.
Per-page failures do not abort a cycle; they are reported in SyncStats and
repaired by later cycles:
- a new page is only recorded in the mirror root once its fragment was
  written, so a failed page is discovered again next cycle
- if the open page could not be updated, the cursor is not advanced, so
  the next cycle filters the same time range again
- while the open page lags, new pages with a later boundary are not
  recorded either, so it stays the open page until its update lands
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from tree_mirror.config import Settings
from tree_mirror.connectors.page_source import TreePageSource
from tree_mirror.connectors.store import ResourceStore
from tree_mirror.core.cursor import SyncCursor
from tree_mirror.core.members import MemberMirror
from tree_mirror.core.relations import RelationIndex, relation_triples
from tree_mirror.core.translator import LocatorTranslator
from tree_mirror.errors import (
    ConfigurationError,
    MalformedSource,
    NotFound,
    SourceUnavailable,
    WriteFailure,
)
from tree_mirror.model import (
    Document,
    PageEvent,
    Relation,
    StreamEnd,
    Triple,
    utc_now,
)
from tree_mirror.vocab import (
    RDF_TYPE,
    TREE_COLLECTION,
    TREE_NODE_TYPE,
    TREE_VIEW,
)

logger = logging.getLogger(__name__)

# Failures confined to one page
PAGE_ERRORS = (WriteFailure, NotFound, SourceUnavailable)


@dataclass
class SyncStats:
    """Statistics for one sync cycle."""

    mode: str = ""  # bootstrap or incremental
    pages_discovered: int = 0
    pages_mirrored: int = 0
    pages_failed: int = 0
    members_mirrored: int = 0
    relations_added: int = 0
    cursor: datetime | None = None
    cursor_committed: bool = False
    start_time: float = 0.0
    end_time: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
        if self.start_time:
            return time.time() - self.start_time
        return 0.0

    @property
    def members_per_second(self) -> float:
        """Processing rate."""
        duration = self.duration_seconds
        if duration > 0:
            return self.members_mirrored / duration
        return 0.0

    @property
    def complete(self) -> bool:
        """True when no page failed during the cycle."""
        return self.pages_failed == 0


# Progress callback type
ProgressCallback = Callable[[SyncStats], None]


class SyncEngine:
    """
    Main sync engine coordinating all operations.

    Concurrent synchronize() calls against the same mirror are not safe;
    callers must run one cycle at a time per mirror (run_forever does).

    Example:
        async with create_http_store(settings) as store:
            engine = SyncEngine(settings, store)
            stats = await engine.synchronize(
                on_progress=lambda s: print(f"{s.pages_mirrored} pages")
            )
    """

    def __init__(
        self,
        settings: Settings,
        store: ResourceStore,
        source: TreePageSource | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize sync engine.

        Args:
            settings: Application settings
            store: Store holding both the source log and the mirror
            source: Page source (defaults to walking `store`)
            clock: Source of the current time for new cursors
        """
        self.settings = settings
        self.store = store
        self.source = source or TreePageSource(store)
        self.clock = clock
        self.translator = LocatorTranslator.from_settings(settings)

        self.source_root = self.translator.source_root(settings.root_name)
        self.mirror_root = self.translator.mirror_root(settings.root_name)
        self.collection_id = f"{self.source_root}#Collection"

        self.members = MemberMirror(store, self.translator, self.collection_id)
        self.cursor = SyncCursor(store, self.mirror_root)

    async def synchronize(self, on_progress: ProgressCallback | None = None) -> SyncStats:
        """
        Run one sync cycle.

        Returns once the source stream has ended and the mirror root was
        written, regardless of per-page failures (see SyncStats.errors).

        Raises:
            SourceUnavailable: if the source root cannot be read
            MalformedSource: if the source or mirror root is malformed
            MissingCursor: if the mirror root does not hold exactly one cursor
            WriteFailure: if the mirror root itself cannot be written
        """
        stats = SyncStats()
        stats.start_time = time.time()

        try:
            root_doc: Document | None = await self.store.get(self.mirror_root)
        except NotFound:
            root_doc = None

        if root_doc is None:
            stats.mode = "bootstrap"
            logger.info(f"No mirror at {self.mirror_root}, bootstrapping")
            await self._bootstrap(stats, on_progress)
        else:
            stats.mode = "incremental"
            logger.info(f"Mirror found at {self.mirror_root}, synchronizing")
            await self._increment(root_doc, stats, on_progress)

        stats.end_time = time.time()
        return stats

    async def run_forever(
        self,
        interval: float,
        cycles: int | None = None,
        on_cycle: Callable[[SyncStats], Any] | None = None,
    ) -> int:
        """
        Run cycles one after another, sleeping `interval` seconds in between.

        Returns:
            Number of cycles run (only returns when `cycles` is set)
        """
        done = 0
        while cycles is None or done < cycles:
            if done:
                await asyncio.sleep(interval)
            stats = await self.synchronize()
            done += 1
            if on_cycle:
                on_cycle(stats)
        return done

    # =========================================================================
    # Bootstrap
    # =========================================================================

    async def _bootstrap(
        self,
        stats: SyncStats,
        on_progress: ProgressCallback | None,
    ) -> None:
        cursor_value = self.clock()
        discovered: dict[str, Relation] = {}

        async def on_root(relations: list[Relation]) -> None:
            if not relations:
                raise MalformedSource(
                    f"Source root {self.source_root} has no relations",
                    self.source_root,
                )
            for relation in relations:
                discovered[relation.node] = self._translate(relation)
            stats.pages_discovered = len(discovered)

        def plan(locator: str) -> Awaitable[bool] | None:
            relation = discovered.get(locator)
            if relation is None:
                return None
            return self._mirror_page(locator, None, relation.value, stats, on_progress)

        results = await self._walk(on_root, plan)

        mirrored = [discovered[loc] for loc, ok in results.items() if ok]
        if not mirrored:
            stats.errors.append("No page could be mirrored, mirror root not created")
            logger.error(
                f"No page could be mirrored, {self.mirror_root} not created; "
                f"the next cycle bootstraps again"
            )
            return

        root = Document(self._root_header())
        for relation in mirrored:
            root.update(relation_triples(self.mirror_root, relation))
        root.add(self.cursor.record(cursor_value))
        await self.store.put(self.mirror_root, root)

        stats.relations_added = len(mirrored)
        stats.cursor = cursor_value
        stats.cursor_committed = True
        logger.info(
            f"Created mirror root at {self.mirror_root} with "
            f"{len(mirrored)} relation(s)"
        )

    def _root_header(self) -> list[Triple]:
        collection = f"{self.mirror_root}#Collection"
        return [
            Triple(collection, RDF_TYPE, TREE_COLLECTION),
            Triple(collection, TREE_VIEW, self.mirror_root),
            Triple(self.mirror_root, RDF_TYPE, TREE_NODE_TYPE),
        ]

    # =========================================================================
    # Incremental
    # =========================================================================

    async def _increment(
        self,
        root_doc: Document,
        stats: SyncStats,
        on_progress: ProgressCallback | None,
    ) -> None:
        index = RelationIndex.from_document(root_doc, self.mirror_root)
        state = self.cursor.read(root_doc)
        open_page = index.most_recent()
        now = self.clock()
        new: dict[str, Relation] = {}
        open_locator: str | None = None

        async def on_root(relations: list[Relation]) -> None:
            for relation in relations:
                mirrored = self._translate(relation)
                if not index.contains(mirrored.node):
                    new[relation.node] = mirrored
            stats.pages_discovered = len(new)
            logger.info(f"{len(new)} new page(s) in {self.source_root}")

        def plan(locator: str) -> Awaitable[bool] | None:
            nonlocal open_locator
            if locator in new:
                return self._mirror_page(
                    locator, None, new[locator].value, stats, on_progress
                )
            try:
                fragment = self.translator.to_mirror(locator)
            except ConfigurationError:
                return None
            if fragment == open_page.node:
                open_locator = locator
                return self._mirror_page(
                    locator, state.value, open_page.value, stats, on_progress
                )
            logger.debug(f"{locator} is closed, skipped")
            return None

        results = await self._walk(on_root, plan)

        added = [new[loc] for loc, ok in results.items() if ok and loc in new]

        advance = open_locator is None or results.get(open_locator, False)
        if not advance:
            stats.errors.append(
                f"Open page {open_page.node} was not updated, cursor kept"
            )
            logger.warning(
                f"Open page {open_page.node} was not updated, cursor kept at "
                f"{state.value.isoformat()}"
            )
            # The failed page must stay the open page until its update lands
            held = [r for r in added if r.value > open_page.value]
            for relation in held:
                logger.info(f"{relation.node} not recorded while {open_page.node} lags")
            added = [r for r in added if r.value <= open_page.value]

        insertions: list[Triple] = []
        for relation in added:
            insertions.extend(relation_triples(self.mirror_root, relation))

        committed = await self.cursor.commit(state, now, insertions, advance=advance)
        stats.relations_added = len(added)
        stats.cursor = committed.value
        stats.cursor_committed = committed != state

    # =========================================================================
    # Shared helpers
    # =========================================================================

    async def _walk(
        self,
        on_root: Callable[[list[Relation]], Awaitable[None]],
        plan: Callable[[str], Awaitable[bool] | None],
    ) -> dict[str, bool]:
        """
        Drive the page source to its end and run the planned page work.

        Page work starts as soon as a page is discovered and runs
        concurrently (bounded by sync.max_concurrency). Returns whether
        each planned page succeeded, once all of them finished.
        """
        semaphore = asyncio.Semaphore(self.settings.sync.max_concurrency)
        tasks: dict[str, asyncio.Task[bool]] = {}
        root_seen = False
        ended = False

        async def bounded(work: Awaitable[bool]) -> bool:
            async with semaphore:
                return await work

        stream = self.source.open(self.source_root, self.settings.sync.poll_interval)
        try:
            async with aclosing(stream):
                async for event in stream:
                    if isinstance(event, StreamEnd):
                        ended = True
                        break
                    if event.is_root:
                        root_seen = True
                        await on_root(event.relations)
                        continue
                    if not root_seen:
                        raise MalformedSource(
                            f"Page {event.locator} arrived before the source root",
                            event.locator,
                        )
                    if event.locator in tasks:
                        continue
                    work = plan(event.locator)
                    if work is None:
                        logger.debug(f"Ignoring {event.locator}")
                        continue
                    tasks[event.locator] = asyncio.create_task(bounded(work))

            if not ended:
                raise SourceUnavailable(
                    f"Page stream of {self.source_root} closed without end signal",
                    self.source_root,
                )
            if not root_seen:
                raise MalformedSource(
                    f"Page stream of {self.source_root} ended without a root",
                    self.source_root,
                )

            outcomes = await asyncio.gather(*tasks.values())
            return dict(zip(tasks.keys(), outcomes))
        finally:
            pending = [t for t in tasks.values() if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _mirror_page(
        self,
        locator: str,
        after: datetime | None,
        boundary: datetime,
        stats: SyncStats,
        on_progress: ProgressCallback | None,
    ) -> bool:
        """Mirror one page; page-level failures are logged and reported."""
        try:
            if after is None:
                written = await self.members.mirror_full(locator, boundary)
            else:
                written = await self.members.mirror_after(locator, after, boundary)
        except PAGE_ERRORS as e:
            stats.pages_failed += 1
            stats.errors.append(f"{locator}: {e}")
            logger.error(
                f"Could not update part of collection for {locator}: {e}",
                extra={"locator": locator},
            )
            ok = False
        else:
            stats.pages_mirrored += 1
            stats.members_mirrored += written
            ok = True

        if on_progress:
            on_progress(stats)
        return ok

    def _translate(self, relation: Relation) -> Relation:
        """Source relation -> the relation recorded in the mirror."""
        try:
            node = self.translator.to_mirror(relation.node)
        except ConfigurationError as e:
            raise MalformedSource(
                f"Relation points outside the source log: {e}", relation.node
            ) from e
        return Relation(node=node, kind=relation.kind, path=relation.path, value=relation.value)
