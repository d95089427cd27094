"""Shared fixtures: an in-memory source log and mirror."""

from datetime import datetime, timedelta, timezone

import pytest

from tree_mirror.config import Settings
from tree_mirror.connectors.store import MemoryResourceStore
from tree_mirror.core.engine import SyncEngine
from tree_mirror.model import Document, Triple, timestamp_literal
from tree_mirror.vocab import (
    DCT_MODIFIED,
    GREATER_THAN_OR_EQUAL,
    LDP_CONTAINS,
    RDF_TYPE,
    TREE_NODE,
    TREE_PATH,
    TREE_RELATION,
    TREE_VALUE,
)

SOURCE = "https://pod.example/announcements/"
MIRROR = "https://pod.example/synced/"
SOURCE_ROOT = f"{SOURCE}root.ttl"
MIRROR_ROOT = f"{MIRROR}root.ttl"
COLLECTION = f"{SOURCE_ROOT}#Collection"

T_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(hours: float) -> datetime:
    """A point in time relative to the start of the test log."""
    return T_START + timedelta(hours=hours)


class SourceLog:
    """Builds a time-partitioned source log inside a MemoryResourceStore."""

    def __init__(self, store: MemoryResourceStore, prefix: str = SOURCE) -> None:
        self.store = store
        self.prefix = prefix
        self.root = f"{prefix}root.ttl"
        store.resources.setdefault(self.root, Document())

    def add_page(self, boundary: datetime, name: str | None = None) -> str:
        """Add a page named after its boundary (epoch ms) unless a name is given."""
        name = name or str(int(boundary.timestamp() * 1000))
        page = f"{self.prefix}{name}/"
        rid = f"{self.root}#rel-{name}"
        root = self.store.resources[self.root]
        root.update([
            Triple(self.root, TREE_RELATION, rid),
            Triple(rid, RDF_TYPE, GREATER_THAN_OR_EQUAL),
            Triple(rid, TREE_NODE, page),
            Triple(rid, TREE_PATH, DCT_MODIFIED),
            Triple(rid, TREE_VALUE, timestamp_literal(boundary)),
        ])
        self.store.resources.setdefault(page, Document())
        return page

    def add_member(self, page: str, name: str, created_at: datetime | None) -> str:
        member = f"{page}{name}"
        doc = self.store.resources[page]
        doc.add(Triple(page, LDP_CONTAINS, member))
        if created_at is not None:
            doc.add(Triple(member, DCT_MODIFIED, timestamp_literal(created_at)))
        return member


class Clock:
    """Settable clock for deterministic cursors."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def fragment_of(page: str) -> str:
    return f"{MIRROR}{page[len(SOURCE):-1]}"


@pytest.fixture
def settings() -> Settings:
    return Settings(source_prefix=SOURCE, mirror_prefix=MIRROR)


@pytest.fixture
def store() -> MemoryResourceStore:
    return MemoryResourceStore()


@pytest.fixture
def log(store: MemoryResourceStore) -> SourceLog:
    return SourceLog(store)


@pytest.fixture
def clock() -> Clock:
    return Clock(at(6))


@pytest.fixture
def engine(settings: Settings, store: MemoryResourceStore, clock: Clock) -> SyncEngine:
    return SyncEngine(settings, store, clock=clock)
