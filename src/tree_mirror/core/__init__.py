"""Synchronization core for Tree Mirror."""

from tree_mirror.core.engine import SyncEngine, SyncStats
from tree_mirror.core.cursor import SyncCursor
from tree_mirror.core.members import MemberMirror
from tree_mirror.core.reader import MirrorReader
from tree_mirror.core.relations import RelationIndex
from tree_mirror.core.translator import LocatorTranslator

__all__ = [
    "SyncEngine",
    "SyncStats",
    "SyncCursor",
    "MemberMirror",
    "MirrorReader",
    "RelationIndex",
    "LocatorTranslator",
]
