"""Resource stores and page sources for Tree Mirror."""

from tree_mirror.connectors.store import MemoryResourceStore, ResourceStore
from tree_mirror.connectors.http_store import HttpResourceStore
from tree_mirror.connectors.page_source import TreePageSource

__all__ = ["ResourceStore", "MemoryResourceStore", "HttpResourceStore", "TreePageSource"]
