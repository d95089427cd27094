"""
Resource Store - read/write primitives consumed by the mirror.

Defines the ResourceStore contract and an in-process implementation:
- get: fetch structured content, NotFound if absent
- put: create or fully replace
- patch: insert/delete triples on an existing resource
- create_child: append-create inside a container
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Iterable

from tree_mirror.errors import NotFound, WriteFailure
from tree_mirror.model import Document, Triple


class ResourceStore(ABC):
    """Contract for fetching and writing resources by locator."""

    @abstractmethod
    async def get(self, locator: str) -> Document:
        """Fetch a resource. Raises NotFound if absent."""

    @abstractmethod
    async def put(self, locator: str, content: Document) -> None:
        """Create or fully replace a resource."""

    @abstractmethod
    async def patch(
        self,
        locator: str,
        insertions: Iterable[Triple] = (),
        deletions: Iterable[Triple] = (),
    ) -> None:
        """Partially update an existing resource in one request."""

    @abstractmethod
    async def create_child(self, container: str, content: Document) -> str:
        """Create a new resource inside a container and return its locator."""

    async def exists(self, locator: str) -> bool:
        try:
            await self.get(locator)
        except NotFound:
            return False
        return True

    async def close(self) -> None:
        """Release any held resources."""

    async def __aenter__(self) -> "ResourceStore":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


class MemoryResourceStore(ResourceStore):
    """
    In-process resource store.

    Patches are conditional: deleting a triple that is not present is
    rejected, as is patching a resource that does not exist. Both
    raise WriteFailure without modifying the resource.

    Example:
        store = MemoryResourceStore()
        await store.put("https://example.org/a", Document())
        store.fail_writes_for.add("https://example.org/a")  # inject failures
    """

    def __init__(self, resources: dict[str, Document] | None = None) -> None:
        self.resources: dict[str, Document] = {
            locator: doc.copy() for locator, doc in (resources or {}).items()
        }
        self.fail_writes_for: set[str] = set()
        self.writes: list[tuple[str, str]] = []

    def _check_writable(self, locator: str) -> None:
        if locator in self.fail_writes_for:
            raise WriteFailure(f"Write rejected at {locator}", locator)

    async def get(self, locator: str) -> Document:
        doc = self.resources.get(locator)
        if doc is None:
            raise NotFound(f"No resource at {locator}", locator)
        return doc.copy()

    async def put(self, locator: str, content: Document) -> None:
        self._check_writable(locator)
        self.resources[locator] = content.copy()
        self.writes.append(("put", locator))

    async def patch(
        self,
        locator: str,
        insertions: Iterable[Triple] = (),
        deletions: Iterable[Triple] = (),
    ) -> None:
        self._check_writable(locator)
        doc = self.resources.get(locator)
        if doc is None:
            raise WriteFailure(f"Cannot patch missing resource {locator}", locator)

        deletions = list(deletions)
        missing = [t for t in deletions if t not in doc]
        if missing:
            raise WriteFailure(
                f"Patch at {locator} deletes {len(missing)} absent triple(s)",
                locator,
                status=409,
            )

        updated = doc.copy()
        for triple in deletions:
            updated.discard(triple)
        updated.update(insertions)
        self.resources[locator] = updated
        self.writes.append(("patch", locator))

    async def create_child(self, container: str, content: Document) -> str:
        if not container.endswith("/"):
            container = f"{container}/"
        self._check_writable(container)
        locator = f"{container}{uuid.uuid4()}"
        self.resources[locator] = content.copy()
        self.writes.append(("create", locator))
        return locator
