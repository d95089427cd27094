"""
HTTP Resource Store.

Implements the ResourceStore contract against a resource server:
- GET/PUT of JSON documents
- PATCH with insert/delete lists applied atomically by the server
- POST to containers for append-create
- Rate limiting and connection-error retry at the transport level
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

from tree_mirror.config import HttpOptions, Settings
from tree_mirror.connectors.store import ResourceStore
from tree_mirror.errors import MirrorError, NotFound, SourceUnavailable, WriteFailure
from tree_mirror.model import Document, Triple, triples_to_list

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "application/json"
PATCH_TYPE = "application/json-patch+triples"


class HttpResourceStore(ResourceStore):
    """
    Resource store backed by HTTP.

    Example:
        async with HttpResourceStore(api_token="...") as store:
            doc = await store.get("https://example.org/announcements/root.ttl")
            await store.put("https://example.org/synced/root.ttl", doc)
    """

    def __init__(
        self,
        api_token: str = "",
        options: HttpOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize HTTP store.

        Args:
            api_token: Bearer token (empty = anonymous)
            options: Timeouts and retry settings
            transport: Optional httpx transport (used by tests)
        """
        self.api_token = api_token
        self.options = options or HttpOptions()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": DOCUMENT_TYPE}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._get_headers(),
                timeout=httpx.Timeout(
                    connect=self.options.connect_timeout,
                    read=self.options.read_timeout,
                    write=self.options.read_timeout,
                    pool=self.options.connect_timeout,
                ),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpResourceStore":
        return self

    async def _request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make a request, retrying rate limits and transport errors.

        Raises:
            httpx.TransportError: when every attempt failed to connect
        """
        client = await self._get_client()
        attempts = self.options.max_retries

        for attempt in range(attempts):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt < attempts - 1:
                    logger.debug(f"{method} {url} failed ({e}), retrying")
                    await asyncio.sleep(self.options.retry_delay * (attempt + 1))
                    continue
                raise

            if response.status_code == 429 and attempt < attempts - 1:
                retry_after = float(response.headers.get("Retry-After", "1"))
                logger.debug(f"{method} {url} rate limited, waiting {retry_after}s")
                await asyncio.sleep(retry_after)
                continue

            return response

        raise MirrorError(f"Max retries exceeded for {method} {url}", url)

    async def get(self, locator: str) -> Document:
        try:
            response = await self._request("GET", locator)
        except httpx.TransportError as e:
            raise SourceUnavailable(f"Connection error for {locator}: {e}", locator)

        if response.status_code == 404:
            raise NotFound(f"No resource at {locator}", locator)
        if response.status_code != 200:
            raise SourceUnavailable(
                f"Failed fetching {locator} | {response.status_code} {response.reason_phrase}",
                locator,
            )
        logger.debug(f"{locator} fetched")
        return Document.from_json(response.text)

    async def put(self, locator: str, content: Document) -> None:
        response = await self._write(
            "PUT",
            locator,
            content=content.to_json(),
            headers={"Content-Type": DOCUMENT_TYPE},
        )
        if response.status_code == 201:
            logger.debug(f"Created resource at {locator}")
        else:
            logger.debug(f"Updated contents at {locator}")

    async def patch(
        self,
        locator: str,
        insertions: Iterable[Triple] = (),
        deletions: Iterable[Triple] = (),
    ) -> None:
        body = {
            "insert": triples_to_list(insertions),
            "delete": triples_to_list(deletions),
        }
        await self._write(
            "PATCH",
            locator,
            json=body,
            headers={"Content-Type": PATCH_TYPE},
        )
        logger.debug(f"Patched {locator}")

    async def create_child(self, container: str, content: Document) -> str:
        response = await self._write(
            "POST",
            container,
            content=content.to_json(),
            headers={"Content-Type": DOCUMENT_TYPE},
        )
        location = response.headers.get("Location")
        if not location:
            raise WriteFailure(
                f"Server created a resource in {container} without Location",
                container,
                response.status_code,
            )
        created = str(response.url.join(location))
        logger.debug(f"Created resource at {created}")
        return created

    async def _write(self, method: str, locator: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._request(method, locator, **kwargs)
        except httpx.TransportError as e:
            raise WriteFailure(f"Connection error for {locator}: {e}", locator)

        if response.status_code not in (200, 201, 204, 205):
            raise WriteFailure(
                f"{method} rejected at {locator} | "
                f"{response.status_code} {response.reason_phrase}",
                locator,
                response.status_code,
            )
        return response


# Convenience function for creating a store from settings
def create_http_store(settings: Settings) -> HttpResourceStore:
    """Create an HttpResourceStore from settings."""
    return HttpResourceStore(
        api_token=settings.api_token.get_secret_value(),
        options=settings.http,
    )
