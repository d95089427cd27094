"""Tests for the HTTP resource store, using httpx.MockTransport."""

import json

import httpx
import pytest

from tree_mirror.config import HttpOptions, Settings
from tree_mirror.connectors.http_store import (
    PATCH_TYPE,
    HttpResourceStore,
    create_http_store,
)
from tree_mirror.errors import NotFound, SourceUnavailable, WriteFailure
from tree_mirror.model import Document, Literal, Triple
from tree_mirror.vocab import DCT_MODIFIED, LDP_CONTAINS, XSD_DATETIME

PAGE = "https://pod.example/log/1/"
MEMBER = "https://pod.example/log/1/a"
DOC = Document([
    Triple(PAGE, LDP_CONTAINS, MEMBER),
    Triple(MEMBER, DCT_MODIFIED, Literal("2024-01-01T00:00:00.000Z", XSD_DATETIME)),
])

FAST = HttpOptions(max_retries=3, retry_delay=0)


def make_store(handler, token: str = "") -> HttpResourceStore:
    return HttpResourceStore(
        api_token=token, options=FAST, transport=httpx.MockTransport(handler)
    )


class TestRead:
    """Tests for get."""

    @pytest.mark.asyncio
    async def test_get(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=DOC.to_json())

        async with make_store(handler, token="secret") as store:
            doc = await store.get(PAGE)

        assert doc == DOC
        assert seen[0].method == "GET"
        assert seen[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_anonymous(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=DOC.to_json())

        async with make_store(handler) as store:
            await store.get(PAGE)

        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_get_not_found(self) -> None:
        async with make_store(lambda r: httpx.Response(404)) as store:
            with pytest.raises(NotFound):
                await store.get(PAGE)
            assert not await store.exists(PAGE)

    @pytest.mark.asyncio
    async def test_get_server_error(self) -> None:
        async with make_store(lambda r: httpx.Response(500)) as store:
            with pytest.raises(SourceUnavailable, match="500"):
                await store.get(PAGE)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("refused", request=request)

        async with make_store(handler) as store:
            with pytest.raises(SourceUnavailable):
                await store.get(PAGE)
        assert calls == FAST.max_retries

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self) -> None:
        responses = iter([
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, text=DOC.to_json()),
        ])

        async with make_store(lambda r: next(responses)) as store:
            assert await store.get(PAGE) == DOC


class TestWrite:
    """Tests for put, patch and create_child."""

    @pytest.mark.asyncio
    async def test_put(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        async with make_store(handler) as store:
            await store.put(PAGE, DOC)

        assert seen[0].method == "PUT"
        assert Document.from_json(seen[0].content.decode()) == DOC

    @pytest.mark.asyncio
    async def test_patch_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(205)

        inserted = Triple(PAGE, LDP_CONTAINS, f"{PAGE}b")
        deleted = Triple(PAGE, LDP_CONTAINS, MEMBER)
        async with make_store(handler) as store:
            await store.patch(PAGE, insertions=[inserted], deletions=[deleted])

        request = seen[0]
        assert request.method == "PATCH"
        assert request.headers["Content-Type"] == PATCH_TYPE
        body = json.loads(request.content)
        assert body["insert"] == [{"s": PAGE, "p": LDP_CONTAINS, "o": {"@id": f"{PAGE}b"}}]
        assert body["delete"] == [{"s": PAGE, "p": LDP_CONTAINS, "o": {"@id": MEMBER}}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 409, 412, 500])
    async def test_rejected_write(self, status: int) -> None:
        async with make_store(lambda r: httpx.Response(status)) as store:
            with pytest.raises(WriteFailure) as exc:
                await store.put(PAGE, DOC)
        assert exc.value.status == status

    @pytest.mark.asyncio
    async def test_create_child(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            return httpx.Response(201, headers={"Location": "/log/1/new-entry"})

        async with make_store(handler) as store:
            created = await store.create_child(PAGE, DOC)

        assert created == "https://pod.example/log/1/new-entry"

    @pytest.mark.asyncio
    async def test_create_child_without_location(self) -> None:
        async with make_store(lambda r: httpx.Response(201)) as store:
            with pytest.raises(WriteFailure, match="Location"):
                await store.create_child(PAGE, DOC)


def test_create_http_store_from_settings() -> None:
    settings = Settings(api_token="token")
    settings.http.max_retries = 5

    store = create_http_store(settings)

    assert store.api_token == "token"
    assert store.options.max_retries == 5
