"""Tests for reading recent members from the mirror."""

import pytest
import pytest_asyncio

from tree_mirror.core.reader import MirrorReader, RecentMember
from tree_mirror.errors import NotBootstrapped

from conftest import MIRROR_ROOT, at, fragment_of


@pytest.fixture
def reader(settings, store) -> MirrorReader:
    return MirrorReader(settings, store)


@pytest_asyncio.fixture
async def mirrored(engine, log, clock):
    """Two pages, five members, mirrored over two cycles."""
    first = log.add_page(at(0))
    for name, hours in (("a", 1), ("b", 2), ("c", 3)):
        log.add_member(first, name, at(hours))
    await engine.synchronize()

    second = log.add_page(at(7))
    log.add_member(second, "d", at(7.5))
    log.add_member(first, "late", at(6.5))
    clock.now = at(8)
    await engine.synchronize()
    return first, second


class TestRecentMembers:
    """Tests for MirrorReader.recent_members."""

    @pytest.mark.asyncio
    async def test_newest_first(self, reader, mirrored) -> None:
        first, second = mirrored

        members = await reader.recent_members(10)

        assert members == [
            RecentMember(at(7.5), f"{second}d"),
            RecentMember(at(6.5), f"{first}late"),
            RecentMember(at(3), f"{first}c"),
            RecentMember(at(2), f"{first}b"),
            RecentMember(at(1), f"{first}a"),
        ]

    @pytest.mark.asyncio
    async def test_window(self, reader, mirrored) -> None:
        first, _ = mirrored

        members = await reader.recent_members(2, start=2)

        assert [m.member_id for m in members] == [f"{first}c", f"{first}b"]

    @pytest.mark.asyncio
    async def test_window_past_end(self, reader, mirrored) -> None:
        assert await reader.recent_members(5, start=10) == []

    @pytest.mark.asyncio
    async def test_missing_fragment_is_skipped(self, reader, store, mirrored) -> None:
        first, second = mirrored
        del store.resources[fragment_of(first)]

        members = await reader.recent_members(10)

        assert [m.member_id for m in members] == [f"{second}d"]

    @pytest.mark.asyncio
    async def test_not_bootstrapped(self, reader) -> None:
        with pytest.raises(NotBootstrapped):
            await reader.recent_members(10)


class TestStatus:
    """Tests for MirrorReader.status."""

    @pytest.mark.asyncio
    async def test_status(self, reader, mirrored) -> None:
        first, second = mirrored

        summary = await reader.status()

        assert summary["root"] == MIRROR_ROOT
        assert summary["cursor"] == at(8)
        assert summary["relations"] == 2
        assert summary["open_page"] == fragment_of(second)
        assert [p["node"] for p in summary["pages"]] == [
            fragment_of(first),
            fragment_of(second),
        ]

    @pytest.mark.asyncio
    async def test_status_not_bootstrapped(self, reader) -> None:
        with pytest.raises(NotBootstrapped):
            await reader.status()
