"""Tests for the Reaper background sweep."""

from __future__ import annotations

import asyncio
import sqlite3
from unittest.mock import AsyncMock

import pytest

from vault.shares.reaper import Reaper
from vault.shares.types import FileUpload, ShareOptions


@pytest.fixture
def reaper(share_repo, coordinator, session_store, clock) -> Reaper:
    return Reaper(share_repo, coordinator, session_store, clock, interval_seconds=0.01)


class TestTick:
    async def test_removes_expired_share(self, registry, reaper, clock):
        created = await registry.create_text("hello", ShareOptions())
        clock.advance(601)

        report = await reaper.tick()

        assert report.shares_removed == 1
        assert await registry.find(created.share.share_id) is None

    async def test_leaves_live_shares(self, registry, reaper, clock):
        created = await registry.create_text("hello", ShareOptions())
        clock.advance(599)

        report = await reaper.tick()

        assert report.shares_removed == 0
        assert await registry.find(created.share.share_id) is not None

    async def test_ignores_view_budget(self, registry, coordinator, reaper):
        created = await registry.create_text("hello", ShareOptions(maxViews=1))
        await coordinator.consume(created.share.share_id, None, None)

        await reaper.tick()

        assert await registry.find(created.share.share_id) is not None

    async def test_removes_blob_of_expired_file_share(self, registry, reaper, blobs, clock):
        created = await registry.create_file(
            FileUpload(data=b"bytes", filename="a.bin", content_type="application/octet-stream"),
            ShareOptions(),
        )
        clock.advance(700)

        await reaper.tick()

        assert not await blobs.exists(created.share.file.storage_key)

    async def test_one_failure_does_not_abort_sweep(self, registry, reaper, share_repo, clock):
        first = await registry.create_text("one", ShareOptions())
        second = await registry.create_text("two", ShareOptions())
        clock.advance(601)
        original = share_repo.delete_share

        async def flaky_delete(share_id):
            if share_id == first.share.share_id:
                raise sqlite3.OperationalError("database is locked")
            return await original(share_id)

        share_repo.delete_share = flaky_delete

        report = await reaper.tick()

        assert report.shares_removed == 1
        assert report.shares_failed == 1
        assert await registry.find(second.share.share_id) is None

    async def test_sweeps_expired_sessions(self, reaper, session_store, clock):
        issued = await session_store.issue("u1")
        clock.advance(3601)

        report = await reaper.tick()

        assert report.sessions_removed == 1
        assert await session_store.resolve(issued.token) is None

    async def test_session_sweep_failure_is_contained(self, registry, reaper, session_store, clock):
        await registry.create_text("hello", ShareOptions())
        clock.advance(601)
        session_store.sweep = AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error"))

        report = await reaper.tick()

        assert report.shares_removed == 1
        assert report.sessions_removed == 0


class TestLoop:
    async def test_start_and_stop(self, reaper):
        reaper.start()
        assert reaper.running

        await reaper.stop()
        assert not reaper.running

    async def test_start_is_idempotent(self, reaper):
        reaper.start()
        task = reaper._task
        reaper.start()
        assert reaper._task is task
        await reaper.stop()

    async def test_stop_without_start(self, reaper):
        await reaper.stop()
        assert not reaper.running

    async def test_loop_sweeps_periodically(self, registry, reaper, clock):
        created = await registry.create_text("hello", ShareOptions())
        clock.advance(601)

        reaper.start()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if await registry.find(created.share.share_id) is None:
                break
        await reaper.stop()

        assert await registry.find(created.share.share_id) is None

    async def test_loop_survives_failed_tick(self, reaper, share_repo):
        share_repo.list_expired = AsyncMock(side_effect=[RuntimeError("boom"), []])

        reaper.start()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if share_repo.list_expired.await_count >= 2:
                break
        assert reaper.running
        await reaper.stop()

        assert share_repo.list_expired.await_count >= 2
