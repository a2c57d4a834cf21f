"""Tests for best-effort click counting."""

import asyncio

import pytest

from shortener.db.models import ShortLink
from shortener.services.background_tasks import increment_click_count_background


@pytest.mark.asyncio
async def test_click_is_recorded(store, session_maker):
    await store.create(ShortLink(code="hit001", target_url="https://example.com"))

    recorded = await increment_click_count_background("hit001", session_maker=session_maker, timeout=5)

    assert recorded
    assert (await store.get("hit001")).click_count == 1


@pytest.mark.asyncio
async def test_concurrent_clicks_are_all_counted(store, session_maker):
    await store.create(ShortLink(code="hit002", target_url="https://example.com"))

    results = await asyncio.gather(*(
        increment_click_count_background("hit002", session_maker=session_maker, timeout=30)
        for _ in range(15)
    ))

    assert all(results)
    assert (await store.get("hit002")).click_count == 15


@pytest.mark.asyncio
async def test_unknown_code_is_dropped_quietly(session_maker):
    assert not await increment_click_count_background("nope01", session_maker=session_maker, timeout=5)


class HangingSession:

    async def __aenter__(self):
        await asyncio.sleep(10)

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.asyncio
async def test_slow_store_is_abandoned():
    recorded = await increment_click_count_background(
        "slow01",
        session_maker=lambda: HangingSession(),
        timeout=0.05,
    )
    assert not recorded


class BrokenSession:

    async def __aenter__(self):
        raise ConnectionError("database unreachable")

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.asyncio
async def test_storage_failure_is_swallowed():
    recorded = await increment_click_count_background(
        "down01",
        session_maker=lambda: BrokenSession(),
        timeout=1,
    )
    assert not recorded
