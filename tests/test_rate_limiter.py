"""Tests for shorten-path admission control."""

import asyncio
from datetime import datetime, timezone

import pytest
from limits.aio.storage import MemoryStorage
from limits.errors import StorageError

from shortener.services.rate_limiter import RateLimiter


def make_limiter(limit=3, window_seconds=60):
    return RateLimiter(limit=limit, window_seconds=window_seconds, storage=MemoryStorage())


@pytest.mark.asyncio
async def test_limit_plus_one_requests():
    limiter = make_limiter(limit=3)

    decisions = [await limiter.admit("ip:1.2.3.4") for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions[:3]] == [2, 1, 0]


@pytest.mark.asyncio
async def test_denial_reports_window_reset():
    limiter = make_limiter(limit=1, window_seconds=60)
    before = datetime.now(timezone.utc)

    await limiter.admit("ip:1.2.3.4")
    denied = await limiter.admit("ip:1.2.3.4")

    assert not denied.allowed
    assert denied.remaining == 0
    seconds_left = (denied.reset_at - before).total_seconds()
    assert 0 < seconds_left <= 61


@pytest.mark.asyncio
async def test_new_window_admits_again():
    limiter = make_limiter(limit=2, window_seconds=1)

    assert (await limiter.admit("ip:5.6.7.8")).allowed
    assert (await limiter.admit("ip:5.6.7.8")).allowed
    assert not (await limiter.admit("ip:5.6.7.8")).allowed

    await asyncio.sleep(1.2)

    assert (await limiter.admit("ip:5.6.7.8")).allowed


@pytest.mark.asyncio
async def test_clients_are_counted_separately():
    limiter = make_limiter(limit=1)

    assert (await limiter.admit("ip:10.0.0.1")).allowed
    assert not (await limiter.admit("ip:10.0.0.1")).allowed
    assert (await limiter.admit("ip:10.0.0.2")).allowed
    assert (await limiter.admit("user:alice")).allowed


@pytest.mark.asyncio
async def test_concurrent_requests_admit_exactly_limit():
    limiter = make_limiter(limit=10)

    decisions = await asyncio.gather(*(limiter.admit("ip:9.9.9.9") for _ in range(25)))

    assert sum(d.allowed for d in decisions) == 10
    # Snapshots read after concurrent hits stay within the quota
    assert all(0 <= d.remaining <= 9 for d in decisions)
    assert all(d.remaining == 0 for d in decisions if not d.allowed)


@pytest.mark.asyncio
async def test_reset_clears_the_window():
    limiter = make_limiter(limit=1)

    await limiter.admit("ip:1.1.1.1")
    assert not (await limiter.admit("ip:1.1.1.1")).allowed

    await limiter.reset("ip:1.1.1.1")
    assert (await limiter.admit("ip:1.1.1.1")).allowed


class UnavailableStrategy:

    async def hit(self, *args):
        raise StorageError(ConnectionError("redis down"))

    async def get_window_stats(self, *args):
        raise StorageError(ConnectionError("redis down"))


@pytest.mark.asyncio
async def test_storage_outage_admits_request():
    limiter = make_limiter(limit=5)
    limiter.strategy = UnavailableStrategy()

    decision = await limiter.admit("ip:1.2.3.4")

    assert decision.allowed
    assert decision.remaining == 4
