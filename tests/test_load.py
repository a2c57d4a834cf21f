"""
Load Testing for URL Shortener Service

Runs against an already running instance and reports, per load level:
- Actual request rate achieved
- Response times (p50, p95, p99)
- Error rate, with 429 answers from the shorten limiter counted separately

Usage:
    LOAD_TEST_BASE_URL=http://localhost:8000 pytest tests/test_load.py -m load -v -s
"""

import asyncio
import os
import statistics
import time
from typing import List, Tuple

import httpx
import pytest

BASE_URL = os.getenv("LOAD_TEST_BASE_URL")
TEST_DURATION = 5  # seconds per load level
REDIRECT_RPS_LEVELS = [10, 50, 100, 200, 500]
SHORTEN_RPS_LEVELS = [5, 20, 50]

pytestmark = [
    pytest.mark.load,
    pytest.mark.skipif(not BASE_URL, reason="LOAD_TEST_BASE_URL is not set"),
]


class LoadTestResults:
    """Container for one load level's results."""

    def __init__(self, rps: int):
        self.rps = rps
        self.total_requests = 0
        self.successful_requests = 0
        self.throttled_requests = 0
        self.failed_requests = 0
        self.response_times: List[float] = []
        self.errors: List[str] = []
        self.start_time: float = 0
        self.end_time: float = 0

    def record(self, status_code: int, response_time: float, error: str) -> None:
        self.total_requests += 1
        if status_code == 429:
            self.throttled_requests += 1
        elif error:
            self.failed_requests += 1
            self.errors.append(error)
        else:
            self.successful_requests += 1
            self.response_times.append(response_time)

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return (self.failed_requests / self.total_requests) * 100

    def percentile(self, fraction: float) -> float:
        if not self.response_times:
            return 0.0
        sorted_times = sorted(self.response_times)
        index = min(int(len(sorted_times) * fraction), len(sorted_times) - 1)
        return sorted_times[index]

    @property
    def actual_rps(self) -> float:
        duration = self.end_time - self.start_time
        if duration == 0:
            return 0.0
        return self.total_requests / duration

    def __str__(self) -> str:
        p50 = statistics.median(self.response_times) if self.response_times else 0.0
        return (
            f"RPS: {self.rps} (actual {self.actual_rps:.1f}) | "
            f"Total: {self.total_requests} | "
            f"Throttled: {self.throttled_requests} | "
            f"Failed: {self.failed_requests} ({self.error_rate:.1f}%) | "
            f"P50: {p50:.2f}ms | P95: {self.percentile(0.95):.2f}ms | "
            f"P99: {self.percentile(0.99):.2f}ms"
        )


async def make_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs
) -> Tuple[int, float, str]:
    """
    Make a single HTTP request and measure response time.

    Returns:
        Tuple of (status_code, response_time_ms, error_message)
    """
    start_time = time.perf_counter()
    try:
        response = await client.request(method, url, timeout=10.0, **kwargs)
    except httpx.HTTPError as e:
        return 0, (time.perf_counter() - start_time) * 1000, str(e)

    response_time = (time.perf_counter() - start_time) * 1000
    error = "" if 200 <= response.status_code < 400 else f"HTTP {response.status_code}"
    return response.status_code, response_time, error


async def worker(client, method, url, requests_per_second, duration, results, make_body=None):
    delay = 1.0 / requests_per_second if requests_per_second > 0 else 0
    end_time = time.perf_counter() + duration

    while time.perf_counter() < end_time:
        kwargs = {"json": make_body()} if make_body else {}
        status_code, response_time, error = await make_request(client, method, url, **kwargs)
        results.record(status_code, response_time, error)
        if delay > 0:
            await asyncio.sleep(delay)


async def run_load_test(method, url, target_rps, make_body=None, max_workers=100) -> LoadTestResults:
    num_workers = min(target_rps, max_workers)
    results = LoadTestResults(target_rps)
    results.start_time = time.perf_counter()

    # Redirects are measured, not followed
    async with httpx.AsyncClient(follow_redirects=False) as client:
        await asyncio.gather(*[
            worker(client, method, url, target_rps / num_workers, TEST_DURATION, results, make_body)
            for _ in range(num_workers)
        ])

    results.end_time = time.perf_counter()
    return results


@pytest.mark.asyncio
async def test_health_check():
    async with httpx.AsyncClient() as client:
        status_code, response_time, error = await make_request(client, "GET", f"{BASE_URL}/health")
    assert status_code == 200, f"Health check failed: {error}"
    print(f"\nHealth check passed ({response_time:.2f}ms)")


@pytest.mark.asyncio
async def test_load_redirect_endpoint():
    """Ramp up GET /{code} until the error rate exceeds 10%."""
    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{BASE_URL}/shorten",
            json={"url": f"https://example.com/loadtest/{time.time()}"},
            timeout=10.0,
        )
    assert response.status_code == 200, f"Could not create test short URL: {response.status_code}"
    redirect_url = f"{BASE_URL}/{response.json()['code']}"

    consistent_rate = None
    for target_rps in REDIRECT_RPS_LEVELS:
        results = await run_load_test("GET", redirect_url, target_rps)
        print(f"\n{results}")

        if results.error_rate <= 1.0 and results.percentile(0.95) < 500:
            consistent_rate = target_rps
        if results.error_rate > 10.0:
            print(f"Stopping: error rate {results.error_rate:.2f}% at {target_rps} RPS")
            break
        await asyncio.sleep(1)

    print(f"\nConsistent redirect rate: {consistent_rate or 'not reached'} RPS")
    assert consistent_rate, "Service should sustain at least the lowest redirect load"


@pytest.mark.asyncio
async def test_load_shorten_endpoint():
    """
    POST /shorten under load. Beyond the configured quota the limiter
    answers 429, which is expected and not counted as an error.
    """
    for target_rps in SHORTEN_RPS_LEVELS:
        results = await run_load_test(
            "POST",
            f"{BASE_URL}/shorten",
            target_rps,
            make_body=lambda: {"url": f"https://example.com/test/{time.time()}"},
            max_workers=50,
        )
        print(f"\n{results}")

        assert results.successful_requests + results.throttled_requests > 0
        if results.error_rate > 10.0:
            print(f"Stopping: error rate {results.error_rate:.2f}% at {target_rps} RPS")
            break
        await asyncio.sleep(1)
