"""
Rate limiter tests: start spacing, arrival order, no lost callers.
"""

import asyncio
import time

from tour_crawler.crawler.rate_limiter import RateLimiter

# Timestamps are taken inside the fetch, a few microseconds after the slot
# is granted
CLOCK_SLACK = 0.002


def test_first_call_runs_immediately():
    async def scenario():
        limiter = RateLimiter(wait=0.5)
        return await limiter.acquire()

    assert asyncio.run(scenario()) == 0.0


def test_back_to_back_calls_are_spaced():
    wait = 0.1
    starts = []

    async def fetch(url):
        starts.append(time.monotonic())
        return url

    async def scenario():
        limiter = RateLimiter(wait=wait)
        await limiter.run(fetch, "a")
        await limiter.run(fetch, "b")

    asyncio.run(scenario())

    assert len(starts) == 2
    assert starts[1] - starts[0] >= wait - CLOCK_SLACK


def test_spacing_is_between_starts_not_completions():
    wait = 0.1
    starts = []

    async def slow_fetch():
        starts.append(time.monotonic())
        await asyncio.sleep(0.15)

    async def scenario():
        limiter = RateLimiter(wait=wait)
        await limiter.run(slow_fetch)
        await limiter.run(slow_fetch)

    asyncio.run(scenario())

    # The second start is due before the first call finished, so no extra wait
    assert starts[1] - starts[0] < 0.15 + wait


def test_concurrent_callers_are_all_served_in_order():
    wait = 0.02
    served = []

    async def fetch(n):
        served.append((n, time.monotonic()))
        return n

    async def scenario():
        limiter = RateLimiter(wait=wait)
        throttled = limiter.wrap(fetch)
        return await asyncio.gather(*(throttled(n) for n in range(5)))

    results = asyncio.run(scenario())

    assert results == [0, 1, 2, 3, 4]
    assert [n for n, _ in served] == [0, 1, 2, 3, 4]
    gaps = [b - a for (_, a), (_, b) in zip(served, served[1:])]
    assert all(gap >= wait - CLOCK_SLACK for gap in gaps)


def test_pending_counts_waiting_callers():
    async def scenario():
        limiter = RateLimiter(wait=0.05)
        await limiter.acquire()
        tasks = [asyncio.ensure_future(limiter.acquire()) for _ in range(3)]
        await asyncio.sleep(0)
        pending = limiter.pending
        await asyncio.gather(*tasks)
        return pending, limiter.pending

    during, after = asyncio.run(scenario())
    assert during == 3
    assert after == 0


def test_zero_wait_never_sleeps():
    async def scenario():
        limiter = RateLimiter(wait=0)
        return [await limiter.acquire() for _ in range(3)]

    assert asyncio.run(scenario()) == [0.0, 0.0, 0.0]
