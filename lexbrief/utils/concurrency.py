"""Bounded-concurrency helpers for embedding fan-out.

Both the ingestion path (one embedding call per chunk) and the composition
path (one embedding call per published brief) fan out to the embedding
provider.  ``throttled_gather`` keeps that fan-out under a semaphore so the
provider's rate limit, not correctness, decides how wide it runs.  Results
always come back in input order, which is what lets ingestion store chunks
in source order even when they were embedded in parallel.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    concurrency: int = 1,
    return_exceptions: bool = False,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with at most *concurrency* in flight.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    concurrency:
        Maximum number of awaitables running at once.  Values below 1 are
        treated as 1 so a misconfiguration cannot deadlock the gather.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  If ``False``, the first exception cancels every
        awaitable still running or waiting for a slot, then propagates.

    Returns
    -------
    list
        Results in the same order as the input awaitables.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(_wrapped(c)) for c in coros]
    if return_exceptions:
        return await asyncio.gather(*tasks, return_exceptions=True)

    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Wait for the cancellations so no provider call outlives the failure.
        await asyncio.gather(*tasks, return_exceptions=True)
        for coro in coros:
            # Awaitables cancelled before they got a slot were never started.
            if asyncio.iscoroutine(coro):
                coro.close()
        raise
