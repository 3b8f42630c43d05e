"""
Bounded concurrent fan-out for storage requests.

Fetching a snapshot can mean one request per key. Spawning them all at once
would open as many connections as there are keys, so every leaf request goes
through one shared semaphore instead.

Only leaf requests (a page listing or a value read) hold a slot. Tasks that
merely wait on other requests never do, so nested fan-out cannot deadlock on
its own gate.

The gate belongs to the event loop that first uses it. Reusing an instance
under a new loop (a second `asyncio.run`) starts a fresh gate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
K = TypeVar("K")


class BoundedFanout:
    """Caps the number of in-flight requests across one operation."""

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self._gate: asyncio.Semaphore | None = None
        self._gate_loop: asyncio.AbstractEventLoop | None = None

    def _slots(self) -> asyncio.Semaphore:
        """The gate for the running event loop, created on first use in each loop."""
        loop = asyncio.get_running_loop()
        if self._gate is None or self._gate_loop is not loop:
            self._gate = asyncio.Semaphore(self.max_concurrency)
            self._gate_loop = loop
        return self._gate

    async def request(self, aw: Awaitable[T]) -> T:
        """Await one leaf request while holding a slot."""
        async with self._slots():
            return await aw

    async def gather(self, aws: Iterable[Awaitable[T]]) -> list[T]:
        """
        Run awaitables concurrently and return results in input order.

        All or nothing: the first failure cancels every task still running
        and is re-raised. Completion order never affects the result order.
        """
        tasks = [asyncio.ensure_future(aw) for aw in aws]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def map(self, fn: Callable[[K], Awaitable[T]], items: Sequence[K]) -> list[T]:
        """
        Apply a request function to every item with a fixed pool of workers.

        At most `max_concurrency` workers exist, whatever the number of
        items, and each request still passes the shared gate. Results come
        back in input order.
        """
        results: list[T | None] = [None] * len(items)
        indices = iter(range(len(items)))

        async def worker() -> None:
            # Workers share one iterator, so each index is claimed exactly once.
            for i in indices:
                results[i] = await self.request(fn(items[i]))

        await self.gather(worker() for _ in range(min(self.max_concurrency, len(items))))
        return results  # type: ignore[return-value]
