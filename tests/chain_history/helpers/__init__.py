"""Test helpers for chain_history unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Coroutine
from typing import TypeVar

from .builders import make_state
from .mocks import (
    BLOCK_TIME_MS,
    MIGRATION_KEY,
    VERSION_KEY,
    FakeChain,
    Schedule,
    constant_schedule,
    hash_of,
    number_of,
)

_T = TypeVar("_T")


def run_async(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def collect(agen: AsyncIterator[_T]) -> list[_T]:
    """Drain an async generator synchronously."""

    async def drain() -> list[_T]:
        return [item async for item in agen]

    return asyncio.run(drain())


def step_schedule(*steps: tuple[int, int, bool]) -> Schedule:
    """
    Pallet state that changes at fixed heights.

    Each step is `(first_block, version, migrating)`. Steps must be sorted by
    their first block, and the first must start at block 0.
    """

    def state_at(number: int) -> tuple[int, bool]:
        current = steps[0]
        for step in steps:
            if step[0] <= number:
                current = step
        return current[1], current[2]

    return state_at


__all__ = [
    # Builders
    "make_state",
    # Fake node
    "FakeChain",
    "Schedule",
    "constant_schedule",
    "step_schedule",
    "hash_of",
    "number_of",
    # Constants
    "BLOCK_TIME_MS",
    "MIGRATION_KEY",
    "VERSION_KEY",
    # Async utilities
    "collect",
    "run_async",
]
