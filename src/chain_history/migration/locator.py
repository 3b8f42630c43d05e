"""
Bisection search for pallet migration boundaries.

Given the state observed at some block, find the state just before the
most recent transition into it. A linear walk back would cost one probe per
block; bisection costs O(log N) probes.

Why Bisection Works
-------------------
Going backward from the initial block, the state stays equal to the initial
state up to the transition and differs before it. It never flips back
within the window, because storage versions only increase and the
migration flag only toggles together with a version bump. That monotonic
shape is all binary search needs.

How It Works
------------
1. Search window `[0, initial.block_number]`
2. Probe the midpoint
3. Equivalent to the initial state: the transition is at or before it,
   so the upper bound moves down
4. Different: the transition is after it, so the lower bound moves up
5. Stop once the bounds are adjacent
6. If the last probe was still equivalent, step one block further back

Each step depends on the previous probe, so steps run strictly in sequence.
Only the two reads inside one probe run concurrently.

Walking History
---------------
Feeding each result back in as the next initial state walks every boundary
in reverse chronological order. `history()` does exactly that until a stop
condition holds or no earlier transition exists.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable

from chain_history.metrics import bisection_steps
from chain_history.types import InvalidRange

from .probe import BlockStateProbe
from .state import BlockState

logger = logging.getLogger(__name__)

StopCondition = Callable[[BlockState], bool]
"""Decides whether a boundary is old enough to end a history walk."""


def stop_at_version(target_version: int) -> StopCondition:
    """
    Stop once the version is at or below the target and no migration runs.

    Args:
        target_version: Oldest storage version of interest.
    """

    def reached(state: BlockState) -> bool:
        return state.version <= target_version and not state.migration_in_progress

    return reached


class MigrationBoundaryLocator:
    """Finds the blocks at which the tracked pallet state changed."""

    def __init__(self, probe: BlockStateProbe) -> None:
        self.probe = probe

    async def find_previous_migration_info(self, initial: BlockState) -> BlockState:
        """
        Return the state immediately preceding the transition into `initial`.

        If no block in `[0, initial.block_number]` differs from `initial`,
        the search converges on block 0 and returns its state, which is then
        equivalent to `initial`.

        Raises:
            InvalidRange: If `initial` is block 0, leaving nothing to search.
            NotFound, DecodeFailure, RpcFailure: From any probe; the search
                is abandoned.
        """
        lower, upper = 0, initial.block_number
        if upper == 0:
            raise InvalidRange(lower, upper)

        while True:
            mid = (lower + upper) // 2
            state = await self.probe.probe(mid)
            bisection_steps.inc()

            if state.is_equivalent(initial):
                upper = mid
            else:
                lower = mid

            logger.debug("Bisect: probed %s, window [%d, %d]", state, lower, upper)
            if upper - lower <= 1:
                break

        if not state.is_equivalent(initial):
            return state

        # Block 0 has no predecessor.
        if mid == 0:
            return state
        return await self.probe.probe(mid - 1)

    async def history(
        self,
        start: int | None = None,
        stop: StopCondition | None = None,
    ) -> AsyncIterator[BlockState]:
        """
        Yield migration boundaries, newest first.

        Args:
            start: Block to start from; None starts at the head.
            stop: Ends the walk after the first boundary it accepts. Checked
                against the starting state too.

        The walk also ends at block 0, or when the locator finds no earlier
        transition.
        """
        current = await self.probe.probe(start)
        logger.info("Starting at %s", current)
        if stop is not None and stop(current):
            return

        while current.block_number > 0:
            previous = await self.find_previous_migration_info(current)
            if previous.is_equivalent(current):
                logger.info("No transition before %s", current)
                return

            yield previous
            if stop is not None and stop(previous):
                return
            current = previous
