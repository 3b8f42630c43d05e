"""
Pallet migration tracking.

What Is Tracked?
----------------
A pallet records its storage layout revision as a `StorageVersion` (u16).
When a runtime upgrade changes the layout, the version is bumped and, for
multi-block migrations, a `MigrationInProgress` slot exists until the
migration finishes.

What This Package Answers
-------------------------
At which blocks did that state change? `BlockStateProbe` reads the state at
one block, `MigrationBoundaryLocator` bisects the block range for each
transition, and `walk_until_version` offers the slow linear alternative.
"""

from __future__ import annotations

__all__ = [
    # State records
    "BlockIdentity",
    "BlockState",
    # Probe
    "BlockStateProbe",
    # Locator
    "MigrationBoundaryLocator",
    "StopCondition",
    "stop_at_version",
    # Linear walk
    "TimelineEntry",
    "read_block_time",
    "walk_until_version",
]

from .locator import MigrationBoundaryLocator, StopCondition, stop_at_version
from .probe import BlockStateProbe
from .state import BlockIdentity, BlockState
from .timeline import TimelineEntry, read_block_time, walk_until_version
