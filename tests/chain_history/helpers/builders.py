"""Builders for test records."""

from __future__ import annotations

from chain_history.migration import BlockIdentity, BlockState
from chain_history.types import Uint16, Uint32

from .mocks import hash_of


def make_state(number: int, version: int, migrating: bool = False) -> BlockState:
    """Block state at fake block `number`."""
    return BlockState(
        identity=BlockIdentity(block_number=Uint32(number), block_hash=hash_of(number)),
        version=Uint16(version),
        migration_in_progress=migrating,
    )
