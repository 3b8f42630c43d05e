"""Linear, block-by-block walk printing version and block time."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import NamedTuple

from chain_history.rpc.facade import ChainQueryFacade
from chain_history.storage.keys import TIMESTAMP_NOW_KEY
from chain_history.types import BlockHash, NotFound, Uint64

from .probe import BlockStateProbe
from .state import BlockState

logger = logging.getLogger(__name__)


class TimelineEntry(NamedTuple):
    """One block of a linear walk."""

    state: BlockState
    timestamp: datetime


async def read_block_time(facade: ChainQueryFacade, block_hash: BlockHash) -> datetime:
    """
    Read `Timestamp::Now` at a block as an aware UTC datetime.

    Raises:
        NotFound: If the timestamp is not set at that block.
        DecodeFailure: If the value is not a u64.
    """
    raw = await facade.read_storage(TIMESTAMP_NOW_KEY, block_hash)
    if raw is None:
        raise NotFound("Timestamp::Now", at=block_hash)
    millis = Uint64.decode_scale(raw)
    return datetime.fromtimestamp(int(millis) / 1000, tz=UTC)


async def walk_until_version(
    probe: BlockStateProbe,
    target_version: int,
    start: int | None = None,
) -> AsyncIterator[TimelineEntry]:
    """
    Step back one block at a time, yielding each block until the target version.

    This is the slow linear counterpart of the bisection locator, useful to
    eyeball every block around a known boundary. The walk starts one block
    below `start` (or the head) and includes the first block at the target
    version. It also ends at block 0.
    """
    block_number = start if start is not None else await probe.facade.latest_block_number()

    while block_number > 0:
        block_number -= 1
        state = await probe.probe(block_number)
        timestamp = await read_block_time(probe.facade, state.identity.block_hash)
        yield TimelineEntry(state, timestamp)

        if state.version == target_version:
            logger.info("Reached version %d at block %d", target_version, block_number)
            return
