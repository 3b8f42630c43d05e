"""
Point-in-time probe of a pallet's storage version and migration flag.

A probe is the unit the locator works with. For one block number it:

1. Resolves the number to a hash (or the head number first, if none given)
2. Reads the version slot and checks the migration slot concurrently,
   both against that one hash
3. Joins the two reads into a single `BlockState`

The migration flag is the presence of the pallet's `MigrationInProgress`
slot. Its content is irrelevant.
"""

from __future__ import annotations

import asyncio
import logging

from chain_history.metrics import block_probes
from chain_history.rpc.facade import ChainQueryFacade
from chain_history.storage.keys import (
    DEFAULT_PALLET,
    migration_in_progress_key,
    pallet_version_key,
)
from chain_history.types import NotFound, Uint16, Uint32

from .state import BlockIdentity, BlockState

logger = logging.getLogger(__name__)


class BlockStateProbe:
    """Reads the tracked state of one pallet at arbitrary block heights."""

    def __init__(self, facade: ChainQueryFacade, *, pallet: str = DEFAULT_PALLET) -> None:
        """
        Args:
            facade: Node to query.
            pallet: Pallet whose storage version is tracked.
        """
        self.facade = facade
        self.pallet = pallet
        self.version_key = pallet_version_key(pallet)
        self.migration_key = migration_in_progress_key(pallet)

    async def probe(self, block_number: int | None = None) -> BlockState:
        """
        Read the pallet state at `block_number`.

        Args:
            block_number: Height to probe; None probes the current head.

        Raises:
            NotFound: If the height does not resolve to a block, or the
                version slot is absent there.
            DecodeFailure: If the version slot does not hold a u16.
            RpcFailure: If any request fails.
        """
        if block_number is None:
            block_number = await self.facade.latest_block_number()

        block_probes.inc()
        block_hash = await self.facade.block_hash_at(block_number)

        raw_version, migration_value = await asyncio.gather(
            self.facade.read_storage(self.version_key, block_hash),
            self.facade.read_storage(self.migration_key, block_hash),
        )

        if raw_version is None:
            raise NotFound(f"{self.pallet} storage version", at=block_number)

        state = BlockState(
            identity=BlockIdentity(block_number=Uint32(block_number), block_hash=block_hash),
            version=Uint16.decode_scale(raw_version),
            migration_in_progress=migration_value is not None,
        )
        logger.debug("Probed %s", state)
        return state
