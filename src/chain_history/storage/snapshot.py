"""
Full storage snapshots and change history at a historical block.

Builds on the paged enumerator: list every root key, read every value with
bounded fan-out, and optionally descend into child tries. Also wraps
`query_storage` to export how a key set changed since a given block.

A paging cursor only means something for one fixed block. When no block is
given, the best block is resolved to a hash once up front and every page
and read of the operation is made against that hash.
"""

from __future__ import annotations

import logging

from chain_history.rpc.config import DEFAULT_PAGE_SIZE, MAX_CONCURRENT_REQUESTS
from chain_history.rpc.facade import ChainQueryFacade
from chain_history.rpc.types import StorageChangeSet, StorageEntry
from chain_history.types import BlockHash, StorageKey, StrictBaseModel

from .child_trie import ChildTrieFetcher
from .fanout import BoundedFanout
from .pagination import HasMore, PaginatedEnumerator, page_is_full

logger = logging.getLogger(__name__)


class ChildTrieDump(StrictBaseModel):
    """Contents of one child trie."""

    namespace: StorageKey
    """Root key of the child trie in the main trie."""

    entries: list[StorageEntry]
    """Entries in listing order."""


class StorageSnapshot(StrictBaseModel):
    """Every key/value pair of the state at one block."""

    block_hash: BlockHash
    """Block the snapshot was taken at."""

    entries: list[StorageEntry]
    """Main trie entries in listing order."""

    children: list[ChildTrieDump]
    """Child trie contents; empty unless requested."""


class SnapshotReader:
    """Reads whole-state snapshots and change sets from a node."""

    def __init__(
        self,
        facade: ChainQueryFacade,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        has_more: HasMore = page_is_full,
        max_concurrency: int = MAX_CONCURRENT_REQUESTS,
    ) -> None:
        self.facade = facade
        self.fanout = BoundedFanout(max_concurrency)
        self.enumerator = PaginatedEnumerator(facade, page_size=page_size, has_more=has_more)
        self.children = ChildTrieFetcher(
            facade,
            page_size=page_size,
            has_more=has_more,
            max_concurrency=max_concurrency,
        )

    async def read_values(
        self,
        keys: list[StorageKey],
        at: BlockHash | None = None,
    ) -> list[StorageEntry]:
        """Read the value of every key at `at`, keeping the key order."""
        values = await self.fanout.map(lambda key: self.facade.read_storage(key, at), keys)
        return [StorageEntry(key=key, value=value) for key, value in zip(keys, values, strict=True)]

    async def pin_block(self, at: BlockHash | None) -> BlockHash:
        """Return `at`, or the hash of the current best block if it is None."""
        if at is not None:
            return at
        block_hash = await self.facade.block_hash_at(await self.facade.latest_block_number())
        logger.info("Pinned best block %s", block_hash.to_hex())
        return block_hash

    async def snapshot(
        self,
        at: BlockHash | None = None,
        *,
        prefix: bytes = b"",
        include_children: bool = False,
    ) -> StorageSnapshot:
        """
        Export the state under `prefix` at block `at`.

        Args:
            at: Block hash, or None to pin the current best block.
            prefix: Restrict the dump to keys under this prefix.
            include_children: Also fetch the contents of every child trie.

        Raises:
            RpcFailure: If any request fails.
        """
        at = await self.pin_block(at)
        keys = await self.enumerator.enumerate(prefix, at)
        logger.info("Reading %d storage values", len(keys))
        entries = await self.read_values(keys, at)

        children: list[ChildTrieDump] = []
        if include_children:
            tries = await self.children.fetch_all_children(keys, at)
            children = [
                ChildTrieDump(namespace=namespace, entries=trie_entries)
                for namespace, trie_entries in tries.items()
            ]

        return StorageSnapshot(block_hash=at, entries=entries, children=children)

    async def change_sets(
        self,
        from_block: BlockHash,
        to_block: BlockHash | None = None,
        *,
        prefix: bytes = b"",
    ) -> list[StorageChangeSet]:
        """
        Report how the keys currently under `prefix` changed since `from_block`.

        Keys are listed at `to_block` (or the best block, pinned once), then
        queried over the range up to that same block. Keys that did not exist
        yet show up with a None value in the first change set.
        """
        to_block = await self.pin_block(to_block)
        keys = await self.enumerator.enumerate(prefix, to_block)
        if not keys:
            return []
        logger.info("Querying change history of %d keys", len(keys))
        return await self.facade.query_storage(keys, from_block, to_block)
