"""
In-memory chain for testing everything above the RPC layer.

Implements the `ChainQueryFacade` protocol without a node. Block `n` has the
hash `n.to_bytes(32, "big")`, so tests can always tell which height a read
was made at.
"""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from chain_history.rpc.types import ChainBlock, StorageChangeSet, StorageEntry
from chain_history.storage.keys import (
    TIMESTAMP_NOW_KEY,
    migration_in_progress_key,
    pallet_version_key,
)
from chain_history.types import BlockHash, NotFound, RpcFailure, StorageKey

VERSION_KEY = pallet_version_key()
MIGRATION_KEY = migration_in_progress_key()

BLOCK_TIME_MS = 6_000
"""Fake block time; block `n` is stamped `n * BLOCK_TIME_MS`."""

Schedule = Callable[[int], tuple[int, bool] | None]
"""Pallet state per block: `(version, migrating)`, or None for no version slot."""


def hash_of(number: int) -> BlockHash:
    """Hash of fake block `number`."""
    return BlockHash(number.to_bytes(32, "big"))


def number_of(block_hash: bytes) -> int:
    """Inverse of `hash_of`."""
    return int.from_bytes(block_hash, "big")


def constant_schedule(version: int = 1, migrating: bool = False) -> Schedule:
    """Same pallet state at every block."""
    return lambda _: (version, migrating)


class FakeChain:
    """
    Facade backed by dictionaries.

    Root and child storage are the same at every block; only the tracked
    pallet state and the timestamp depend on the height.
    """

    def __init__(
        self,
        head: int = 0,
        *,
        schedule: Schedule | None = None,
        storage: dict[bytes, bytes] | None = None,
        children: dict[bytes, dict[bytes, bytes]] | None = None,
        overrides: dict[bytes, bytes | None] | None = None,
        fail_on: dict[str, int] | None = None,
        inclusive_cursor: bool = False,
        ignore_cursor: bool = False,
        seed: int = 0,
    ) -> None:
        """
        Args:
            head: Number of the best block.
            schedule: Tracked pallet state per block.
            storage: Root storage, excluding the tracked pallet slots.
            children: Child trie contents keyed by namespace root key.
            overrides: Raw values returned for a key at every block, taking
                precedence over everything else.
            fail_on: Method name to the 1-based call number that fails.
            inclusive_cursor: Paged listings start at the cursor, not after it.
            ignore_cursor: Paged listings always start from the beginning.
            seed: Seed for the random scheduling delays.
        """
        self.head = head
        self.schedule = schedule or constant_schedule()
        self.storage = dict(storage or {})
        self.children = {ns: dict(trie) for ns, trie in (children or {}).items()}
        self.overrides = dict(overrides or {})
        self.fail_on = dict(fail_on or {})
        self.inclusive_cursor = inclusive_cursor
        self.ignore_cursor = ignore_cursor

        # Child roots live in the main trie like any other key.
        for namespace in self.children:
            self.storage.setdefault(namespace, b"")

        self.calls: Counter[str] = Counter()
        self.reads: list[tuple[bytes, int]] = []
        self.requested_at: list[tuple[str, bytes | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._rng = random.Random(seed)

    @asynccontextmanager
    async def _request(self, method: str) -> AsyncIterator[None]:
        """Count the call, inject failures, and yield a random number of times."""
        self.calls[method] += 1
        if self.fail_on.get(method) == self.calls[method]:
            raise RpcFailure(method, "injected failure")

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Random yields shuffle completion order across concurrent requests.
            for _ in range(self._rng.randint(0, 3)):
                await asyncio.sleep(0)
            yield
        finally:
            self.in_flight -= 1

    def _page(
        self,
        keys: list[bytes],
        prefix: bytes,
        page_size: int,
        cursor: bytes | None,
    ) -> list[StorageKey]:
        selected = sorted(k for k in keys if k.startswith(prefix))
        if cursor is not None and not self.ignore_cursor:
            if self.inclusive_cursor:
                selected = [k for k in selected if k >= cursor]
            else:
                selected = [k for k in selected if k > cursor]
        return [StorageKey(k) for k in selected[:page_size]]

    def value_at(self, key: bytes, number: int) -> bytes | None:
        """Raw value of a root key at block `number`."""
        key = bytes(key)
        if key in self.overrides:
            return self.overrides[key]
        if key == VERSION_KEY:
            state = self.schedule(number)
            return None if state is None else state[0].to_bytes(2, "little")
        if key == MIGRATION_KEY:
            state = self.schedule(number)
            return b"\x01" if state is not None and state[1] else None
        if key == TIMESTAMP_NOW_KEY:
            return (number * BLOCK_TIME_MS).to_bytes(8, "little")
        return self.storage.get(key)

    def _number(self, at: bytes | None) -> int:
        return self.head if at is None else number_of(at)

    # -------------------------------------------------------------------------
    # Facade
    # -------------------------------------------------------------------------

    async def block_hash_at(self, number: int) -> BlockHash:
        async with self._request("block_hash_at"):
            if not 0 <= number <= self.head:
                raise NotFound("block hash", at=number)
            return hash_of(number)

    async def latest_block_number(self) -> int:
        async with self._request("latest_block_number"):
            return self.head

    async def get_block(self, at: BlockHash | None = None) -> ChainBlock:
        async with self._request("get_block"):
            number = self._number(at)
            return ChainBlock(
                header={"number": hex(number), "parentHash": hash_of(max(number - 1, 0)).to_hex()},
                extrinsics=["0x280402000b" + number.to_bytes(4, "little").hex()],
            )

    async def read_storage(self, key: bytes, at: BlockHash | None = None) -> bytes | None:
        self.requested_at.append(("read_storage", at))
        async with self._request("read_storage"):
            number = self._number(at)
            self.reads.append((bytes(key), number))
            return self.value_at(key, number)

    async def list_keys_paged(
        self,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        self.requested_at.append(("list_keys_paged", at))
        async with self._request("list_keys_paged"):
            return self._page(list(self.storage), prefix, page_size, cursor)

    async def list_child_keys_paged(
        self,
        namespace: bytes,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        self.requested_at.append(("list_child_keys_paged", at))
        async with self._request("list_child_keys_paged"):
            return self._page(list(self.children[bytes(namespace)]), prefix, page_size, cursor)

    async def read_child_storage(
        self,
        namespace: bytes,
        key: bytes,
        at: BlockHash | None = None,
    ) -> bytes | None:
        self.requested_at.append(("read_child_storage", at))
        async with self._request("read_child_storage"):
            return self.children[bytes(namespace)].get(bytes(key))

    async def query_storage(
        self,
        keys: list[StorageKey],
        from_block: BlockHash,
        to_block: BlockHash | None = None,
    ) -> list[StorageChangeSet]:
        self.requested_at.append(("query_storage", to_block))
        async with self._request("query_storage"):
            return [
                StorageChangeSet(
                    block=from_block,
                    changes=[
                        StorageEntry(key=key, value=self.value_at(key, number_of(from_block)))
                        for key in keys
                    ],
                )
            ]
