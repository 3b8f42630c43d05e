"""
Abstract interface for historical chain queries.

Defines the Protocol every node backend must follow. Uses structural
subtyping, so the HTTP client and in-memory fakes satisfy it without
inheriting from anything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from chain_history.types import BlockHash, StorageKey

    from .types import ChainBlock, StorageChangeSet


class ChainQueryFacade(Protocol):
    """
    Protocol for point-in-time chain queries.

    Every `at` argument is a block hash; None means the node's best block.
    Implementations raise `RpcFailure` when the call itself fails and never
    retry.

    Query Groups
    ------------
    - Blocks: number to hash resolution, head number, raw blocks
    - Root storage: point reads and paged key listing
    - Child storage: the same, scoped to one child trie
    - History: change sets over a block range
    """

    # -------------------------------------------------------------------------
    # Block Operations
    # -------------------------------------------------------------------------

    async def block_hash_at(self, number: int) -> BlockHash:
        """
        Resolve a block number to its hash.

        Raises:
            NotFound: If the number is beyond the chain head.
        """
        ...

    async def latest_block_number(self) -> int:
        """Return the number of the node's best block."""
        ...

    async def get_block(self, at: BlockHash | None = None) -> ChainBlock:
        """
        Fetch a block with its extrinsics.

        Raises:
            NotFound: If the node does not know the block.
        """
        ...

    # -------------------------------------------------------------------------
    # Root Storage
    # -------------------------------------------------------------------------

    async def read_storage(self, key: bytes, at: BlockHash | None = None) -> bytes | None:
        """
        Read one storage value.

        Returns:
            The raw value, or None if the key is absent at `at`.
        """
        ...

    async def list_keys_paged(
        self,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """
        List up to `page_size` keys under `prefix`, strictly after `cursor`.

        Keys come back in ascending byte order.
        """
        ...

    # -------------------------------------------------------------------------
    # Child Storage
    # -------------------------------------------------------------------------

    async def list_child_keys_paged(
        self,
        namespace: bytes,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """
        List up to `page_size` keys of one child trie, strictly after `cursor`.

        Args:
            namespace: The child trie's full root key (`:child_storage:...`).
        """
        ...

    async def read_child_storage(
        self,
        namespace: bytes,
        key: bytes,
        at: BlockHash | None = None,
    ) -> bytes | None:
        """Read one value from a child trie."""
        ...

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def query_storage(
        self,
        keys: list[StorageKey],
        from_block: BlockHash,
        to_block: BlockHash | None = None,
    ) -> list[StorageChangeSet]:
        """
        Return every block in `[from_block, to_block]` where one of `keys` changed.

        The first change set holds the values at `from_block`.
        """
        ...
