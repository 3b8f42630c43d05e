"""Block state records compared by the migration locator."""

from __future__ import annotations

from chain_history.types import BlockHash, StrictBaseModel, Uint16, Uint32


class BlockIdentity(StrictBaseModel):
    """A block number together with the hash it resolved to."""

    block_number: Uint32
    """Height of the block."""

    block_hash: BlockHash
    """Hash of the block. Stable once the block is finalized."""


class BlockState(StrictBaseModel):
    """
    The tracked pallet state at one block.

    Version and migration flag are always read at the same block hash, so a
    BlockState never mixes values from two points in history.
    """

    identity: BlockIdentity
    """Block the state was read at."""

    version: Uint16
    """The pallet's on-chain storage version."""

    migration_in_progress: bool
    """Whether a multi-block migration was running at this block."""

    @property
    def block_number(self) -> int:
        """Shortcut for `identity.block_number`."""
        return int(self.identity.block_number)

    def is_equivalent(self, other: BlockState) -> bool:
        """Same version and same migration flag. Block identity is ignored."""
        return (
            self.version == other.version
            and self.migration_in_progress == other.migration_in_progress
        )

    def __str__(self) -> str:
        migrating = " (migrating)" if self.migration_in_progress else ""
        return f"#{self.block_number} v{self.version}{migrating}"
