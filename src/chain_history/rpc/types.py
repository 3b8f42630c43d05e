"""Records returned by storage and block queries."""

from __future__ import annotations

from typing import Any

from chain_history.types import BlockHash, HexBytes, StorageKey, StrictBaseModel


class StorageEntry(StrictBaseModel):
    """A key and its value at one point in history."""

    key: StorageKey
    """The storage key."""

    value: HexBytes | None
    """Raw value bytes, or None if the key is absent at the query point."""


class StorageChangeSet(StrictBaseModel):
    """Values of a set of keys that changed in one block."""

    block: BlockHash
    """Block in which the changes were observed."""

    changes: list[StorageEntry]
    """New value for each changed key. None means the key was removed."""


class ChainBlock(StrictBaseModel):
    """
    A block as returned by the node.

    The header is kept as the node's JSON object. Extrinsics stay opaque
    SCALE-encoded hex strings; they are never decoded here.
    """

    header: dict[str, Any]
    """Block header (parentHash, number, stateRoot, extrinsicsRoot, digest)."""

    extrinsics: list[str]
    """Extrinsics as `0x`-prefixed hex."""
