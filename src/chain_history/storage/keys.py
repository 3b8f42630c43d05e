"""
Well-known storage keys.

Substrate places a pallet's storage items under
`twox128(pallet) ++ twox128(item)`. twox128 is two 64-bit xxHash digests
(seeds 0 and 1), each in little-endian byte order, concatenated.

Child tries are not addressed by hashing. Their root keys in the main trie
start with the fixed `:child_storage:` prefix.
"""

from __future__ import annotations

from typing import Final

import xxhash

from chain_history.types import StorageKey

CHILD_STORAGE_PREFIX: Final[bytes] = b":child_storage:"
"""Prefix of every child trie root key in the main trie."""

STORAGE_VERSION_ITEM: Final[bytes] = b":__STORAGE_VERSION__:"
"""Item name under which a pallet records its on-chain storage version."""

MIGRATION_IN_PROGRESS_ITEM: Final[bytes] = b"MigrationInProgress"
"""Item that exists only while a multi-block migration is running."""

DEFAULT_PALLET: Final[str] = "Contracts"
"""Pallet whose storage version is tracked by default."""


def twox128(data: bytes) -> bytes:
    """Substrate's 128-bit non-cryptographic storage hasher."""
    return b"".join(
        xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little") for seed in (0, 1)
    )


def storage_prefix(pallet: bytes | str, item: bytes | str) -> StorageKey:
    """Key of a plain storage value: `twox128(pallet) ++ twox128(item)`."""
    if isinstance(pallet, str):
        pallet = pallet.encode()
    if isinstance(item, str):
        item = item.encode()
    return StorageKey(twox128(pallet) + twox128(item))


def pallet_version_key(pallet: str = DEFAULT_PALLET) -> StorageKey:
    """Key holding a pallet's `StorageVersion` (SCALE u16)."""
    return storage_prefix(pallet, STORAGE_VERSION_ITEM)


def migration_in_progress_key(pallet: str = DEFAULT_PALLET) -> StorageKey:
    """Key that is present while the pallet is migrating."""
    return storage_prefix(pallet, MIGRATION_IN_PROGRESS_ITEM)


TIMESTAMP_NOW_KEY: Final[StorageKey] = storage_prefix("Timestamp", "Now")
"""`Timestamp::Now`, block time in milliseconds (SCALE u64)."""


def is_child_storage_key(key: bytes) -> bool:
    """Check whether a main-trie key is the root of a child trie."""
    return bytes(key).startswith(CHILD_STORAGE_PREFIX)
