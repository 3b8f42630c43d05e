"""
Storage enumeration and retrieval.

Turns bounded, cursor-paged key listings into complete key sets, and fans
out value reads (including child tries) under a fixed concurrency cap.
"""

from __future__ import annotations

__all__ = [
    # Pagination
    "PaginatedEnumerator",
    "HasMore",
    "page_is_full",
    "page_exceeds_size",
    # Child tries
    "ChildTrieFetcher",
    "ChildTrieMap",
    # Snapshots
    "SnapshotReader",
    "StorageSnapshot",
    "ChildTrieDump",
    # Concurrency
    "BoundedFanout",
    # Keys
    "CHILD_STORAGE_PREFIX",
    "TIMESTAMP_NOW_KEY",
    "is_child_storage_key",
    "migration_in_progress_key",
    "pallet_version_key",
    "storage_prefix",
    "twox128",
]

from .child_trie import ChildTrieFetcher, ChildTrieMap
from .fanout import BoundedFanout
from .keys import (
    CHILD_STORAGE_PREFIX,
    TIMESTAMP_NOW_KEY,
    is_child_storage_key,
    migration_in_progress_key,
    pallet_version_key,
    storage_prefix,
    twox128,
)
from .pagination import HasMore, PaginatedEnumerator, page_exceeds_size, page_is_full
from .snapshot import ChildTrieDump, SnapshotReader, StorageSnapshot
