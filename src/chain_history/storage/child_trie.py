"""
Retrieval of child trie contents.

A child trie is a nested storage region with its own key space. The main
trie only holds its root, under a key starting with `:child_storage:`.
Reading a child trie therefore takes two steps per namespace: list its keys
with a nested paged enumeration, then read each value.

Namespaces are fetched concurrently, and so are the values inside each one.
Values are read by a fixed pool of workers per namespace, and every leaf
request passes the same `BoundedFanout` gate, so the number of in-flight
requests stays capped no matter how many namespaces or keys there are.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chain_history.rpc.config import DEFAULT_PAGE_SIZE, MAX_CONCURRENT_REQUESTS
from chain_history.rpc.facade import ChainQueryFacade
from chain_history.rpc.types import StorageEntry
from chain_history.types import BlockHash, StorageKey

from .fanout import BoundedFanout
from .keys import is_child_storage_key
from .pagination import HasMore, PaginatedEnumerator, page_is_full

logger = logging.getLogger(__name__)

ChildTrieMap = dict[StorageKey, list[StorageEntry]]
"""Child trie root key to the entries stored inside that trie."""


class ChildTrieFetcher:
    """Reads every key/value pair of every child trie found among root keys."""

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
        self.enumerator = PaginatedEnumerator(
            facade,
            page_size=page_size,
            has_more=has_more,
            fanout=self.fanout,
        )

    async def fetch_all_children(
        self,
        root_keys: Iterable[bytes],
        at: BlockHash | None = None,
    ) -> ChildTrieMap:
        """
        Fetch the contents of every child trie named in `root_keys`.

        Args:
            root_keys: Keys of the main trie, typically a full enumeration.
                Keys without the child storage prefix are ignored.
            at: Block hash, or None for the node's best block.

        Returns:
            One entry list per namespace, in the order the keys were listed.

        Raises:
            RpcFailure: If any listing or read fails. Nothing partial is returned.
        """
        # dict.fromkeys drops repeated namespaces but keeps listing order.
        namespaces = list(
            dict.fromkeys(StorageKey(k) for k in root_keys if is_child_storage_key(k))
        )
        if not namespaces:
            return {}

        logger.info("Fetching %d child tries", len(namespaces))
        contents = await self.fanout.gather(self.fetch_child(ns, at) for ns in namespaces)
        return dict(zip(namespaces, contents, strict=True))

    async def fetch_child(
        self,
        namespace: StorageKey,
        at: BlockHash | None = None,
    ) -> list[StorageEntry]:
        """
        Fetch every entry of one child trie.

        Values are read concurrently but reported in listing order.
        """
        keys = await self.enumerator.enumerate_child(namespace, at=at)
        values = await self.fanout.map(
            lambda key: self.facade.read_child_storage(namespace, key, at), keys
        )
        logger.debug("Child trie %r: %d entries", bytes(namespace), len(keys))
        return [
            StorageEntry(key=key, value=value) for key, value in zip(keys, values, strict=True)
        ]
