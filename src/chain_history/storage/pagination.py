"""
Cursor-based enumeration of storage keys.

The node never returns more than one bounded page of keys per call. To list
everything under a prefix we walk the key space page by page, each request
starting strictly after the last key already seen.

How It Works
------------
1. Start with no cursor (list from the beginning)
2. Request up to `page_size` keys after the cursor
3. Append the page; the cursor becomes its last key
4. Ask the continuation predicate whether another page may exist
5. Stop on the first page the predicate rejects

A page shorter than `page_size` means the listing is exhausted. When the
total is an exact multiple of `page_size` the last full page cannot tell,
so one extra request comes back empty. That costs `ceil(N / P) + 1` round
trips instead of `ceil(N / P)`, never an endless loop.

Continuation Predicate
----------------------
Which page length means "maybe more" depends on the node's paging contract,
so the rule is a constructor argument rather than a hidden constant:

- `page_is_full` (default): continue while the page holds `page_size` keys
- `page_exceeds_size`: continue only while the page holds more than
  `page_size` keys, for servers that may over-deliver

Failure Semantics
-----------------
Enumeration is all or nothing. The first failed page aborts the walk and
the keys gathered so far are dropped with it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from chain_history.metrics import pages_fetched
from chain_history.rpc.config import DEFAULT_PAGE_SIZE
from chain_history.rpc.facade import ChainQueryFacade
from chain_history.types import BlockHash, RpcFailure, StorageKey

from .fanout import BoundedFanout

logger = logging.getLogger(__name__)

HasMore = Callable[[int, int], bool]
"""Continuation predicate: `(page_len, page_size) -> another page may exist`."""

PageFetcher = Callable[[StorageKey | None], Awaitable[list[StorageKey]]]
"""Fetches the page that starts strictly after the given cursor."""


def page_is_full(page_len: int, page_size: int) -> bool:
    """A full page may be followed by more keys."""
    return page_len >= page_size


def page_exceeds_size(page_len: int, page_size: int) -> bool:
    """Only a page longer than requested signals more keys."""
    return page_len > page_size


class PaginatedEnumerator:
    """
    Lists every key under a prefix, in node order, without duplicates.

    Root storage and child tries share the same walk. Only the page request
    differs.
    """

    def __init__(
        self,
        facade: ChainQueryFacade,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        has_more: HasMore = page_is_full,
        fanout: BoundedFanout | None = None,
    ) -> None:
        """
        Args:
            facade: Node to query.
            page_size: Keys requested per page.
            has_more: Continuation predicate, see module docs.
            fanout: Optional concurrency gate every page request must pass.
        """
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.facade = facade
        self.page_size = page_size
        self.has_more = has_more
        self.fanout = fanout

    async def enumerate(
        self,
        prefix: bytes = b"",
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """
        List every root storage key under `prefix` at block `at`.

        Args:
            prefix: Key prefix; empty lists the whole trie.
            at: Block hash, or None for the node's best block.

        Raises:
            RpcFailure: If any page request fails.
        """

        async def fetch_page(cursor: StorageKey | None) -> list[StorageKey]:
            return await self.facade.list_keys_paged(prefix, self.page_size, cursor, at)

        return await self._drain(fetch_page, f"prefix {prefix.hex() or '<all>'}")

    async def enumerate_child(
        self,
        namespace: bytes,
        prefix: bytes = b"",
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """
        List every key of one child trie under `prefix` at block `at`.

        Args:
            namespace: The child trie's root key in the main trie.
            prefix: Key prefix inside the child trie.
            at: Block hash, or None for the node's best block.

        Raises:
            RpcFailure: If any page request fails.
        """

        async def fetch_page(cursor: StorageKey | None) -> list[StorageKey]:
            return await self.facade.list_child_keys_paged(
                namespace, prefix, self.page_size, cursor, at
            )

        return await self._drain(fetch_page, f"child trie {bytes(namespace)!r}")

    async def _drain(self, fetch_page: PageFetcher, what: str) -> list[StorageKey]:
        """Walk pages until the continuation predicate says stop."""
        keys: list[StorageKey] = []
        cursor: StorageKey | None = None
        pages = 0

        while True:
            if self.fanout is None:
                page = await fetch_page(cursor)
            else:
                page = await self.fanout.request(fetch_page(cursor))
            pages += 1
            pages_fetched.inc()

            # The cursor is exclusive, but a node that echoes it (or anything
            # before it) must not produce duplicates.
            fresh = page if cursor is None else [key for key in page if key > cursor]
            more = self.has_more(len(page), self.page_size)

            if more and not fresh:
                raise RpcFailure(
                    "getKeysPaged",
                    f"cursor did not advance past {cursor!r} while listing {what}",
                )

            keys.extend(fresh)
            logger.debug("Page %d for %s: %d keys", pages, what, len(fresh))

            if not more:
                break
            cursor = fresh[-1]

        logger.debug("Listed %d keys for %s in %d pages", len(keys), what, pages)
        return keys
