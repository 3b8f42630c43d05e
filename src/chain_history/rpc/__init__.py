"""
Node access layer.

The rest of the package talks to the chain only through the
`ChainQueryFacade` protocol. `NodeClient` is the HTTP JSON-RPC
implementation used by the CLI.
"""

from __future__ import annotations

__all__ = [
    # Interface
    "ChainQueryFacade",
    # HTTP implementation
    "NodeClient",
    # Records
    "ChainBlock",
    "StorageChangeSet",
    "StorageEntry",
    # Configuration constants
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TIMEOUT",
    "MAX_CONCURRENT_REQUESTS",
    "MAX_PAGE_SIZE",
]

from .client import NodeClient
from .config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT,
    MAX_CONCURRENT_REQUESTS,
    MAX_PAGE_SIZE,
)
from .facade import ChainQueryFacade
from .types import ChainBlock, StorageChangeSet, StorageEntry
