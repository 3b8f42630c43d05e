"""
RPC configuration constants.

Operational parameters for talking to the node: timeouts, page sizes, and
concurrency limits.
"""

from __future__ import annotations

from typing import Final

DEFAULT_TIMEOUT: Final[float] = 30.0
"""Per-request timeout in seconds. A timed out request is an RPC failure."""

DEFAULT_PAGE_SIZE: Final[int] = 100
"""Keys requested per `*_getKeysPaged` call."""

MAX_PAGE_SIZE: Final[int] = 1000
"""Largest page the node accepts for paged key listings."""

MAX_CONCURRENT_REQUESTS: Final[int] = 32
"""Maximum in-flight requests during storage fan-out."""
