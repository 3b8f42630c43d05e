"""
Global configuration for chain history queries.

Environment-specific settings read once at import time.
"""

import os

DEFAULT_RPC_URL: str = "http://127.0.0.1:9944"
"""Local development node, HTTP JSON-RPC on the default Substrate port."""

RPC_URL = os.environ.get("CHAIN_HISTORY_RPC_URL", DEFAULT_RPC_URL)
"""Node endpoint used when no `--rpc-url` is given."""

if not RPC_URL.startswith(("http://", "https://")):
    raise ValueError(
        f"Invalid CHAIN_HISTORY_RPC_URL environment variable: '{RPC_URL}'. "
        "Expected an http:// or https:// URL"
    )
