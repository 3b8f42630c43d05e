"""
Metrics module for observability.

Provides counters and histograms for node traffic and search effort.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    bisection_steps,
    block_probes,
    generate_metrics,
    pages_fetched,
    rpc_failures,
    rpc_request_time,
    rpc_requests,
)

__all__ = [
    "REGISTRY",
    "bisection_steps",
    "block_probes",
    "generate_metrics",
    "pages_fetched",
    "rpc_failures",
    "rpc_request_time",
    "rpc_requests",
]
