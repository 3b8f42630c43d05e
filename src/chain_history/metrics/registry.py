"""
Metric registry using prometheus_client.

Tracks node traffic and search effort. The CLI can dump the registry in
Prometheus text format when a run finishes.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Dedicated registry, so default Python process metrics stay out of the output.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# RPC Traffic
# -----------------------------------------------------------------------------

rpc_requests = Counter(
    "chain_history_rpc_requests_total",
    "JSON-RPC requests sent to the node",
    ["method"],
    registry=REGISTRY,
)

rpc_failures = Counter(
    "chain_history_rpc_failures_total",
    "JSON-RPC requests that failed",
    ["method"],
    registry=REGISTRY,
)

rpc_request_time = Histogram(
    "chain_history_rpc_request_seconds",
    "JSON-RPC round trip duration",
    ["method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Search Effort
# -----------------------------------------------------------------------------

pages_fetched = Counter(
    "chain_history_pages_fetched_total",
    "Key pages fetched during enumeration",
    registry=REGISTRY,
)

block_probes = Counter(
    "chain_history_block_probes_total",
    "Block state probes issued",
    registry=REGISTRY,
)

bisection_steps = Counter(
    "chain_history_bisection_steps_total",
    "Bisection steps taken while locating migration boundaries",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
