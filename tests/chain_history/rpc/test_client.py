"""
Tests for the HTTP JSON-RPC node client.

The node is replaced by an httpx MockTransport, so every request and
response is visible to the test.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from chain_history.metrics import REGISTRY
from chain_history.rpc import NodeClient
from chain_history.types import BlockHash, NotFound, RpcFailure, StorageKey
from tests.chain_history.helpers import run_async

URL = "http://node.test:9944"

HASH = BlockHash(b"\x11" * 32)


class StubNode:
    """Answers JSON-RPC requests from a method table and records them."""

    def __init__(self, results: dict[str, Any]) -> None:
        self.results = results
        self.requests: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        result = self.results[payload["method"]]
        if callable(result):
            return result(payload)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    @property
    def params(self) -> list[Any]:
        """Params of the most recent request."""
        return self.requests[-1]["params"]


def call_with(
    handler: Callable[[httpx.Request], httpx.Response],
    query: Callable[[NodeClient], Any],
) -> Any:
    """Open a client against `handler` and run one query."""

    async def go() -> Any:
        async with NodeClient(URL, transport=httpx.MockTransport(handler)) as client:
            return await query(client)

    return run_async(go())


class TestBlocks:
    """Block lookups."""

    def test_block_hash_at(self) -> None:
        node = StubNode({"chain_getBlockHash": HASH.to_hex()})
        result = call_with(node, lambda c: c.block_hash_at(42))

        assert result == HASH
        assert isinstance(result, BlockHash)
        assert node.requests[0]["method"] == "chain_getBlockHash"
        assert node.params == [42]
        assert node.requests[0]["jsonrpc"] == "2.0"

    def test_block_hash_beyond_head_is_not_found(self) -> None:
        node = StubNode({"chain_getBlockHash": None})
        with pytest.raises(NotFound) as exc_info:
            call_with(node, lambda c: c.block_hash_at(10**6))
        assert exc_info.value.at == 10**6

    def test_latest_block_number_parses_hex(self) -> None:
        node = StubNode({"chain_getHeader": {"number": "0x1a4", "parentHash": HASH.to_hex()}})
        assert call_with(node, lambda c: c.latest_block_number()) == 420
        assert node.params == []

    def test_malformed_header_is_rpc_failure(self) -> None:
        node = StubNode({"chain_getHeader": {"parentHash": HASH.to_hex()}})
        with pytest.raises(RpcFailure):
            call_with(node, lambda c: c.latest_block_number())

    def test_get_block(self) -> None:
        block = {"header": {"number": "0x2a"}, "extrinsics": ["0x0400"]}
        node = StubNode({"chain_getBlock": {"block": block, "justifications": None}})
        result = call_with(node, lambda c: c.get_block(HASH))

        assert result.header == {"number": "0x2a"}
        assert result.extrinsics == ["0x0400"]
        assert node.params == [HASH.to_hex()]

    def test_get_block_at_best_sends_null(self) -> None:
        block = {"header": {}, "extrinsics": []}
        node = StubNode({"chain_getBlock": {"block": block}})
        call_with(node, lambda c: c.get_block())
        assert node.params == [None]


class TestStorage:
    """Root and child storage reads."""

    def test_read_storage(self) -> None:
        node = StubNode({"state_getStorage": "0x0900"})
        result = call_with(node, lambda c: c.read_storage(b"\xaa\xbb", HASH))

        assert result == b"\x09\x00"
        assert node.params == ["0xaabb", HASH.to_hex()]

    def test_absent_value_is_none(self) -> None:
        node = StubNode({"state_getStorage": None})
        assert call_with(node, lambda c: c.read_storage(b"\xaa")) is None
        assert node.params == ["0xaa", None]

    def test_malformed_value_is_rpc_failure(self) -> None:
        node = StubNode({"state_getStorage": "0xnothex"})
        with pytest.raises(RpcFailure) as exc_info:
            call_with(node, lambda c: c.read_storage(b"\xaa"))
        assert exc_info.value.method == "state_getStorage"

    def test_list_keys_paged(self) -> None:
        node = StubNode({"state_getKeysPaged": ["0x01", "0x02"]})
        result = call_with(node, lambda c: c.list_keys_paged(b"", 2, StorageKey(b"\x00"), HASH))

        assert result == [b"\x01", b"\x02"]
        assert all(isinstance(k, StorageKey) for k in result)
        assert node.params == ["0x", 2, "0x00", HASH.to_hex()]

    def test_list_keys_first_page_sends_null_cursor(self) -> None:
        node = StubNode({"state_getKeysPaged": []})
        call_with(node, lambda c: c.list_keys_paged(b"\x01", 10))
        assert node.params == ["0x01", 10, None, None]

    def test_key_listing_must_be_a_list(self) -> None:
        node = StubNode({"state_getKeysPaged": "0x01"})
        with pytest.raises(RpcFailure):
            call_with(node, lambda c: c.list_keys_paged(b"", 10))

    def test_child_calls(self) -> None:
        node = StubNode(
            {
                "childstate_getKeysPaged": ["0x0a"],
                "childstate_getStorage": "0xff",
            }
        )

        async def query(client: NodeClient) -> tuple[list[StorageKey], bytes | None]:
            keys = await client.list_child_keys_paged(b":child_storage:x", b"", 5, None, HASH)
            value = await client.read_child_storage(b":child_storage:x", keys[0], HASH)
            return keys, value

        keys, value = call_with(node, query)

        assert keys == [b"\x0a"]
        assert value == b"\xff"
        namespace = "0x" + b":child_storage:x".hex()
        assert node.requests[0]["params"] == [namespace, "0x", 5, None, HASH.to_hex()]
        assert node.requests[1]["params"] == [namespace, "0x0a", HASH.to_hex()]

    def test_query_storage(self) -> None:
        change_sets = [
            {"block": HASH.to_hex(), "changes": [["0x01", "0x02"], ["0x03", None]]},
        ]
        node = StubNode({"state_queryStorage": change_sets})
        result = call_with(
            node, lambda c: c.query_storage([StorageKey(b"\x01"), StorageKey(b"\x03")], HASH)
        )

        assert len(result) == 1
        assert result[0].block == HASH
        assert [(e.key, e.value) for e in result[0].changes] == [
            (b"\x01", b"\x02"),
            (b"\x03", None),
        ]
        assert node.params == [["0x01", "0x03"], HASH.to_hex(), None]


class TestFailures:
    """Every failure surfaces as RpcFailure."""

    def test_json_rpc_error_object(self) -> None:
        def handler(payload: dict[str, Any]) -> httpx.Response:
            error = {"code": -32602, "message": "Invalid params"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

        node = StubNode({"state_getStorage": handler})
        with pytest.raises(RpcFailure) as exc_info:
            call_with(node, lambda c: c.read_storage(b"\x01"))

        assert exc_info.value.code == -32602
        assert exc_info.value.detail == "Invalid params"

    def test_http_error_status(self) -> None:
        node = StubNode({"chain_getHeader": lambda _: httpx.Response(503, text="busy")})
        with pytest.raises(RpcFailure) as exc_info:
            call_with(node, lambda c: c.latest_block_number())
        assert exc_info.value.code == 503

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow node", request=request)

        with pytest.raises(RpcFailure) as exc_info:
            call_with(handler, lambda c: c.latest_block_number())

        assert "timed out" in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RpcFailure) as exc_info:
            call_with(handler, lambda c: c.latest_block_number())
        assert "network error" in exc_info.value.detail

    def test_body_not_json(self) -> None:
        node = StubNode({"chain_getHeader": lambda _: httpx.Response(200, text="<html>")})
        with pytest.raises(RpcFailure):
            call_with(node, lambda c: c.latest_block_number())

    def test_body_without_result(self) -> None:
        def handler(payload: dict[str, Any]) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"]})

        node = StubNode({"chain_getHeader": handler})
        with pytest.raises(RpcFailure):
            call_with(node, lambda c: c.latest_block_number())

    def test_use_outside_context_manager(self) -> None:
        client = NodeClient(URL)
        with pytest.raises(RuntimeError):
            run_async(client.latest_block_number())


class TestSession:
    """Client lifecycle and metrics."""

    def test_request_ids_increase(self) -> None:
        node = StubNode({"chain_getBlockHash": HASH.to_hex()})

        async def query(client: NodeClient) -> None:
            await client.block_hash_at(1)
            await client.block_hash_at(2)

        call_with(node, query)
        assert [r["id"] for r in node.requests] == [1, 2]

    def test_closed_after_exit(self) -> None:
        node = StubNode({"chain_getBlockHash": HASH.to_hex()})

        async def go() -> NodeClient:
            async with NodeClient(URL, transport=httpx.MockTransport(node)) as client:
                await client.block_hash_at(1)
            return client

        client = run_async(go())
        with pytest.raises(RuntimeError):
            run_async(client.block_hash_at(1))

    def test_metrics_count_requests_and_failures(self) -> None:
        def sample(name: str) -> float:
            return REGISTRY.get_sample_value(name, {"method": "state_getStorage"}) or 0.0

        requests_before = sample("chain_history_rpc_requests_total")
        failures_before = sample("chain_history_rpc_failures_total")

        ok = StubNode({"state_getStorage": "0x00"})
        call_with(ok, lambda c: c.read_storage(b"\x01"))

        failing = StubNode({"state_getStorage": lambda _: httpx.Response(500)})
        with pytest.raises(RpcFailure):
            call_with(failing, lambda c: c.read_storage(b"\x01"))

        assert sample("chain_history_rpc_requests_total") == requests_before + 2
        assert sample("chain_history_rpc_failures_total") == failures_before + 1
