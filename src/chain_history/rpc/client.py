"""
JSON-RPC client for a Substrate node.

Implements `ChainQueryFacade` over HTTP. Substrate nodes serve JSON-RPC 2.0
on the same port for HTTP and websocket, so plain POST requests are enough
for point-in-time queries.

Ownership:

- One `NodeClient` owns one `httpx.AsyncClient` connection pool
- It is opened and closed with `async with` and passed explicitly to every
  component that needs the node
- Concurrent callers share the pool read-only

Failures are never retried here. Every transport error, timeout, HTTP error,
JSON-RPC error object or malformed payload becomes `RpcFailure`, and the
caller decides what to do.
"""

from __future__ import annotations

import itertools
import logging
from types import TracebackType
from typing import Any, Self, TypeVar

import httpx

from chain_history.metrics import rpc_failures, rpc_request_time, rpc_requests
from chain_history.types import BlockHash, HexBytes, NotFound, RpcFailure, StorageKey

from .config import DEFAULT_TIMEOUT
from .types import ChainBlock, StorageChangeSet, StorageEntry

logger = logging.getLogger(__name__)

_B = TypeVar("_B", bound=bytes)


def _hex(value: bytes | None) -> str | None:
    """Encode bytes as `0x` hex for the wire; None stays None (JSON null)."""
    if value is None:
        return None
    return "0x" + bytes(value).hex()


class NodeClient:
    """
    Chain queries against one node over HTTP JSON-RPC.

    Usage::

        async with NodeClient("http://127.0.0.1:9944") as client:
            head = await client.latest_block_number()
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            url: Node HTTP endpoint (e.g. "http://127.0.0.1:9944").
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests to stub the node.
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> Self:
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )
        logger.debug("Opened RPC session to %s", self.url)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.debug("Closed RPC session to %s", self.url)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def call(self, method: str, params: list[Any]) -> Any:
        """
        Send one JSON-RPC request and return its `result`.

        Raises:
            RpcFailure: If the request fails for any reason.
            RuntimeError: If the client is used outside `async with`.
        """
        if self._http is None:
            raise RuntimeError("NodeClient must be used inside 'async with'")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        rpc_requests.labels(method=method).inc()
        logger.debug("-> %s %s", method, params)

        try:
            with rpc_request_time.labels(method=method).time():
                body = await self._post(method, payload)
        except RpcFailure:
            rpc_failures.labels(method=method).inc()
            raise

        if not isinstance(body, dict):
            rpc_failures.labels(method=method).inc()
            raise RpcFailure(method, "response is not a JSON-RPC object")

        error = body.get("error")
        if error is not None:
            rpc_failures.labels(method=method).inc()
            if isinstance(error, dict):
                raise RpcFailure(method, str(error.get("message")), code=error.get("code"))
            raise RpcFailure(method, str(error))

        if "result" not in body:
            rpc_failures.labels(method=method).inc()
            raise RpcFailure(method, "response has neither result nor error")

        return body["result"]

    async def _post(self, method: str, payload: dict[str, Any]) -> Any:
        """POST a request and decode the JSON body, translating httpx errors."""
        assert self._http is not None
        try:
            response = await self._http.post(self.url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            raise RpcFailure(method, f"timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise RpcFailure(
                method,
                f"HTTP error: {exc.response.text[:200]}",
                code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise RpcFailure(method, f"network error on {self.url}: {exc}") from exc
        except ValueError as exc:
            raise RpcFailure(method, f"response is not valid JSON: {exc}") from exc

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    async def block_hash_at(self, number: int) -> BlockHash:
        """Resolve a block number via `chain_getBlockHash`."""
        result = await self.call("chain_getBlockHash", [number])
        if result is None:
            raise NotFound("block hash", at=number)
        return _parse(BlockHash, "chain_getBlockHash", result)

    async def latest_block_number(self) -> int:
        """Read the best block number from `chain_getHeader`."""
        header = await self.call("chain_getHeader", [])
        try:
            return int(header["number"], 16)
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcFailure("chain_getHeader", f"malformed header: {header!r}") from exc

    async def get_block(self, at: BlockHash | None = None) -> ChainBlock:
        """Fetch a block (header and opaque extrinsics) via `chain_getBlock`."""
        result = await self.call("chain_getBlock", [_hex(at)])
        if result is None:
            raise NotFound("block", at=at)
        try:
            block = result["block"]
            return ChainBlock(header=block["header"], extrinsics=block["extrinsics"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcFailure("chain_getBlock", f"malformed block: {exc}") from exc

    # -------------------------------------------------------------------------
    # Root Storage
    # -------------------------------------------------------------------------

    async def read_storage(self, key: bytes, at: BlockHash | None = None) -> bytes | None:
        """Read one value via `state_getStorage`."""
        result = await self.call("state_getStorage", [_hex(key), _hex(at)])
        if result is None:
            return None
        return bytes(_parse(HexBytes, "state_getStorage", result))

    async def list_keys_paged(
        self,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """List one page of keys via `state_getKeysPaged`."""
        result = await self.call(
            "state_getKeysPaged",
            [_hex(prefix), page_size, _hex(cursor), _hex(at)],
        )
        return _parse_keys("state_getKeysPaged", result)

    # -------------------------------------------------------------------------
    # Child Storage
    # -------------------------------------------------------------------------

    async def list_child_keys_paged(
        self,
        namespace: bytes,
        prefix: bytes,
        page_size: int,
        cursor: bytes | None = None,
        at: BlockHash | None = None,
    ) -> list[StorageKey]:
        """List one page of child trie keys via `childstate_getKeysPaged`."""
        result = await self.call(
            "childstate_getKeysPaged",
            [_hex(namespace), _hex(prefix), page_size, _hex(cursor), _hex(at)],
        )
        return _parse_keys("childstate_getKeysPaged", result)

    async def read_child_storage(
        self,
        namespace: bytes,
        key: bytes,
        at: BlockHash | None = None,
    ) -> bytes | None:
        """Read one child trie value via `childstate_getStorage`."""
        result = await self.call("childstate_getStorage", [_hex(namespace), _hex(key), _hex(at)])
        if result is None:
            return None
        return bytes(_parse(HexBytes, "childstate_getStorage", result))

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def query_storage(
        self,
        keys: list[StorageKey],
        from_block: BlockHash,
        to_block: BlockHash | None = None,
    ) -> list[StorageChangeSet]:
        """Fetch change sets via `state_queryStorage`."""
        result = await self.call(
            "state_queryStorage",
            [[_hex(k) for k in keys], _hex(from_block), _hex(to_block)],
        )
        try:
            return [
                StorageChangeSet(
                    block=BlockHash(change_set["block"]),
                    changes=[
                        StorageEntry(key=StorageKey(key), value=value)
                        for key, value in change_set["changes"]
                    ],
                )
                for change_set in result
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcFailure("state_queryStorage", f"malformed change set: {exc}") from exc


def _parse(cls: type[_B], method: str, value: Any) -> _B:
    """Build a byte type from a wire value, reporting bad payloads as RPC failures."""
    try:
        return cls(value)
    except (TypeError, ValueError) as exc:
        raise RpcFailure(method, f"malformed value {value!r}") from exc


def _parse_keys(method: str, result: Any) -> list[StorageKey]:
    """Parse a JSON list of hex keys."""
    if not isinstance(result, list):
        raise RpcFailure(method, f"expected a list of keys, got {type(result).__name__}")
    return [_parse(StorageKey, method, key) for key in result]
