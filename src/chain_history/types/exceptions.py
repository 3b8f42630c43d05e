"""Exception hierarchy for chain history queries."""

from __future__ import annotations


class ChainHistoryError(Exception):
    """
    Base exception for all chain history errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class NotFound(ChainHistoryError):
    """
    Raised when a requested block, key or storage slot does not exist.

    Attributes:
        what: Short description of the missing item (e.g. "block hash").
        at: Block number or hash the lookup was made against, if any.
    """

    def __init__(self, what: str, *, at: object = None) -> None:
        self.what = what
        self.at = at

        msg = f"{what} not found"
        if at is not None:
            msg = f"{msg} at {at}"

        super().__init__(msg)


class RpcFailure(ChainHistoryError):
    """
    Raised when a call to the remote node fails.

    Covers transport errors, timeouts, HTTP errors, JSON-RPC error objects
    and payloads that do not have the expected shape.

    Attributes:
        method: The RPC method that failed.
        detail: Description of what went wrong.
        code: JSON-RPC or HTTP error code, when one was returned.
    """

    def __init__(self, method: str, detail: str, *, code: int | None = None) -> None:
        self.method = method
        self.detail = detail
        self.code = code

        msg = f"{method} failed: {detail}"
        if code is not None:
            msg = f"{msg} (code {code})"

        super().__init__(msg)


class DecodeFailure(ChainHistoryError):
    """
    Raised when a stored value is present but cannot be decoded.

    Attributes:
        type_name: The type the value was decoded into.
        detail: Description of what went wrong.
    """

    def __init__(self, type_name: str, detail: str) -> None:
        self.type_name = type_name
        self.detail = detail
        super().__init__(f"Failed to decode {type_name}: {detail}")


class InvalidRange(ChainHistoryError):
    """
    Raised when a block range search is requested over an empty window.

    Attributes:
        lower: Lower bound of the requested window.
        upper: Upper bound of the requested window.
    """

    def __init__(self, lower: int, upper: int) -> None:
        self.lower = lower
        self.upper = upper
        super().__init__(f"empty search window [{lower}, {upper}]")
