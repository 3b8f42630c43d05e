"""Reusable type definitions for chain history queries."""

from .base import CamelModel, StrictBaseModel
from .byte_arrays import BlockHash, HexBytes, StorageKey
from .exceptions import (
    ChainHistoryError,
    DecodeFailure,
    InvalidRange,
    NotFound,
    RpcFailure,
)
from .uint import BaseUint, Uint16, Uint32, Uint64

__all__ = [
    # Core types
    "Uint16",
    "Uint32",
    "Uint64",
    "BaseUint",
    "BlockHash",
    "StorageKey",
    "HexBytes",
    "CamelModel",
    "StrictBaseModel",
    # Exceptions
    "ChainHistoryError",
    "NotFound",
    "RpcFailure",
    "DecodeFailure",
    "InvalidRange",
]
