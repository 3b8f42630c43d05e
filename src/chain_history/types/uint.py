"""Fixed-width unsigned integer types as stored on chain."""

from __future__ import annotations

from typing import Any, ClassVar, Self, SupportsInt

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from .exceptions import DecodeFailure


class BaseUint(int):
    """A base class for custom unsigned integer types that inherits from `int`."""

    BITS: ClassVar[int]
    """The number of bits in the integer (overridden by subclasses)."""

    def __new__(cls, value: SupportsInt) -> Self:
        """
        Create and validate a new Uint instance.

        Raises:
            OverflowError: If `value` is outside the allowed range [0, 2**BITS - 1].
        """
        int_value = int(value)
        if not (0 <= int_value < (2**cls.BITS)):
            raise OverflowError(f"{int_value} is out of range for {cls.__name__}")
        return super().__new__(cls, int_value)

    @classmethod
    def byte_length(cls) -> int:
        """Number of bytes in the fixed-width encoding."""
        return cls.BITS // 8

    @classmethod
    def decode_scale(cls, data: bytes) -> Self:
        """
        Decode a SCALE-encoded (little-endian, fixed width) value.

        The input must be exactly `byte_length()` bytes long. Shorter or
        longer values mean the slot holds something other than this type.

        Raises:
            DecodeFailure: If the length does not match.
        """
        if len(data) != cls.byte_length():
            raise DecodeFailure(
                cls.__name__,
                f"expected {cls.byte_length()} bytes, got {len(data)}",
            )
        return cls(int.from_bytes(data, "little"))

    def encode_scale(self) -> bytes:
        """Encode as fixed-width little-endian bytes."""
        return int(self).to_bytes(self.byte_length(), "little")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Hook into Pydantic's validation system."""

        def validate(value: Any) -> BaseUint:
            """Pydantic validation function that calls the class constructor."""
            if isinstance(value, bool):
                raise ValueError(f"{cls.__name__} does not accept booleans")
            try:
                return cls(value)
            except (OverflowError, TypeError) as e:
                raise ValueError(str(e)) from e

        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_after_validator_function(
                validate, core_schema.int_schema(ge=0, lt=2**cls.BITS)
            ),
            python_schema=core_schema.no_info_plain_validator_function(validate),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: int(instance)
            ),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def __str__(self) -> str:
        return str(int(self))


class Uint16(BaseUint):
    """A 16-bit unsigned integer, the width of a pallet storage version."""

    BITS = 16


class Uint32(BaseUint):
    """A 32-bit unsigned integer, the width of a block number."""

    BITS = 32


class Uint64(BaseUint):
    """A 64-bit unsigned integer, the width of `Timestamp::Now`."""

    BITS = 64
