"""
Byte types exchanged with the node.

The node speaks `0x`-prefixed hex on the wire. These types keep raw bytes in
memory and convert at the edges:

- BlockHash:  exactly 32 bytes.
- StorageKey: any length. Ordering is plain byte order, which is also the
  order the node uses for paged key listings.
"""

from __future__ import annotations

from typing import Any, ClassVar, Iterable, Self

from pydantic.annotated_handlers import GetCoreSchemaHandler
from pydantic_core import core_schema


def _coerce_to_bytes(value: Any) -> bytes:
    """
    Coerce a variety of inputs to raw bytes.

    Accepts:
      - `bytes` / `bytearray` (returned as immutable `bytes`)
      - Hex strings, with or without a '0x' prefix (e.g. "0xdeadbeef" or "deadbeef")
      - Iterables of integers in [0, 255]

    Raises:
      ValueError / TypeError if conversion is not possible or out-of-range.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    if isinstance(value, Iterable):
        return bytes(bytearray(value))
    return bytes(value)


class HexBytes(bytes):
    """
    Raw bytes that serialize as a `0x`-prefixed hex string.

    Subclasses may set `LENGTH` to require an exact size.
    """

    LENGTH: ClassVar[int | None] = None
    """Exact number of bytes, or None for any length."""

    def __new__(cls, value: Any = b"") -> Self:
        """
        Create and validate a new instance.

        Raises:
            ValueError: If `LENGTH` is set and the byte length differs.
        """
        b = _coerce_to_bytes(value)
        if cls.LENGTH is not None and len(b) != cls.LENGTH:
            raise ValueError(f"{cls.__name__} expects exactly {cls.LENGTH} bytes, got {len(b)}")
        return super().__new__(cls, b)

    def to_hex(self) -> str:
        """Return the `0x`-prefixed hex form used on the wire."""
        return "0x" + bytes(self).hex()

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """
        Hook into Pydantic's validation system.

        Instances pass through, bytes and hex strings are coerced through
        the constructor, and serialization always produces `0x` hex.
        """

        def validate(value: Any) -> HexBytes:
            try:
                return cls(value)
            except TypeError as e:
                raise ValueError(str(e)) from e

        from_value = core_schema.no_info_plain_validator_function(validate)

        return core_schema.json_or_python_schema(
            json_schema=from_value,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_value],
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(lambda x: x.to_hex()),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_hex()})"


class BlockHash(HexBytes):
    """Block hash, exactly 32 bytes."""

    LENGTH = 32


class StorageKey(HexBytes):
    """Opaque storage key of any length."""
