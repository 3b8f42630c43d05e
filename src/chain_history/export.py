"""JSON export of snapshots, change sets, blocks and boundaries."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter

logger = logging.getLogger(__name__)


def to_json(value: BaseModel | Sequence[BaseModel]) -> bytes:
    """
    Serialize a record or a list of records as pretty-printed JSON.

    Field names use the node's camelCase and all bytes are `0x` hex.
    """
    if isinstance(value, BaseModel):
        return value.model_dump_json(indent=2, by_alias=True).encode()
    adapter: TypeAdapter[Any] = TypeAdapter(list[type(value[0])] if value else list[Any])
    return adapter.dump_json(list(value), indent=2, by_alias=True)


def write_json(path: Path, value: BaseModel | Sequence[BaseModel]) -> None:
    """Write `value` to `path` as JSON, replacing any existing file."""
    data = to_json(value)
    path.write_bytes(data)
    logger.info("Wrote %d bytes to %s", len(data), path)
