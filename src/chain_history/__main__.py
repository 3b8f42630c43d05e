"""
Chain history CLI entry point.

Query a Substrate node for historical pallet state and storage.

Usage::

    python -m chain_history migrations --target-version 9
    python -m chain_history print-blocks --target-version 12 --pallet Contracts
    python -m chain_history dump-storage --block 0 --children --out db.json
    python -m chain_history change-sets --from-block 0 --out change_sets.json
    python -m chain_history block --out blocks.json

Options:
    --rpc-url           Node HTTP endpoint (default: CHAIN_HISTORY_RPC_URL or
                        http://127.0.0.1:9944)
    --timeout           Per-request timeout in seconds
    --page-size         Keys per paged listing request
    --max-concurrency   Maximum in-flight requests during fan-out
    --metrics           Print Prometheus metrics when done
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from chain_history.config import RPC_URL
from chain_history.export import write_json
from chain_history.metrics import generate_metrics
from chain_history.migration import (
    BlockStateProbe,
    MigrationBoundaryLocator,
    stop_at_version,
    walk_until_version,
)
from chain_history.rpc import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT,
    MAX_CONCURRENT_REQUESTS,
    MAX_PAGE_SIZE,
    ChainQueryFacade,
    NodeClient,
)
from chain_history.storage import SnapshotReader
from chain_history.storage.keys import DEFAULT_PALLET
from chain_history.types import BlockHash, ChainHistoryError

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Formatter that tints the level name and dims the timestamp and logger."""

    DIM = "\x1b[2m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[38;5;244m",
        logging.INFO: "\x1b[38;5;40m",
        logging.WARNING: "\x1b[38;5;220m",
        logging.ERROR: "\x1b[38;5;196m",
        logging.CRITICAL: "\x1b[38;5;196;1m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        prefix = f"{self.DIM}{self.formatTime(record, self.datefmt)} {record.name}{self.RESET}"
        return f"{prefix} {color}{record.levelname:8}{self.RESET} {record.getMessage()}"


LOG_HANDLER_NAME = "chain_history"
"""Name of the root handler installed by `setup_logging`."""


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """
    Configure logging with optional colors.

    Calling it again replaces the handler it installed before, so repeated
    in-process runs do not duplicate log lines.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.set_name(LOG_HANDLER_NAME)
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(name)s %(levelname)-8s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == LOG_HANDLER_NAME]:
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every request at INFO; keep that for --verbose only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


async def _resolve(facade: ChainQueryFacade, block: int | None) -> BlockHash | None:
    """Block number to hash; None stays None (best block)."""
    if block is None:
        return None
    return await facade.block_hash_at(block)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


async def cmd_migrations(facade: ChainQueryFacade, args: argparse.Namespace) -> None:
    """Print every migration boundary, newest first."""
    locator = MigrationBoundaryLocator(BlockStateProbe(facade, pallet=args.pallet))
    stop = stop_at_version(args.target_version) if args.target_version is not None else None

    async for state in locator.history(args.block, stop):
        migrating = "migration in progress" if state.migration_in_progress else "idle"
        print(f"{state.block_number} -> version {state.version} ({migrating})")


async def cmd_print_blocks(facade: ChainQueryFacade, args: argparse.Namespace) -> None:
    """Print every block back to the target version."""
    probe = BlockStateProbe(facade, pallet=args.pallet)
    async for state, timestamp in walk_until_version(probe, args.target_version, args.block):
        print(f"{state.block_number} -> {timestamp.isoformat()} -> {state.version}")


async def cmd_dump_storage(facade: ChainQueryFacade, args: argparse.Namespace) -> None:
    """Export every key/value pair at a block."""
    reader = SnapshotReader(
        facade,
        page_size=args.page_size,
        max_concurrency=args.max_concurrency,
    )
    at = await _resolve(facade, args.block)
    snapshot = await reader.snapshot(
        at,
        prefix=args.prefix,
        include_children=args.children,
    )
    write_json(args.out, snapshot)


async def cmd_change_sets(facade: ChainQueryFacade, args: argparse.Namespace) -> None:
    """Export the change history of the current keys since a block."""
    reader = SnapshotReader(
        facade,
        page_size=args.page_size,
        max_concurrency=args.max_concurrency,
    )
    from_block = await facade.block_hash_at(args.from_block)
    to_block = await _resolve(facade, args.to_block)
    change_sets = await reader.change_sets(
        from_block,
        to_block,
        prefix=args.prefix,
    )
    write_json(args.out, change_sets)


async def cmd_block(facade: ChainQueryFacade, args: argparse.Namespace) -> None:
    """Export one raw block."""
    block = await facade.get_block(await _resolve(facade, args.block))
    write_json(args.out, block)


COMMANDS = {
    "migrations": cmd_migrations,
    "print-blocks": cmd_print_blocks,
    "dump-storage": cmd_dump_storage,
    "change-sets": cmd_change_sets,
    "block": cmd_block,
}


async def run(args: argparse.Namespace) -> None:
    """Open a node session and run the selected command."""
    async with NodeClient(args.rpc_url, timeout=args.timeout) as client:
        logger.info("Connected to %s", args.rpc_url)
        await COMMANDS[args.command](client, args)


def _page_size(value: str) -> int:
    size = int(value)
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise argparse.ArgumentTypeError(f"page size must be in [1, {MAX_PAGE_SIZE}]")
    return size


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}") from exc


def _positive(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per export or search."""
    parser = argparse.ArgumentParser(
        prog="chain-history",
        description="Historical pallet state and storage queries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--rpc-url",
        default=RPC_URL,
        help=f"Node HTTP endpoint (default: {RPC_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--page-size",
        type=_page_size,
        default=DEFAULT_PAGE_SIZE,
        help=f"Keys per paged listing request (default: {DEFAULT_PAGE_SIZE})",
    )
    parser.add_argument(
        "--max-concurrency",
        type=_positive,
        default=MAX_CONCURRENT_REQUESTS,
        help=f"Maximum in-flight requests (default: {MAX_CONCURRENT_REQUESTS})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored logging output")
    parser.add_argument("--metrics", action="store_true", help="Print Prometheus metrics when done")

    sub = parser.add_subparsers(dest="command", required=True)

    migrations = sub.add_parser("migrations", help="List migration boundaries, newest first")
    migrations.add_argument("--block", type=int, default=None, help="Start block (default: head)")
    migrations.add_argument(
        "--target-version",
        type=int,
        default=None,
        help="Stop at the first idle state with a version at or below this",
    )
    migrations.add_argument("--pallet", default=DEFAULT_PALLET, help="Pallet to track")

    print_blocks = sub.add_parser("print-blocks", help="Print every block back to a version")
    print_blocks.add_argument("--target-version", type=int, required=True)
    print_blocks.add_argument("--block", type=int, default=None, help="Start block (default: head)")
    print_blocks.add_argument("--pallet", default=DEFAULT_PALLET, help="Pallet to track")

    dump = sub.add_parser("dump-storage", help="Export all storage at a block")
    dump.add_argument("--block", type=int, default=None, help="Block number (default: best)")
    dump.add_argument("--prefix", type=_hex_bytes, default=b"", help="Hex key prefix")
    dump.add_argument("--children", action="store_true", help="Include child trie contents")
    dump.add_argument("--out", type=Path, default=Path("db.json"))

    changes = sub.add_parser("change-sets", help="Export storage changes since a block")
    changes.add_argument("--from-block", type=int, required=True)
    changes.add_argument("--to-block", type=int, default=None, help="Last block (default: best)")
    changes.add_argument("--prefix", type=_hex_bytes, default=b"", help="Hex key prefix")
    changes.add_argument("--out", type=Path, default=Path("change_sets.json"))

    block = sub.add_parser("block", help="Export a raw block")
    block.add_argument("--block", type=int, default=None, help="Block number (default: best)")
    block.add_argument("--out", type=Path, default=Path("blocks.json"))

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.no_color)

    try:
        asyncio.run(run(args))
    except ChainHistoryError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    finally:
        if args.metrics:
            sys.stdout.write(generate_metrics().decode())

    return 0


if __name__ == "__main__":
    sys.exit(main())
