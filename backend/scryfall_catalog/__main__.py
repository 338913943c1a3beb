"""Command-line entry point: python -m scryfall_catalog INVENTORY.csv"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .config import MAX_BATCH_SIZE, MIN_BATCH_SIZE, ScryfallConfig
from .pipeline import convert_file


def batch_size_arg(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {raw!r}")
    if not MIN_BATCH_SIZE <= value <= MAX_BATCH_SIZE:
        raise argparse.ArgumentTypeError(
            f"must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, got {value}"
        )
    return value


def delay_arg(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {raw!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a card scanner export into a Shopify product CSV using Scryfall data."
    )
    parser.add_argument("input", type=Path, help="Scanner inventory CSV")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Catalog CSV to write (default: <input>_shopify.csv)",
    )
    parser.add_argument(
        "--batch-size",
        type=batch_size_arg,
        default=None,
        help=f"Cards per lookup ({MIN_BATCH_SIZE}-{MAX_BATCH_SIZE})",
    )
    parser.add_argument(
        "--delay",
        type=delay_arg,
        default=None,
        help="Seconds between batch dispatches",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not args.input.exists():
        logging.error("Input file does not exist: %s", args.input)
        return 1

    config = ScryfallConfig.from_env()
    if args.batch_size is not None:
        config = replace(config, batch_size=args.batch_size)
    if args.delay is not None:
        config = replace(config, dispatch_delay_seconds=args.delay)

    output = args.output or args.input.with_name(args.input.stem + "_shopify.csv")
    result = asyncio.run(convert_file(args.input, output, scryfall_config=config))

    print(
        f"Parsed {len(result.parse.records)} cards "
        f"({len(result.parse.skipped)} lines skipped), "
        f"{result.run.succeeded_batches}/{result.run.total_batches} batches succeeded, "
        f"{len(result.rows)} products exported"
    )
    if result.is_empty:
        return 1
    print(f"Catalog written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
