"""Command-line interface for bedgate."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import constants
from .app import GatewayApp, GatewayStartupError
from .codec import CodecError
from .config import load_config
from .telemetry import BatchItemDecoder, EnvelopeError, read_archived_envelope

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bedgate", description="Local gateway for smart-bed controller firmware"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the gateway service")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    decode_parser = subparsers.add_parser(
        "decode-archive", help="Decode archived telemetry batches and print their items"
    )
    decode_parser.add_argument("paths", nargs="+", type=Path, help="Archived batch files")

    return parser


def decode_archives(paths: List[Path]) -> int:
    decoder = BatchItemDecoder()
    failures = 0
    for path in paths:
        try:
            envelope = read_archived_envelope(path)
        except (OSError, CodecError, EnvelopeError) as exc:
            LOGGER.error("Cannot read archived batch %s: %s", path, exc)
            failures += 1
            continue

        if envelope.stream is None:
            print(f"{path}: batch {envelope.id} has no stream")
            continue

        batch_id = envelope.id if envelope.id is not None else -1
        outcomes = asyncio.run(decoder.decode(batch_id, envelope.stream))
        print(f"{path}: batch {envelope.id}, {len(outcomes)} items")
        for outcome in outcomes:
            if outcome.record is not None:
                print(f"  seq={outcome.seq} {outcome.record!r}")
            else:
                print(f"  seq={outcome.seq} discarded: {outcome.error}")
    return 1 if failures else 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        try:
            GatewayApp.start(config)
        except GatewayStartupError as exc:
            LOGGER.error("Startup failed: %s", exc)
            return 1
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    if args.command == "decode-archive":
        return decode_archives(args.paths)

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
