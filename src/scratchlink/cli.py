"""Command line entry point: ``scratchlink``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace

from .config import DEFAULT_HOST, DEFAULT_PATH, DEFAULT_PORT, LinkConfig
from .logging_setup import setup_logging
from .server import serve

_LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scratchlink",
        description="Expose BLE peripherals to Scratch over a WebSocket.",
    )
    parser.add_argument("--host", help=f"listen address (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, help=f"listen port (default: {DEFAULT_PORT})")
    parser.add_argument("--path", help=f"WebSocket path (default: {DEFAULT_PATH})")
    parser.add_argument("--certfile", help="TLS certificate (PEM); serves wss:// with --keyfile")
    parser.add_argument("--keyfile", help="TLS private key (PEM)")
    parser.add_argument(
        "--operation-timeout",
        type=float,
        help="seconds before a device operation fails (0 disables)",
    )
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=None,
        help="debug logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> LinkConfig:
    """Environment first, then command line flags on top."""
    overrides = {
        "host": args.host,
        "port": args.port,
        "path": args.path,
        "certfile": args.certfile,
        "keyfile": args.keyfile,
        "verbose": args.verbose,
    }
    config = LinkConfig.from_env().with_overrides(**overrides)
    if args.operation_timeout is not None:
        # 0 disables the bound, which with_overrides cannot express
        config = replace(config, operation_timeout=args.operation_timeout or None)
    return config


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        print(f"scratchlink: invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(verbose=config.verbose, log_file=args.log_file)
    _LOGGER.debug("Configuration: %s", config)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
