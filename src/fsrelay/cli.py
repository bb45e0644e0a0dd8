#!/usr/bin/env python3
"""
CLI for watching folders and logging every coalesced change.

Usage:
    fsrelay src docs --base /path/to/project
    fsrelay . --debounce 0 --ignore "*.log" --ignore "node_modules/*"
    python -m fsrelay.cli /mnt/share --polling -v
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_IGNORE_PATTERNS, WatchOptions, ignore_patterns
from .exceptions import ConfigurationError
from .pipeline import Context, Continuation
from .watcher import Watcher


logger = logging.getLogger("fsrelay")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def log_event(ctx: Context, call_next: Continuation) -> None:
    """Middleware that logs each delivered change."""
    size = ctx.file.st_size if ctx.file is not None else "-"
    logger.info(f"{ctx.event.value:<6} {ctx.path} (raw={ctx.raw_kind.value}, size={size})")
    await call_next()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fsrelay",
        description="Watch folders and log coalesced filesystem changes",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Roots to watch, relative to --base or absolute",
    )
    parser.add_argument(
        "--base",
        type=Path,
        default=None,
        help="Directory relative roots are resolved against (default: the current directory when the command runs)",
    )
    parser.add_argument(
        "--debounce",
        type=int,
        default=50,
        metavar="MS",
        help="Debounce window in milliseconds, 0 to disable (default: 50)",
    )
    parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        help="Only watch the roots themselves, not their subdirectories",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Glob pattern to ignore (repeatable, replaces the defaults)",
    )
    parser.add_argument(
        "--polling",
        action="store_true",
        help="Use the polling observer (network filesystems)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def build_watcher(args: argparse.Namespace) -> Watcher:
    """Create a watcher from parsed arguments."""
    patterns = args.ignore if args.ignore is not None else DEFAULT_IGNORE_PATTERNS
    base = args.base if args.base is not None else Path.cwd()
    options = WatchOptions(
        base=base.resolve(),
        recursive=args.recursive,
        debounce_ms=args.debounce or None,
        ignore=ignore_patterns(patterns),
        use_polling=args.polling,
    )
    watcher = Watcher(options, args.paths)
    watcher.use(log_event)
    return watcher


async def run(watcher: Watcher) -> None:
    """Run a watcher until SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def _handler():
        logger.info("Received shutdown signal, stopping...")
        watcher.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handler)
        except NotImplementedError:
            # Windows event loops do not support add_signal_handler
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(_handler))

    @watcher.on_ready
    def _ready():
        for root in watcher.paths:
            logger.info(f"  - {root}")
        logger.info("Press Ctrl+C to stop")

    await watcher.watch()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        watcher = build_watcher(args)
    except ValueError as e:
        logger.error(f"Invalid option: {e}")
        return 2

    try:
        asyncio.run(run(watcher))
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    except OSError as e:
        logger.error(f"Failed to watch: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
