"""Interactive tile pool console.

Reads one command per line from stdin (or from script files) and prints
the resulting hand, wall summary and shanten/acceptance after each one.
Defaults come from TILEPOOL_* environment variables; flags override them.

Usage:
    uv run python bin/pool_console.py
    uv run python bin/pool_console.py --interactive --players 3
    uv run python bin/pool_console.py --json session.txt
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import structlog

from shared.logging import setup_logging
from tilepool.console.repl import run_lines
from tilepool.console.settings import ConsoleSettings, OutputFormat
from tilepool.logic.enums import PlayerCount
from tilepool.session.interactive import InteractiveSession

logger = structlog.get_logger()


def main() -> None:
    settings = ConsoleSettings()
    parser = argparse.ArgumentParser(description="Track a mahjong wall and hand and report shanten")
    parser.add_argument(
        "scripts",
        nargs="*",
        type=Path,
        help="command files to run instead of reading stdin",
    )
    parser.add_argument(
        "--players",
        type=int,
        choices=[int(p) for p in PlayerCount],
        default=int(settings.player_count),
        help=f"player count (default: {int(settings.player_count)})",
    )
    parser.add_argument(
        "--interactive",
        action=argparse.BooleanOptionalAction,
        default=settings.start_interactive,
        help="start in interactive mode instead of normal (hand evaluation) mode",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=settings.output_format is OutputFormat.JSON,
        help="print results as JSON",
    )
    parser.add_argument(
        "--log-dir",
        default=settings.log_dir,
        help="directory for a session log file",
    )
    args = parser.parse_args()

    output_format = OutputFormat.JSON if args.json else OutputFormat.TEXT
    # JSON results get JSON logs; otherwise LOG_FORMAT decides
    log_path = setup_logging(log_dir=args.log_dir, json_mode=True if args.json else None)
    session = InteractiveSession(PlayerCount(args.players), interactive=args.interactive)
    logger.info("console started", mode=session.mode, player_count=args.players, log_file=str(log_path))

    failures = 0
    if args.scripts:
        for script in args.scripts:
            if not script.exists():
                print(f"Script not found: {script}", file=sys.stderr)
                sys.exit(1)
            with script.open() as f:
                failures += run_lines(session, f, output_format=output_format)
    else:
        failures = run_lines(session, sys.stdin, output_format=output_format)

    # a script with rejected commands exits non-zero; an interactive stdin session never does
    if args.scripts and failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
