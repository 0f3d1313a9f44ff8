"""Command-line entry for selfie_calendar.

Prints the occurrences of one calendar window, read from a local snapshot
file or from the REST backend.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from typing import NoReturn, Optional

from . import run_calendar
from .calendar.date_utils import parse_date_only


def _date_arg(value: str) -> date:
    parsed = parse_date_only(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)")
    return parsed


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the selfie_calendar CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="selfie-calendar",
        description="Expand recurring events and activities into calendar occurrences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m selfie_calendar --data snapshot.yaml                  # Current month
  python -m selfie_calendar --data snapshot.json --view week --at 2025-01-08
  python -m selfie_calendar --api-url http://localhost:3000 --from 2025-01-01 --to 2025-02-01 --json
        """,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--data", metavar="FILE", help="JSON or YAML snapshot with events and activities")
    source.add_argument("--api-url", metavar="URL", help="Base URL of the REST backend")

    parser.add_argument(
        "--view",
        choices=("month", "week", "day"),
        help="Calendar view used to pick the window (default: from config, else month)",
    )
    parser.add_argument(
        "--at",
        type=_date_arg,
        metavar="DATE",
        help="Anchor date of the view (default: now, honoring SELFIE_VIRTUAL_NOW)",
    )
    parser.add_argument("--from", dest="from_date", type=_date_arg, metavar="DATE", help="Window start (inclusive)")
    parser.add_argument("--to", dest="to_date", type=_date_arg, metavar="DATE", help="Window end (exclusive)")
    parser.add_argument("--json", action="store_true", help="Print occurrences as JSON")
    parser.add_argument("--config", metavar="FILE", help="YAML or JSON config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the selfie_calendar CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    sys.exit(run_calendar(args))


if __name__ == "__main__":
    main()
