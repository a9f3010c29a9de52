#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Command-line entry point for figma-beacon.

Usage:
    beacon                                  # Interactive TUI
    beacon report --mode last_month         # Print a report to stdout
    beacon report --profile design --save   # Write it to the reports dir
    beacon profiles                         # List profiles
"""

import argparse
import sys
from typing import List, Optional

from beacon._version import __version__
from beacon.commands import dispatch_command
from beacon.models import TimeMode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beacon",
        description="figma-beacon - Figma team activity reports",
    )
    parser.add_argument(
        "--version", action="version", version=f"figma-beacon {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # report command - headless generation
    report_parser = subparsers.add_parser("report", help="Generate an activity report")
    report_parser.add_argument("--profile", "-p", help="Profile name (default profile if omitted)")
    report_parser.add_argument(
        "--mode",
        "-m",
        default=TimeMode.LAST_WEEK.value,
        help="Reporting period: " + ", ".join(m.value for m in TimeMode),
    )
    report_parser.add_argument(
        "--format", "-f", help="Output format: markdown, text or json (configured format if omitted)"
    )
    report_parser.add_argument(
        "--save", action="store_true", help="Write to the reports directory and print the path"
    )

    # profiles command
    subparsers.add_parser("profiles", help="List profiles")

    # tui command (also the default)
    subparsers.add_parser("tui", help="Launch the interactive TUI")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Default to the TUI when no subcommand given
    if not args.command:
        args.command = "tui"

    try:
        exit_code = dispatch_command(args)
    except RuntimeError as e:
        # Path.home() fails when no home directory can be determined
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
