"""Unified command-line interface for the twistctl toolkit.

The parser definitions are delegated to the individual CLI modules under
``twistctl.cli`` so the entry point stays lightweight and imports stay fast.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from twistctl.cli import extension, pinv
from twistctl.cli.utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="twistctl", description="twist controller math CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging with timestamps")
    sub = parser.add_subparsers(dest="command", required=True)

    pinv.register_subparsers(sub)
    extension.register_subparsers(sub)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
