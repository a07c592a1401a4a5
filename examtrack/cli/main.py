"""Entry point for the command-line interface."""

from __future__ import annotations

import argparse
import logging

from examtrack.application import ApplicationContext
from examtrack.log import configure_logging
from examtrack.settings import AppSettings, load_app_settings

from .commands import COMMANDS


def build_parser() -> argparse.ArgumentParser:
    """Construct argument parser for CLI commands."""
    parser = argparse.ArgumentParser(description="ExamTrack CLI")
    parser.add_argument(
        "--settings",
        help="path to JSON/TOML settings",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print debug messages",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    for name, cmd in COMMANDS.items():
        p = sub.add_parser(name, help=cmd.help)
        cmd.add_arguments(p)
        p.set_defaults(func=cmd.func)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = AppSettings()
    if args.settings:
        settings = load_app_settings(args.settings)
    configure_logging(
        logging.DEBUG if args.verbose else logging.WARNING,
        log_dir=settings.log_dir,
    )
    context = ApplicationContext(settings)
    args.app_settings = settings
    try:
        return args.func(args, context.tracker) or 0
    finally:
        context.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
