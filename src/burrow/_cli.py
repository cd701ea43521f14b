"""Burrow CLI — burrow routes / burrow watch.

Entry point for the ``burrow`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the burrow CLI."""
    parser = argparse.ArgumentParser(
        prog="burrow",
        description="File-system routes with live handler hot reload.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # burrow routes
    routes_parser = subparsers.add_parser(
        "routes",
        help="Load the app tree and print the route table",
    )
    routes_parser.add_argument(
        "directory", nargs="?", default=".", help="Directory containing app/",
    )
    routes_parser.add_argument("--app-dir", default=None, help="App root directory name")

    # burrow watch
    watch_parser = subparsers.add_parser(
        "watch",
        help="Load the app tree and hot reload handlers until interrupted",
    )
    watch_parser.add_argument(
        "directory", nargs="?", default=".", help="Directory containing app/",
    )
    watch_parser.add_argument("--app-dir", default=None, help="App root directory name")
    watch_parser.add_argument(
        "--granularity",
        choices=("file", "export"),
        default=None,
        help="Swap every export of a changed file, or only changed exports",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from burrow import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from burrow._errors import BurrowError
    from burrow.app import Burrow
    from burrow.config_loader import load_config
    from burrow.dispatch import HandlerStack

    try:
        if args.command == "routes":
            config = load_config(Path(args.directory), verbose=True, app_dir=args.app_dir)
            Burrow(HandlerStack(), config).initialize()
        elif args.command == "watch":
            config = load_config(
                Path(args.directory),
                verbose=True,
                hot_reload=True,
                app_dir=args.app_dir,
                swap_granularity=args.granularity,
            )
            with Burrow(HandlerStack(), config) as burrow:
                burrow.initialize()
                print("\n  Watching for changes... (Ctrl+C to stop)", file=sys.stderr)
                try:
                    while True:
                        time.sleep(1.0)
                except KeyboardInterrupt:
                    pass
    except BurrowError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
