"""mdwatch CLI — mdwatch [-s] [-w] [-v] [FILE].

Entry point for the ``mdwatch`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import NoReturn

_EPILOG = """\
With no flags the rendered HTML fragment is written to standard output.
-s writes a full page to a temp file and opens it in a browser.
-w watches FILE and serves a live preview on a loopback port; the
preview updates whenever FILE changes and mdwatch exits when the
browser tab is closed.  -w implies -s and needs a FILE (standard
input cannot be watched).
"""


class _Parser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the mdwatch CLI."""
    parser = _Parser(
        prog="mdwatch",
        description="Render markdown to HTML, optionally as a live browser preview.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "-s", "--serve", action="store_true", help="Open the rendered page in a browser",
    )
    parser.add_argument(
        "-w", "--watch", action="store_true",
        help="Serve a live preview that follows changes to FILE (implies -s)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print debug output to stderr",
    )
    parser.add_argument(
        "--no-browser", dest="open_browser", action="store_false",
        help="Do not launch a browser",
    )
    parser.add_argument(
        "file", nargs="?", default=None, help="Markdown file (default: standard input)",
    )
    return parser


def _get_version() -> str:
    """Get the package version."""
    from mdwatch import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.watch and args.file is None:
        parser.error("-w needs a FILE to watch")

    from mdwatch._errors import MdwatchError, UsageError
    from mdwatch.app import run
    from mdwatch.config_loader import load_config

    # Only flags actually given override mdwatch.yaml.
    overrides: dict[str, object] = {}
    if args.verbose:
        overrides["verbose"] = True
    if not args.open_browser:
        overrides["open_browser"] = False

    try:
        config = load_config(
            Path.cwd(),
            path=Path(args.file) if args.file is not None else None,
            serve=args.serve,
            watch=args.watch,
            **overrides,
        )
    except UsageError as exc:
        parser.error(str(exc))
    except MdwatchError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        run(config)
    except MdwatchError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
