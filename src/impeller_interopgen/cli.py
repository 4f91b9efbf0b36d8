# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Command-line entry point for impeller-interopgen.

Takes exactly one argument, the path of the Impeller C header, and writes
``<header stem>_bindings.py`` next to it.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from ._version import __version__
from .errors import InteropGenError
from .generator import generate
from .logging import configure_logging
from .reporting import (
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    SilentReporter,
    get_reporter,
    set_reporter,
    set_verbosity,
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="impeller-interopgen",
        description="Generate Python ctypes bindings from the Impeller C header",
    )
    p.add_argument("header", type=Path, help="Path to impeller.h")
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print fatal errors",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and render without writing the output file",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"impeller-interopgen {__version__}",
    )
    return p


def _select_reporter(args: argparse.Namespace) -> None:
    requested = "silent" if args.quiet else args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich":
        if sys.stderr.isatty():
            set_reporter(RichReporter())
        else:
            # Fallback quietly to plain if no TTY
            set_reporter(PlainReporter())
    else:  # plain
        set_reporter(PlainReporter())


def _fail(
    args: argparse.Namespace,
    message: str,
    diagnostics: list[str] | None = None,
    **fields,
) -> int:
    if args.quiet:
        # Diagnostics were only logged to the silent reporter.
        for diag in diagnostics or ():
            print(diag, file=sys.stderr)
        print(message, file=sys.stderr)
    else:
        get_reporter().error(message, **fields)
    get_reporter().flush()
    return 1


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    if sys.platform.startswith("linux"):
        os.environ.setdefault("LIBCLANG_DISABLE_CRASH_RECOVERY", "1")

    parser = build_parser()
    args = parser.parse_args(argv)
    _select_reporter(args)
    set_verbosity(args.verbose)
    configure_logging(args.verbose)

    header: Path = args.header
    if not header.is_file():
        return _fail(args, f"File not found: {header}", path=str(header))

    try:
        generate(header, dry_run=args.dry_run)
    except InteropGenError as e:
        return _fail(
            args,
            str(e),
            diagnostics=(e.context or {}).get("diagnostics"),
            code=e.code,
        )
    get_reporter().flush()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
