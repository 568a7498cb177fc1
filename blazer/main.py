#!/usr/bin/env python3
"""blazer/main.py — CLI entry-point for the blazer linter.

Usage examples
--------------
    # Analyse the Go module in the current directory
    blazer

    # Analyse another directory, without test files, with progress logs
    blazer -C ~/src/project --no-tests -v

    # Use a custom compiler invocation and give up after five minutes
    blazer --build-command "go build -a -tags integration -gcflags -S ./..." --timeout 300

Exit codes
----------
    0   Success, no eliminated branch found.
    1   One or more eliminated branches were reported.
    2   Setup or compiler failure (nothing is reported).

The module doubles as ``python -m blazer`` via ``blazer/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
import textwrap
from typing import Optional, Sequence

from blazer import __version__
from blazer.config import (
    DEFAULT_GENERATED_MARKER,
    DEFAULT_SUPPRESSION_MARKER,
    BlazerConfig,
)
from blazer.errors import CompilerError, CompilerFailedError, SetupError
from blazer.pipeline import run
from blazer.reporter import Reporter

_log = logging.getLogger("blazer")

EXIT_OK: int = 0
EXIT_FINDINGS: int = 1
EXIT_INFRA: int = 2
EXIT_INTERRUPTED: int = 130


def _configure_logging(verbosity: int) -> None:
    """Set up the ``blazer`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("blazer")
    for handler in list(root.handlers):
        if getattr(handler, "_blazer_cli", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._blazer_cli = True  # type: ignore[attr-defined]
    root.setLevel(level)
    root.addHandler(handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blazer",
        description=(
            "Report Go conditionals that look effectful (they call something\n"
            "or return) but for which the compiler emitted no machine code."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            suppress a finding with a comment on the 'if' line or the line above:
              // blazer:ignore
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "-C", "--directory",
        metavar="DIR",
        default=None,
        help="Project directory (default: current directory).",
    )
    parser.add_argument(
        "--no-tests",
        dest="include_tests",
        action="store_false",
        help="Compile and analyse without _test.go files.",
    )
    parser.add_argument(
        "--build-command",
        metavar="CMD",
        default=None,
        help="Compiler command printing assembly to stderr (shell-quoted).",
    )
    parser.add_argument(
        "--generated-marker",
        metavar="TEXT",
        default=DEFAULT_GENERATED_MARKER,
        help="Skip files whose path contains TEXT (default: %(default)s).",
    )
    parser.add_argument(
        "--suppression-marker",
        metavar="TEXT",
        default=DEFAULT_SUPPRESSION_MARKER,
        help="Comment text that suppresses a finding (default: %(default)s).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Abort if the compiler runs longer than this.",
    )
    colour = parser.add_mutually_exclusive_group()
    colour.add_argument(
        "--color", "--colour",
        dest="colour",
        action="store_const",
        const=True,
        default=None,
        help="Always colour the output.",
    )
    colour.add_argument(
        "--no-color", "--no-colour",
        dest="colour",
        action="store_const",
        const=False,
        help="Never colour the output.",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> BlazerConfig:
    return BlazerConfig(
        working_dir=args.directory,
        build_command=shlex.split(args.build_command) if args.build_command else None,
        include_tests=args.include_tests,
        generated_marker=args.generated_marker,
        suppression_marker=args.suppression_marker,
        timeout_seconds=args.timeout,
        colour=args.colour,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the blazer CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    _log.info("Welcome to Blazer linter!")

    config = config_from_args(args)
    reporter = Reporter(colour=config.colour)
    try:
        run(config, on_finding=reporter.report)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return EXIT_INTERRUPTED
    except SetupError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except CompilerFailedError as exc:
        _log.error("Compilation failed with status %d", exc.returncode)
        for line in exc.tail:
            _log.error("  %s", line)
        return EXIT_INFRA
    except CompilerError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    stats = reporter.finish()
    return EXIT_FINDINGS if stats.findings else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
