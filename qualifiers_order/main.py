"""
qualifiers_order/main.py
========================

Command-line front end.

Usage
-----
    qualifiers-order [options] <file> [<file> ...]
    python -m qualifiers_order [options] <file> ...

Exit codes
----------
    0   no findings
    1   findings reported (also after ``--fix``)
    2   infrastructure failure: bad configuration, or a file that could
        not be read (the remaining files are still checked and reported)
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

from qualifiers_order import __version__
from qualifiers_order.config import QualifiersOrderConfig, find_config, load_config
from qualifiers_order.errors import QualifiersOrderError
from qualifiers_order.planner import QualifierAlignment
from qualifiers_order.reporter import OutputFormat, Reporter
from qualifiers_order.runner import CheckRunner, FileResult
from qualifiers_order.types import Qualifier

_log = logging.getLogger("qualifiers_order")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``qualifiers_order`` logger.

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

    root = logging.getLogger("qualifiers_order")
    root.setLevel(level)
    if any(getattr(h, "_qualifiers_order", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._qualifiers_order = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _load_settings(args: argparse.Namespace) -> QualifiersOrderConfig:
    """Config file (explicit or discovered) with CLI flags on top."""
    if args.config:
        config = load_config(args.config)
    else:
        found = find_config(Path.cwd())
        config = load_config(found) if found else QualifiersOrderConfig()
        if found:
            _log.info("using configuration %s", found)
    return config.merged(
        alignment=QualifierAlignment.from_string(args.alignment) if args.alignment else None,
        qualifier=Qualifier.from_string(args.qualifier) if args.qualifier else None,
    )


def _report(results: List[FileResult], args: argparse.Namespace) -> int:
    findings = failed = 0
    with Reporter(stream=sys.stdout, output_format=OutputFormat(args.format),
                  colour=None if args.color == "auto" else args.color == "always") as rep:
        for result in results:
            if result.error is not None:
                failed += 1
                continue
            if result.unit is not None:
                rep.register_source(result.unit.buffer)
            for finding in result.findings:
                rep.report_finding(finding)
            findings += len(result.findings)

            if args.diff:
                sys.stdout.write(result.diff())
            elif args.fix and result.findings:
                fixed = CheckRunner.write_fixes(result)
                rep.stats.fixed += len(fixed.applied)
    if failed:
        return EXIT_INFRA
    return EXIT_ERROR if findings else EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qualifiers-order",
        description=(
            "Check that 'const' (or another qualifier) is written on one\n"
            "fixed side of the type it qualifies, and optionally fix it."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              qualifiers-order src/*.c
              qualifiers-order --alignment Right --diff include/api.h
              qualifiers-order --config .qualifiers-order --fix src/*.cpp
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
    parser.add_argument("files", nargs="*", metavar="FILE", help="C/C++ sources to check.")
    parser.add_argument(
        "--alignment",
        choices=[a.value for a in QualifierAlignment],
        help="Where the qualifier belongs (default: Left, or the config file).",
    )
    parser.add_argument(
        "--qualifier",
        choices=[q.value for q in Qualifier],
        help="Qualifier to check (default: const).",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="S-expression configuration file (default: nearest .qualifiers-order).",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Diagnostic output format.",
    )
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Colourise text output.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--fix", action="store_true", help="Rewrite files in place.")
    mode.add_argument("--diff", action="store_true", help="Print fixes as a unified diff.")
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI; returns the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.files:
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        config = _load_settings(args)
        runner = CheckRunner(config)
        results = runner.check_files(args.files)
        return _report(results, args)
    except QualifiersOrderError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
