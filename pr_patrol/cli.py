"""
CLI wrapper for gh-pr-patrol.

CLI glue lives here so the pipeline modules stay free of argparse, logging setup
and exit-code handling.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Callable, Mapping, Optional, Sequence

import requests

from . import __version__
from .config import DEFAULT_MAX_WORKERS, DEFAULT_OUTDATE_INTERVAL_S, RunOptions, load_config, parse_workflow_filters
from .context import PatrolContext, utc_now
from .exceptions import ConfigError, PatrolError
from .pipeline import Pipeline

logger = logging.getLogger(__name__)


def _non_negative_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if f < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value!r}")
    return f


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1: {value!r}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-pr-patrol",
        description="Re-trigger stale-but-successful Bitrise builds on open GitHub pull requests.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Required environment:
  GITHUB_REPOSITORY, GITHUB_ACCESS_TOKEN, BITRISE_API_TOKEN,
  BITRISE_BUILD_TRIGGER_TOKEN, APP_SLUG

Examples:
  # Rebuild every successful build older than 24h
  %(prog)s

  # Only the "primary" and "deploy" workflows, 12h threshold
  %(prog)s -f primary,deploy -i 43200

  # See what would be rebuilt, at most 2 submissions at a time
  %(prog)s --dry-run --parallel-rebuild 2
""",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "-f",
        dest="workflow_filters",
        metavar="WORKFLOWS",
        help="Comma-separated workflow allow-list (default: all workflows)",
    )
    parser.add_argument(
        "-i",
        dest="outdate_interval",
        metavar="SECONDS",
        type=_non_negative_float,
        default=DEFAULT_OUTDATE_INTERVAL_S,
        help=f"Minimum age of a successful build before it is rebuilt (default: {int(DEFAULT_OUTDATE_INTERVAL_S)})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Log what would be triggered, never POST")
    parser.add_argument(
        "--parallel-rebuild",
        metavar="N",
        type=_positive_int,
        default=None,
        help="Max concurrent trigger submissions (default: unlimited)",
    )
    parser.add_argument(
        "--max-workers",
        metavar="N",
        type=_positive_int,
        default=DEFAULT_MAX_WORKERS,
        help=f"Worker threads for per-PR chains (default: {DEFAULT_MAX_WORKERS})",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging (REST calls, stats)")
    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stdout,
    )


def options_from_args(args: argparse.Namespace) -> RunOptions:
    return RunOptions(
        workflow_filters=parse_workflow_filters(args.workflow_filters),
        outdate_interval_s=float(args.outdate_interval),
        dry_run=bool(args.dry_run),
        parallel_rebuild=args.parallel_rebuild,
        max_workers=int(args.max_workers),
    )


def run(
    argv: Optional[Sequence[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    session: Optional[requests.Session] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> int:
    """Parse args, validate config, run the pipeline once. Returns the process exit code.

    environ, session and clock default to the real process environment, a fresh
    requests.Session and the UTC wall clock.
    """
    argv = list(argv) if argv is not None else sys.argv[1:]
    # Version wins over every other flag, valid or not.
    if "-v" in argv or "--version" in argv:
        print(__version__)
        return 0
    args = build_parser().parse_args(argv)

    setup_logging(bool(args.verbose))

    try:
        config = load_config(environ)
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    ctx = PatrolContext.from_config(config, options_from_args(args), session=session, clock=clock or utc_now)

    try:
        summary = Pipeline(ctx).run()
    except PatrolError as e:
        logger.error("fatal: %s", e)
        return 1
    finally:
        logger.debug("github REST stats: %s", json.dumps(ctx.github.get_rest_call_stats(), sort_keys=True))
        logger.debug("bitrise REST stats: %s", json.dumps(ctx.bitrise.get_rest_call_stats(), sort_keys=True))

    logger.info("%s", summary.describe())
    logger.info("finished")
    return summary.exit_code


def main() -> None:
    raise SystemExit(run())
