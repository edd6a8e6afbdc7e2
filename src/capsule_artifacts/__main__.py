"""python -m capsule_artifacts  –  resolve build artifacts from the command line.

Commands
--------
resolve
    Load an ``artifacts.yaml`` build description, resolve the artifacts of
    its task for every component and print a summary (optionally a JSON
    report).

match
    Print the files a set of glob patterns matches under a directory, the
    way an artifact definition would see them.

Examples
--------
Resolve the artifacts of a build and keep a report::

    python -m capsule_artifacts resolve --config artifacts.yaml --report out/report.json

Preview a definition's patterns inside a capsule::

    python -m capsule_artifacts match /tmp/capsules/ui-button "dist/**" "!dist/**/*.map"
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from capsule_artifacts.exceptions import ArtifactError


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ── sub-command handlers ─────────────────────────────────────────────────────

def _cmd_resolve(args: argparse.Namespace) -> int:
    from capsule_artifacts.yaml_runner import run_resolve

    try:
        run_resolve(args.config, report_path=args.report)
    except (FileNotFoundError, ValueError, ArtifactError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def _cmd_match(args: argparse.Namespace) -> int:
    from capsule_artifacts.paths import PathResolver

    if not args.root.is_dir():
        print(f"error: directory not found: {args.root}", file=sys.stderr)
        return 1
    try:
        paths = PathResolver().resolve(args.root, args.patterns)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for path in paths:
        print(path)
    return 0


# ── argument parser ──────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m capsule_artifacts",
        description="Resolve component build artifacts from capsules",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # ── resolve ──────────────────────────────────────────────────────────────
    p_re = sub.add_parser("resolve", help="Resolve artifacts described by a YAML config")
    p_re.add_argument(
        "--config",
        type=Path,
        default=Path("artifacts.yaml"),
        metavar="FILE",
        help="Build description (default: artifacts.yaml)",
    )
    p_re.add_argument(
        "--report",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write a JSON report of the resolved artifacts to FILE",
    )

    # ── match ────────────────────────────────────────────────────────────────
    p_ma = sub.add_parser("match", help="Show the files glob patterns match under a directory")
    p_ma.add_argument("root", type=Path, help="Directory the patterns are relative to")
    p_ma.add_argument("patterns", nargs="+", help="Glob patterns ('!' prefix excludes)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "resolve":
        return _cmd_resolve(args)
    if args.command == "match":
        return _cmd_match(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
