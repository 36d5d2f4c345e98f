"""Entry point for the sgfreplay command line interface.

It supports four modes:

``check``    - parse and replay SGF files, reporting syntax errors, illegal
               moves and suspicious constructs.
``index``    - replay SGF files and store the capture-annotated logs in a
               binary game database.
``dump``     - read a game database back, verifying every stored log.
``rewrite``  - print SGF files in a normalised layout.

The exit status is 0 when nothing was reported, 1 after an error and 2 when
there were only warnings.
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from core.engine import Engine, EngineOptions
from core.errors import SgfError
from core.gamedb import DEFAULT_DATABASE
from monitoring.diagnostics import EXIT_ERRORS, Diagnostics, DiagnosticsPolicy
from monitoring.performance import PerformanceMonitor

PROGRAM = "sgfreplay"


def _load_config(path: str | None) -> Dict[str, Any]:
    """Load optional YAML/JSON configuration file."""

    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except FileNotFoundError:
        logging.warning("Config file %s not found", path)
        return {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logging.warning("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logging.warning("Config file %s does not hold a mapping", path)
        return {}
    return data


def _merge_options(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Command-line flags override values from the configuration file."""
    merged = dict(config)
    for key in ("ignore_errors", "strict", "quiet", "multi", "keep_case"):
        if getattr(args, key):
            merged[key] = True
    if args.encoding:
        merged["encoding"] = args.encoding
    return merged


def _run_check(engine: Engine, files: List[str], monitor: Optional[PerformanceMonitor]) -> None:
    games = engine.check(files)
    if monitor is not None:
        monitor.count("files", len(files))
        monitor.count("games", len(games))
        monitor.count("moves", sum(g.played.played_moves for g in games))
    logging.info("Checked %d game(s) in %d file(s)", len(games), len(files))


def _run_index(engine: Engine, files: List[str], output: str, monitor: Optional[PerformanceMonitor]) -> None:
    stored = engine.index(files, output)
    if monitor is not None:
        monitor.count("files", len(files))
        monitor.count("games", stored)


def _run_dump(engine: Engine, files: List[str]) -> None:
    for path in files:
        for entry in engine.dump(path):
            print(json.dumps(entry))


def _run_rewrite(engine: Engine, files: List[str]) -> None:
    for path in files:
        sys.stdout.write(engine.rewrite(path))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROGRAM, description="Replay and check SGF game records")
    parser.add_argument("--mode", choices=["check", "index", "dump", "rewrite"], default="check")
    parser.add_argument("files", nargs="*", help="SGF files ('-' for standard input) or databases")
    parser.add_argument("--output", default=DEFAULT_DATABASE, help="Database written by index mode")
    parser.add_argument("--config", help="Optional configuration YAML/JSON")
    parser.add_argument("-i", "--ignore-errors", dest="ignore_errors", action="store_true",
                        help="Skip a broken file or game and continue")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print warnings")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    parser.add_argument("--multi", action="store_true", help="Several games per file, junk in between")
    parser.add_argument("--keep-case", dest="keep_case", action="store_true",
                        help="Keep lower-case letters in property identifiers")
    parser.add_argument("--encoding", help="Encoding of property values (default utf-8)")
    parser.add_argument("--stats", action="store_true", help="Report time and memory usage")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``sgfreplay`` command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    config = _load_config(args.config)
    logging.debug("Loaded config: %s", config)
    settings = _merge_options(config, args)

    diagnostics = Diagnostics(DiagnosticsPolicy.from_mapping(settings), program=PROGRAM)
    engine = Engine(options=EngineOptions.from_mapping(settings), diagnostics=diagnostics)

    files = args.files
    if not files:
        files = [DEFAULT_DATABASE] if args.mode == "dump" else ["-"]

    monitor = PerformanceMonitor() if args.stats else None
    try:
        with monitor or contextlib.nullcontext():
            if args.mode == "check":
                _run_check(engine, files, monitor)
            elif args.mode == "index":
                _run_index(engine, files, args.output, monitor)
            elif args.mode == "dump":
                _run_dump(engine, files)
            elif args.mode == "rewrite":
                _run_rewrite(engine, files)
    except SgfError as exc:
        # already reported by the item boundary unless raised outside one
        if diagnostics.last_error is not exc:
            diagnostics.error(exc)
        return EXIT_ERRORS

    if monitor is not None:
        logging.info("%s", monitor.summary())
    return diagnostics.exit_status()


if __name__ == "__main__":
    sys.exit(main())
