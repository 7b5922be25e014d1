"""Command-line interface for running the prong selection on event inputs."""

from __future__ import annotations

import argparse
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any

from .config import SelectionConfig
from .errors import ConfigurationError
from .io import load_events_json, load_selection_config_json, write_candidates_table
from .models import CandidateRecord
from .runner import run_batches

LOGGER = logging.getLogger("prongsel.cli")


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="prong-selector",
        description="Select 2-prong and 3-prong secondary-vertex candidates against multiple decay hypotheses.",
    )
    parser.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    parser.add_argument(
        "--config",
        default=None,
        help="Selection config JSON (hypotheses, cut tables, track selection). Defaults to the built-in channels.",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for selected candidates (.parquet, .csv, .pkl).",
    )
    parser.add_argument("--hist-out", default=None, help="Optional .npz file for the monitoring histograms.")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Evaluate every stage and store the per-hypothesis cut status.",
    )
    parser.add_argument(
        "--do-3prong",
        action="store_true",
        default=None,
        help="Also build (+,-,+) and (-,+,-) 3-prong candidates.",
    )
    parser.add_argument(
        "--pt-tolerance",
        type=float,
        default=None,
        help="Added to the pre-fit candidate pT before the bin lookup.",
    )
    parser.add_argument("--n-workers", type=int, default=1, help="Number of worker processes.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file.")
    parser.add_argument(
        "--custom-script",
        default=None,
        help="Path to Python file with process(records, context) function.",
    )
    return parser


def _setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)] + ([logging.FileHandler(log_file)] if log_file else []),
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, run the selection, write outputs, optional custom hook."""
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level, args.log_file)

    try:
        config = load_selection_config_json(args.config) if args.config else SelectionConfig()
        config = config.with_overrides(
            debug=args.debug,
            do_3prong=args.do_3prong,
            pt_tolerance=args.pt_tolerance,
        )
        # Build once in the parent so configuration errors surface before any work starts.
        config.build_combiner()
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 2

    events = load_events_json(args.events)
    LOGGER.info("Loaded %d events from %s", len(events), args.events)
    table, histograms = run_batches(config, events, n_workers=args.n_workers)

    write_candidates_table(args.out, table.records)
    LOGGER.info("Wrote %d candidates to %s", len(table), args.out)
    if args.hist_out:
        histograms.save(args.hist_out)
        LOGGER.info("Wrote histograms to %s", args.hist_out)

    if args.custom_script:
        run_custom_script(
            script_path=args.custom_script,
            records=table.records,
            context={
                "events_path": args.events,
                "config_path": args.config,
                "config": config,
                "summaries": table.summaries,
                "histograms": histograms,
                "output_path": args.out,
            },
        )
    return 0


def run_custom_script(
    script_path: str, records: list[CandidateRecord], context: dict[str, Any]
) -> None:
    """Execute user-supplied post-processing callback `process(records, context)`."""
    module = _load_module(script_path)
    process = getattr(module, "process", None)
    if process is None or not callable(process):
        raise ValueError(
            f"Custom script {script_path} must define callable process(records, context)."
        )
    process(records, context)


def _load_module(script_path: str):
    """Import a Python module from an arbitrary file path."""
    path = Path(script_path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import custom script: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


if __name__ == "__main__":
    raise SystemExit(main())
