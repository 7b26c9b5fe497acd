"""Command line entry point: run the scripted stock assistant sessions."""

from __future__ import annotations

import argparse
import logging
import random
import sys

from dotenv import find_dotenv, load_dotenv

from tickertrace import TickerTrace
from tickertrace.config import DEFAULT_MODEL
from tickertrace.runner import run_all
from tickertrace.tools import AnalysisProducers

logger = logging.getLogger("tickertrace.cli")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tickertrace",
        description="Simulate stock assistant conversations traced as Helicone sessions",
    )

    parser.add_argument(
        "--runs",
        type=int,
        default=None,
        help="Number of sessions to run (default: TICKERTRACE_RUNS or 5)",
    )

    parser.add_argument(
        "--model",
        default=None,
        help=f"Chat model (default: TICKERTRACE_MODEL or {DEFAULT_MODEL})",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for user/ticker choice and mock tool data",
    )

    parser.add_argument(
        "--console",
        action="store_true",
        help="Print local spans to the console",
    )

    parser.add_argument(
        "--trace-file",
        default=None,
        help="Also write local spans to this JSONL file",
    )

    parser.add_argument(
        "--disabled",
        action="store_true",
        default=None,
        help="Skip the logging backend and call the model API directly",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Verbose logging",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        with TickerTrace(
            runs=args.runs,
            model=args.model,
            disabled=args.disabled,
            debug=args.debug,
        ) as client:
            if args.console:
                client.telemetry.setup_console_exporter()
            if args.trace_file:
                client.telemetry.setup_file_exporter(args.trace_file)

            results = run_all(
                client.emitter,
                client.config.runs,
                rng=random.Random(args.seed),
                producers=AnalysisProducers.mocks(args.seed),
            )
    except Exception:
        logger.exception("An error occurred")
        return 1

    print(f"\nCompleted {len(results)} session(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
