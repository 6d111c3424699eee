"""jobqueue demo -- entry point for ``python -m jobqueue.demo``."""
from __future__ import annotations

import argparse
import logging
import sys

from jobqueue.demo.runner import run_demo


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Throttled job burst demo")
    parser.add_argument("--jobs", type=int, default=10, help="Number of jobs to submit")
    parser.add_argument("--concurrency", type=int, default=3, help="Concurrency limit")
    parser.add_argument(
        "--rate",
        type=float,
        default=None,
        help="Max job starts per window (default: unlimited)",
    )
    parser.add_argument("--window", type=float, default=60.0, help="Rate window in seconds")
    parser.add_argument("--timeout", type=float, default=5.0, help="Per-job timeout in seconds")
    parser.add_argument(
        "--events",
        default="./jobqueue-demo-events.jsonl",
        help="Destination path for the JSONL event log",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    outcomes = run_demo(
        jobs=args.jobs,
        concurrency=args.concurrency,
        rate=args.rate,
        window=args.window,
        timeout=args.timeout,
        jsonl_path=args.events,
    )
    failed = sum(1 for o in outcomes if isinstance(o, BaseException))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
