import argparse
import logging
import sys
from typing import List, Optional

from ledger_engine import LedgerEngine
from error_reporter import LoggingErrorReporter, REJECTIONS_LOGGER
from csv_io import write_snapshot

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-engine",
        description="Apply a CSV batch of transactions and print final client balances.",
    )
    parser.add_argument("input", help="Transactions CSV (type, client, tx, amount)")
    parser.add_argument("--debug", action="store_true", help="Report rejected records on stderr")
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS, dest="log_level", help="Logging level (default: WARNING)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    reporter = None
    if args.debug:
        # Rejections stay visible even when --log-level is raised above WARNING.
        logging.getLogger(REJECTIONS_LOGGER).setLevel(logging.WARNING)
        reporter = LoggingErrorReporter()

    engine = LedgerEngine(error_reporter=reporter)

    try:
        snapshot = engine.process_file(args.input)
    except OSError as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    write_snapshot(snapshot, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
