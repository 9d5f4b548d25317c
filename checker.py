#!/usr/bin/env python3
"""
Command-line entry point: loads an access log and records the addresses that
made more requests than LIMIT in the window starting at START_TIME.

Example:
    python checker.py access.log 2022-01-01.13:00:00 hourly 100
"""
import argparse
import logging
import sys

from batch_writer import BATCH_SIZE
from errors import IpLimitCheckerError, UsageError
from ip_limit_checker import IpLimitChecker, is_valid_limit
from record_store import DEFAULT_DATABASE_URL, open_store
from window_aggregator import DURATIONS

# Logging configuration
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ArgumentParser(argparse.ArgumentParser):
    """Raises UsageError instead of exiting with argparse's status 2."""

    def error(self, message):
        raise UsageError(message)


def setup_logging(log_file=None, log_level=logging.INFO):
    """
    Sends ipchecker.* records to stderr and, when log_file is given, to that file.

    Replaces any handlers already on the root logger so repeated runs in one
    process do not duplicate output.
    """
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)


def build_parser():
    parser = ArgumentParser(
        description='Loads a pipe-delimited access log and blocks addresses over a request limit.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    # --- Positional Args ---
    parser.add_argument('path', help='Path of the access log file to load.')
    parser.add_argument('start_time', help='Start of the window. Format: yyyy-MM-dd.HH:mm:ss.')
    parser.add_argument('duration', help=f"Length of the window: {' or '.join(DURATIONS)}.")
    parser.add_argument('limit', help='Maximum number of requests allowed per address in the window.')
    # --- Store Args ---
    parser.add_argument(
        '--store', choices=['sql', 'memory'], default='sql',
        help='Record store engine. "memory" keeps everything in RAM for the duration of the run.'
    )
    parser.add_argument(
        '--database-url', default=DEFAULT_DATABASE_URL,
        help='SQLAlchemy database URL used by the sql store.'
    )
    parser.add_argument(
        '--batch-size', type=int, default=BATCH_SIZE,
        help='Number of records per batch write.'
    )
    # --- Output Args ---
    parser.add_argument(
        '--log-file', help='File to save execution logs.'
    )
    parser.add_argument(
        '--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], default='INFO',
        help='Log detail level.'
    )
    return parser


def main(argv=None):
    """Runs the checker and returns the process exit status."""
    logger = logging.getLogger('ipchecker.main')
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        setup_logging()
        logger.error(f"Invalid arguments: {e}. Required 4 arguments: path start_time duration limit")
        return e.exit_code

    setup_logging(args.log_file, getattr(logging, args.log_level))
    logger.info("Started IP limit checker .....")

    if args.batch_size < 1:
        logger.error(f"Invalid batch size: {args.batch_size}")
        return UsageError.exit_code

    # Opening the sql store creates tables, so the limit is checked first
    if not is_valid_limit(args.limit):
        logger.error(f"Invalid command passed for limit: {args.limit!r}")
        return UsageError.exit_code

    try:
        with open_store(args.store, args.database_url) as store:
            checker = IpLimitChecker(store, batch_size=args.batch_size)
            checker.check(args.path, args.start_time, args.duration, args.limit)
    except IpLimitCheckerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return e.exit_code
    except Exception as e:
        logger.error(f"Unexpected error while checking {args.path}: {e}", exc_info=True)
        return 1

    logger.info("Finished running IP limit checker.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
