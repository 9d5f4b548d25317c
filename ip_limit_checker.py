#!/usr/bin/env python3
"""
Ingests an access log into the record store and records the addresses that
exceeded the request limit inside the requested window.
"""
import logging
import time

from batch_writer import BATCH_SIZE, BatchWriter
from errors import ConfigurationError, UsageError
from log_parser import stream_log_entries
from window_aggregator import retrieve_blocked_addresses

# Logger for this module
logger = logging.getLogger('ipchecker.checker')


def is_valid_limit(limit):
    """True for a non-empty string of ASCII digits."""
    return isinstance(limit, str) and limit.isascii() and limit.isdigit()


class IpLimitChecker:
    """
    Runs the ingest-then-aggregate pipeline against one record store.
    """

    def __init__(self, store, batch_size=BATCH_SIZE, logger=logger):
        """
        Args:
            store (RecordStore): Destination for access log entries and blocked addresses.
            batch_size (int): Records per batch write.
            logger (logging.Logger): Diagnostics sink shared by every stage.
        """
        self.store = store
        self.batch_size = batch_size
        self.logger = logger

    def read_file(self, path):
        """
        Reads the contents of the given file and saves them to the store in batches.

        Returns:
            int: Number of entries saved.

        Raises:
            ConfigurationError: If path is blank.
            ResourceNotFoundError: If the file cannot be opened or read.
        """
        if path is None or not path.strip():
            self.logger.error(f"Supplied path is blank, {path!r}")
            raise ConfigurationError("Path of the log file is required.")

        self.logger.info(f"Reading access log {path}...")
        start = time.time()
        with BatchWriter(self.store.batch_write, self.batch_size, name='access log entries',
                         logger=self.logger) as writer:
            for entry in stream_log_entries(path, logger=self.logger):
                writer.add(entry)
        count = writer.records_written

        self.logger.info(f"Finished reading {count} lines from file to database.")
        self.logger.debug(f"Ingestion took {time.time() - start:.2f} seconds in {writer.batches_written} batches.")
        return count

    def save_blocked_addresses(self, blocked_addresses):
        """Writes blocked addresses through their own batch writer."""
        with BatchWriter(self.store.batch_write, self.batch_size, name='blocked addresses',
                         logger=self.logger) as writer:
            for blocked_address in blocked_addresses:
                writer.add(blocked_address)
        return writer.records_written

    def check(self, path, start_time, duration, limit):
        """
        Reads the log file, then retrieves and saves the blocked addresses.

        Args:
            path (str): Access log file.
            start_time (str): Window start, yyyy-MM-dd.HH:mm:ss.
            duration (str): 'daily' or 'hourly'.
            limit (str): Non-negative integer as text.

        Returns:
            list: The BlockedAddress records that were saved.
        """
        if not is_valid_limit(limit):
            self.logger.error(f"Invalid command passed for limit: {limit!r}")
            raise UsageError(f"Limit must be a non-negative integer, got {limit!r}")

        self.read_file(path)
        blocked = retrieve_blocked_addresses(self.store, start_time, duration, limit, logger=self.logger)
        saved = self.save_blocked_addresses(blocked)
        self.logger.info(f"{saved} addresses exceeded the limit of {limit} and were blocked.")
        return blocked
