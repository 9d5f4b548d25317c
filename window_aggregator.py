#!/usr/bin/env python3
"""
Windowed request counting and derivation of blocked addresses.
"""
from datetime import timedelta
import logging

from errors import ConfigurationError
from log_parser import START_TIME_FORMAT, to_timestamp
from models import BlockedAddress

# Logger for this module
logger = logging.getLogger('ipchecker.window')

# Duration classes accepted on the command line (case-sensitive)
DURATIONS = {
    'daily': timedelta(days=1),
    'hourly': timedelta(hours=1),
}

BLOCK_COMMENT = "Ip log exceeded user supplied limit of {limit}"

# Largest bound a SQL INTEGER column accepts; no request count can exceed it
MAX_LIMIT = 2**63 - 1


def compute_window(start, duration, logger=logger):
    """
    Calculate the end of the window that starts at start.

    Args:
        start (datetime): First instant of the window.
        duration (str): 'daily' or 'hourly'.

    Returns:
        tuple: (start, end), the half-open window [start, end).

    Raises:
        ConfigurationError: If start is None or duration is not recognised.
    """
    if start is None:
        logger.error("null value supplied for parameter start date")
        raise ConfigurationError("Window start is required.")

    if duration == 'daily':
        end = start + DURATIONS['daily']
    elif duration == 'hourly':
        end = start + DURATIONS['hourly']
    else:
        logger.error(f"Invalid argument for parameter duration : {duration}")
        raise ConfigurationError(f"Unknown duration {duration!r}, expected one of {', '.join(DURATIONS)}.")
    return start, end


def find_over_limit(store, start, end, limit):
    """Returns (ip_address, count) rows with more than limit requests in [start, end)."""
    rows = store.count_requests_in_window(start, end, limit)
    logger.debug(f"{len(rows)} addresses over limit {limit} between {start} and {end}")
    return rows


def retrieve_blocked_addresses(store, start_time, duration, limit, logger=logger):
    """
    Retrieves all addresses whose request count in the window is greater than limit.

    Args:
        store (RecordStore): Store holding the ingested access log.
        start_time (str): Window start in START_TIME_FORMAT (yyyy-MM-dd.HH:mm:ss).
        duration (str): 'daily' or 'hourly'.
        limit (str): Non-negative integer as text; embedded verbatim in each comment.

    Returns:
        list: BlockedAddress per offending address, in store order.
    """
    start = to_timestamp(start_time, START_TIME_FORMAT, logger=logger)
    start, end = compute_window(start, duration, logger=logger)
    logger.info(f"Looking for addresses with more than {limit} requests between {start} and {end}")

    blocked = []
    for ip_address, count in find_over_limit(store, start, end, min(int(limit), MAX_LIMIT)):
        blocked_address = BlockedAddress(
            ip=ip_address,
            request_count=int(count),
            comment=BLOCK_COMMENT.format(limit=limit),
        )
        logger.info(f"Blocked Ip : {ip_address}. Request count : {count}")
        blocked.append(blocked_address)
    return blocked
