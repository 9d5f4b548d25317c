#!/usr/bin/env python3
"""
Module for parsing pipe-delimited access logs into AccessLogEntry records.

Expected line layout:
    2022-01-01 00:00:11.763|192.168.234.82|"GET / HTTP/1.1"|200|"swcd (unknown version) CFNetwork/808.2.16 Darwin/15.6.0"
"""
from datetime import datetime
import logging
import re

from errors import ConfigurationError, ResourceNotFoundError
from models import AccessLogEntry

# Logger for this module
logger = logging.getLogger('ipchecker.parser')

LOG_DELIMITER = '|'
LOG_FIELD_COUNT = 5

# yyyy-MM-dd HH:mm:ss.SSS, used by every line of the access log
LOG_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f'
# strptime accepts 1-6 fractional digits for %f, the log always carries exactly 3
LOG_TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}")
# yyyy-MM-dd.HH:mm:ss, used for the start of the evaluated window
START_TIME_FORMAT = '%Y-%m-%d.%H:%M:%S'


def _is_blank(value):
    return value is None or not value.strip()


def to_timestamp(date_string, date_format, logger=logger):
    """
    Parses date_string with the given strptime pattern.

    Args:
        date_string (str): Text to parse. Surrounding whitespace is ignored.
        date_format (str): Any strptime pattern, e.g. LOG_TIMESTAMP_FORMAT.
        logger (logging.Logger): Where parse diagnostics go.

    Returns:
        datetime: Naive datetime, or None if date_string does not match the pattern.

    Raises:
        ConfigurationError: If date_string or date_format is blank.
    """
    if _is_blank(date_string):
        logger.error(f"Invalid date String passed, {date_string!r}")
        raise ConfigurationError(f"Invalid date string: {date_string!r}")
    if _is_blank(date_format):
        logger.error(f"Invalid dateTimeFormat passed, {date_format!r}")
        raise ConfigurationError(f"Invalid date format: {date_format!r}")

    try:
        return datetime.strptime(date_string.strip(), date_format)
    except ValueError as e:
        logger.warning(f"Error parsing date string: {date_string}. Exception is : {e}")
        return None


def format_timestamp(timestamp, date_format):
    """Inverse of to_timestamp for the same pattern."""
    text = timestamp.strftime(date_format)
    if date_format == LOG_TIMESTAMP_FORMAT:
        # %f writes microseconds, the log keeps milliseconds
        text = text[:-3]
    return text


def parse_log_line(line, logger=logger):
    """
    Splits one raw log line into an AccessLogEntry.

    Returns None when the line has fewer than five fields, any of them is
    blank, or its timestamp is not yyyy-MM-dd HH:mm:ss.SSS. Fields past the
    fifth are ignored.
    """
    parts = line.rstrip('\r\n').split(LOG_DELIMITER)
    if len(parts) < LOG_FIELD_COUNT:
        logger.warning(f"Skipping line with {len(parts)} fields, expected {LOG_FIELD_COUNT}: {line.strip()}")
        return None

    if any(_is_blank(part) for part in parts[:LOG_FIELD_COUNT]):
        logger.warning(f"Skipping line with a blank field: {line.strip()}")
        return None

    if not LOG_TIMESTAMP_PATTERN.fullmatch(parts[0].strip()):
        logger.warning(f"Skipping line with malformed timestamp: {parts[0]}")
        return None

    timestamp = to_timestamp(parts[0], LOG_TIMESTAMP_FORMAT, logger=logger)
    if timestamp is None:
        return None

    return AccessLogEntry(
        timestamp=timestamp,
        ip_address=parts[1],
        request=parts[2],
        status=parts[3],
        user_agent=parts[4],
    )


def stream_log_entries(log_file, logger=logger):
    """
    Reads a log file forwards and yields parsed entries one by one.

    The file handle is closed on every exit path, including when the
    consumer stops iterating early.

    Args:
        log_file (str): Path to the log file.
        logger (logging.Logger): Diagnostics sink.

    Yields:
        AccessLogEntry: One per line with a parseable timestamp.

    Raises:
        ResourceNotFoundError: If the file is missing or reading fails.
    """
    total_lines = 0
    skipped_lines = 0

    try:
        log_source = open(log_file, 'r', encoding='utf-8')
    except FileNotFoundError as e:
        logger.error(f"File not found, {log_file}")
        raise ResourceNotFoundError(f"File not found: {log_file}") from e
    except OSError as e:
        logger.error(f"Could not open {log_file}: {e}")
        raise ResourceNotFoundError(f"Could not open {log_file}: {e}") from e

    with log_source:
        try:
            for line in log_source:
                total_lines += 1
                if not line.strip():
                    skipped_lines += 1
                    continue

                entry = parse_log_line(line, logger=logger)
                if entry is None:
                    skipped_lines += 1
                    continue

                yield entry

                # Log progress periodically
                if total_lines % 50000 == 0:
                    logger.info(f"Processed {total_lines} lines...")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Exception occurred while reading {log_file}: {e}")
            raise ResourceNotFoundError(f"Could not read {log_file}: {e}") from e

    logger.info(f"Finished reading log file. Total lines: {total_lines}, Skipped: {skipped_lines}")
