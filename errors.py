#!/usr/bin/env python3
"""
Exceptions raised by the IP limit checker.

Inner components raise these instead of exiting; checker.main() is the only
place that turns them into a process exit status.
"""


class IpLimitCheckerError(Exception):
    """Base class for fatal run errors."""
    exit_code = 1


class UsageError(IpLimitCheckerError):
    """Wrong number of arguments or a malformed limit."""


class ConfigurationError(IpLimitCheckerError):
    """Blank required value, unknown duration or missing window start."""


class ResourceNotFoundError(IpLimitCheckerError):
    """Input file is missing or could not be read."""


class StoreWriteError(IpLimitCheckerError):
    """A batch write to the record store failed."""
