#!/usr/bin/env python3
"""
Record types written to the record store.
"""
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AccessLogEntry:
    """One request observed in the access log."""
    timestamp: datetime
    ip_address: str
    request: str
    status: str  # kept as text, some logs carry non-numeric codes
    user_agent: str

    def as_row(self):
        """Column mapping for the user_access_log table."""
        return {
            'date_time': self.timestamp,
            'ip_address': self.ip_address,
            'request': self.request,
            'status': self.status,
            'user_agent': self.user_agent,
        }


@dataclass(frozen=True)
class BlockedAddress:
    """An address whose request count in the window exceeded the limit."""
    ip: str
    request_count: int
    comment: str

    def as_row(self):
        """Column mapping for the blocked_ip_table table."""
        return {
            'ip': self.ip,
            'request_number': self.request_count,
            'comment': self.comment,
        }
