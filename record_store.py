#!/usr/bin/env python3
"""
Record stores for access log entries and blocked addresses.

Two engines implement RecordStore:
- SqlRecordStore: relational storage through SQLAlchemy Core (SQLite by default).
- DataFrameRecordStore: in-memory storage on Pandas DataFrames.
"""
from abc import ABC, abstractmethod
import logging

import pandas as pd
from sqlalchemy import (
    Column, DateTime, Integer, MetaData, String, Table, Text,
    create_engine, func, select,
)
from sqlalchemy.exc import SQLAlchemyError

from errors import StoreWriteError
from models import AccessLogEntry, BlockedAddress

# Logger for this module
logger = logging.getLogger('ipchecker.store')

DEFAULT_DATABASE_URL = 'sqlite:///ip_limit_checker.db'

metadata = MetaData()

user_access_log = Table(
    'user_access_log', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('date_time', DateTime, nullable=False, index=True),
    Column('ip_address', String(45), nullable=False, index=True),  # Supports IPv6
    Column('request', Text, nullable=False),
    Column('status', String(16), nullable=False),
    Column('user_agent', Text, nullable=False),
)

blocked_ip_table = Table(
    'blocked_ip_table', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('ip', String(45), nullable=False),
    Column('request_number', Integer, nullable=False),
    Column('comment', Text, nullable=False),
)

ACCESS_LOG_COLUMNS = ['date_time', 'ip_address', 'request', 'status', 'user_agent']
BLOCKED_IP_COLUMNS = ['ip', 'request_number', 'comment']


def _record_type(records):
    """Returns the single record type of a batch. Mixed batches are rejected."""
    record_type = type(records[0])
    if record_type not in (AccessLogEntry, BlockedAddress):
        raise TypeError(f"Unsupported record type: {record_type.__name__}")
    if any(type(record) is not record_type for record in records):
        raise TypeError("A batch must contain records of a single type.")
    return record_type


class RecordStore(ABC):
    """Abstract base class for the storage engines used by the checker."""

    @abstractmethod
    def batch_write(self, records):
        """
        Persists a batch of AccessLogEntry or BlockedAddress records atomically.

        Args:
            records (list): Records of one type. An empty list is a no-op.

        Raises:
            StoreWriteError: If the engine rejects the batch.
        """
        pass

    @abstractmethod
    def count_requests_in_window(self, start, end, limit):
        """
        Counts access log entries per address with start <= timestamp < end.

        Returns:
            list: (ip_address, count) tuples for addresses with count > limit,
                  in engine order.
        """
        pass

    @abstractmethod
    def blocked_addresses(self):
        """Returns every stored BlockedAddress."""
        pass

    def close(self):
        """Releases engine resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


class SqlRecordStore(RecordStore):
    """
    Stores records in a relational database. Tables are created on start-up
    if they do not exist yet.
    """

    TABLES = {
        AccessLogEntry: user_access_log,
        BlockedAddress: blocked_ip_table,
    }

    def __init__(self, database_url=DEFAULT_DATABASE_URL, engine=None):
        self.engine = engine if engine is not None else create_engine(database_url)
        metadata.create_all(self.engine)
        logger.info(f"Using SQL record store at {self.engine.url.render_as_string(hide_password=True)}")

    def batch_write(self, records):
        if not records:
            return
        table = self.TABLES[_record_type(records)]
        rows = [record.as_row() for record in records]
        try:
            with self.engine.begin() as connection:
                connection.execute(table.insert(), rows)
        except SQLAlchemyError as e:
            logger.error(f"Failed to write batch of {len(rows)} rows to {table.name}: {e}")
            raise StoreWriteError(f"Failed to write batch to {table.name}: {e}") from e
        logger.debug(f"Inserted {len(rows)} rows into {table.name}")

    def count_requests_in_window(self, start, end, limit):
        request_count = func.count(user_access_log.c.id)
        statement = (
            select(user_access_log.c.ip_address, request_count.label('request_count'))
            .where(user_access_log.c.date_time >= start)
            .where(user_access_log.c.date_time < end)
            .group_by(user_access_log.c.ip_address)
            .having(request_count > limit)
        )
        with self.engine.connect() as connection:
            return [(row.ip_address, row.request_count) for row in connection.execute(statement)]

    def blocked_addresses(self):
        statement = select(blocked_ip_table).order_by(blocked_ip_table.c.id)
        with self.engine.connect() as connection:
            return [
                BlockedAddress(ip=row.ip, request_count=row.request_number, comment=row.comment)
                for row in connection.execute(statement)
            ]

    def close(self):
        self.engine.dispose()


class DataFrameRecordStore(RecordStore):
    """Keeps records in memory, one DataFrame per written batch."""

    COLUMNS = {
        AccessLogEntry: ACCESS_LOG_COLUMNS,
        BlockedAddress: BLOCKED_IP_COLUMNS,
    }

    def __init__(self):
        self._batches = {record_type: [] for record_type in self.COLUMNS}
        logger.info("Using in-memory record store")

    def _table(self, record_type):
        batches = self._batches[record_type]
        if not batches:
            return pd.DataFrame(columns=self.COLUMNS[record_type])
        return pd.concat(batches, ignore_index=True)

    def batch_write(self, records):
        if not records:
            return
        record_type = _record_type(records)
        frame = pd.DataFrame([record.as_row() for record in records], columns=self.COLUMNS[record_type])
        self._batches[record_type].append(frame)
        logger.debug(f"Stored {len(frame)} {record_type.__name__} rows in memory")

    def count_requests_in_window(self, start, end, limit):
        df = self._table(AccessLogEntry)
        if df.empty:
            return []
        in_window = df[(df['date_time'] >= start) & (df['date_time'] < end)]
        counts = in_window.groupby('ip_address', sort=False).size()
        over_limit = counts[counts > limit]
        return [(ip, int(count)) for ip, count in over_limit.items()]

    def blocked_addresses(self):
        df = self._table(BlockedAddress)
        return [
            BlockedAddress(ip=row.ip, request_count=int(row.request_number), comment=row.comment)
            for row in df.itertuples(index=False)
        ]


def open_store(kind='sql', database_url=DEFAULT_DATABASE_URL):
    """Builds the record store selected on the command line."""
    if kind == 'sql':
        return SqlRecordStore(database_url)
    if kind == 'memory':
        return DataFrameRecordStore()
    raise ValueError(f"Unknown record store: {kind}")
