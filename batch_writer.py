#!/usr/bin/env python3
"""
Buffered writer that hands records to the record store in fixed-size batches.
"""
import logging

# Logger for this module
logger = logging.getLogger('ipchecker.batch')

BATCH_SIZE = 1000


class BatchWriter:
    """
    Accumulates records in insertion order and writes them with one call per batch.

    A batch is written when the buffer reaches batch_size, and on flush().
    Write failures propagate to the caller; the buffer is left untouched so
    nothing is silently dropped.
    """

    def __init__(self, write_batch, batch_size=BATCH_SIZE, name='records', logger=logger):
        """
        Args:
            write_batch (callable): Receives a list of records, e.g. RecordStore.batch_write.
            batch_size (int): Number of records that triggers an automatic flush.
            name (str): Label used in log messages.
            logger (logging.Logger): Diagnostics sink.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.write_batch = write_batch
        self.batch_size = batch_size
        self.name = name
        self.logger = logger
        self._buffer = []
        self.records_written = 0
        self.batches_written = 0

    def __len__(self):
        return len(self._buffer)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        # Only flush on a clean exit; a failing run must not write a partial tail.
        if exc_type is None:
            self.flush()
        return False

    def add(self, record):
        """Buffers a record and flushes once the batch is full. Returns True if a write happened."""
        self._buffer.append(record)
        if len(self._buffer) >= self.batch_size:
            self.flush()
            return True
        return False

    def flush(self):
        """Writes the buffered records as one batch. No-op when the buffer is empty."""
        if not self._buffer:
            return 0

        batch = list(self._buffer)
        self.write_batch(batch)
        self._buffer.clear()

        self.records_written += len(batch)
        self.batches_written += 1
        self.logger.info(f"Successfully saved batch of {len(batch)} {self.name}")
        return len(batch)
