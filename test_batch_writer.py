from unittest.mock import Mock

import pytest

from batch_writer import BATCH_SIZE, BatchWriter


def test_flush_writes_all_items_in_order():
    write_batch = Mock()
    writer = BatchWriter(write_batch)

    for i in range(5):
        writer.add(i)
    written = writer.flush()

    assert written == 5
    write_batch.assert_called_once_with([0, 1, 2, 3, 4])
    assert len(writer) == 0


def test_flush_on_empty_buffer_does_not_write():
    write_batch = Mock()
    writer = BatchWriter(write_batch)

    assert writer.flush() == 0
    write_batch.assert_not_called()
    assert writer.batches_written == 0


def test_full_batch_flushes_before_next_add():
    write_batch = Mock()
    writer = BatchWriter(write_batch)

    for i in range(BATCH_SIZE - 1):
        assert writer.add(i) is False
    write_batch.assert_not_called()

    assert writer.add(BATCH_SIZE - 1) is True
    write_batch.assert_called_once_with(list(range(BATCH_SIZE)))

    writer.add('tail')
    assert write_batch.call_count == 1

    writer.flush()
    assert write_batch.call_count == 2
    assert write_batch.call_args.args[0] == ['tail']

    # End-of-input flush is idempotent
    writer.flush()
    assert write_batch.call_count == 2
    assert writer.records_written == BATCH_SIZE + 1
    assert writer.batches_written == 2


def test_batch_passed_to_store_is_not_cleared_afterwards():
    batches = []
    writer = BatchWriter(batches.append, batch_size=2)

    writer.add('a')
    writer.add('b')
    writer.add('c')
    writer.flush()

    assert batches == [['a', 'b'], ['c']]


def test_write_failure_propagates_and_keeps_buffer():
    write_batch = Mock(side_effect=RuntimeError('disk full'))
    writer = BatchWriter(write_batch, batch_size=10)
    writer.add('a')

    with pytest.raises(RuntimeError):
        writer.flush()

    assert len(writer) == 1
    assert writer.records_written == 0


def test_context_manager_flushes_on_clean_exit():
    write_batch = Mock()

    with BatchWriter(write_batch) as writer:
        writer.add('a')

    write_batch.assert_called_once_with(['a'])


def test_context_manager_does_not_flush_on_error():
    write_batch = Mock()

    with pytest.raises(ValueError):
        with BatchWriter(write_batch) as writer:
            writer.add('a')
            raise ValueError('boom')

    write_batch.assert_not_called()


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BatchWriter(Mock(), batch_size=0)
