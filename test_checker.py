import logging
from unittest.mock import patch

import pytest

from checker import main, setup_logging
from record_store import SqlRecordStore

LINES = [
    '2022-01-01 00:00:11.763|10.0.0.1|"GET / HTTP/1.1"|200|"Mozilla/5.0"',
    '2022-01-01 00:10:00.000|10.0.0.1|"GET / HTTP/1.1"|200|"Mozilla/5.0"',
    '2022-01-01 00:20:00.000|10.0.0.1|"GET / HTTP/1.1"|200|"Mozilla/5.0"',
    '2022-01-01 00:30:00.000|10.0.0.2|"GET / HTTP/1.1"|200|"curl/7.68.0"',
]


@pytest.fixture
def access_log(tmp_path):
    path = tmp_path / 'access.log'
    path.write_text('\n'.join(LINES) + '\n', encoding='utf-8')
    return str(path)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'checker.db'}"


def test_successful_run_exits_zero(access_log, database_url):
    exit_code = main([access_log, '2022-01-01.00:00:00', 'hourly', '2', '--database-url', database_url])

    assert exit_code == 0
    with SqlRecordStore(database_url) as store:
        assert [(b.ip, b.request_count) for b in store.blocked_addresses()] == [('10.0.0.1', 3)]


def test_memory_store_run_exits_zero(access_log):
    assert main([access_log, '2022-01-01.00:00:00', 'daily', '2', '--store', 'memory']) == 0


@pytest.mark.parametrize('argv', [
    [],
    ['access.log'],
    ['access.log', '2022-01-01.00:00:00', 'daily'],
    ['access.log', '2022-01-01.00:00:00', 'daily', '2', 'extra'],
])
def test_wrong_argument_count_exits_one(argv):
    with patch('checker.open_store') as open_store:
        assert main(argv) == 1
    open_store.assert_not_called()


def test_malformed_limit_exits_one_without_store(access_log):
    with patch('checker.open_store') as open_store:
        assert main([access_log, '2022-01-01.00:00:00', 'daily', 'abc']) == 1
    open_store.assert_not_called()


def test_missing_file_exits_one(tmp_path, database_url):
    missing = str(tmp_path / 'missing.log')
    assert main([missing, '2022-01-01.00:00:00', 'daily', '2', '--database-url', database_url]) == 1


@pytest.mark.parametrize('start_time, duration', [
    ('2022-01-01.00:00:00', 'weekly'),
    ('2022-01-01 00:00:00', 'daily'),
])
def test_bad_window_exits_one(access_log, start_time, duration):
    assert main([access_log, start_time, duration, '2', '--store', 'memory']) == 1


def test_invalid_batch_size_exits_one(access_log):
    assert main([access_log, '2022-01-01.00:00:00', 'daily', '2', '--batch-size', '0']) == 1


def test_log_file_option(access_log, tmp_path):
    log_file = tmp_path / 'run.log'

    assert main([access_log, '2022-01-01.00:00:00', 'daily', '2', '--store', 'memory',
                 '--log-file', str(log_file)]) == 0
    assert 'Blocked Ip : 10.0.0.1. Request count : 3' in log_file.read_text()


def test_setup_logging_replaces_root_handlers(tmp_path):
    log_file = tmp_path / 'run.log'

    setup_logging(str(log_file), logging.DEBUG)
    assert len(logging.getLogger().handlers) == 2
    assert all(handler.level == logging.DEBUG for handler in logging.getLogger().handlers)

    setup_logging()
    assert len(logging.getLogger().handlers) == 1
