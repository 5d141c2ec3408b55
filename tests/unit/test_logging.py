"""
Unit tests for logging setup (rclbackup/__init__.py).
"""

import logging

import pytest

from rclbackup import configure_logging

LOGGER_NAMES = ('rclbackup', 'httpx', 'httpcore', 'apscheduler')


@pytest.fixture(autouse=True)
def restore_levels():
    levels = {name: logging.getLogger(name).level for name in LOGGER_NAMES}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureLogging:

    def test_default_levels(self):
        configure_logging()

        assert logging.getLogger('rclbackup').level == logging.INFO
        assert logging.getLogger('httpx').level == logging.WARNING
        assert logging.getLogger('apscheduler').level == logging.WARNING

    def test_debug_levels(self):
        configure_logging(debug=True)

        assert logging.getLogger('rclbackup').level == logging.DEBUG
        assert logging.getLogger('httpcore').level == logging.DEBUG
        assert logging.getLogger('apscheduler').level == logging.DEBUG

    def test_log_file_directory_created(self, tmp_path):
        log_file = tmp_path / 'logs' / 'rclbackup.log'

        configure_logging(log_file=str(log_file))

        assert log_file.parent.is_dir()
