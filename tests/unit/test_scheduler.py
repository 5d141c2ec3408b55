"""
Unit tests for scheduled runs (rclbackup/scheduler.py).
"""

from unittest.mock import Mock, patch

import pytest
from apscheduler.triggers.cron import CronTrigger

from rclbackup import scheduler as scheduler_module
from rclbackup.scheduler import (
    BACKUP_JOB_ID,
    init_scheduler,
    run_backup,
    start_scheduler,
    stop_scheduler,
)


@pytest.fixture(autouse=True)
def reset_scheduler():
    scheduler_module.scheduler = None
    yield
    scheduler_module.scheduler = None


@pytest.fixture
def mock_scheduler_cls():
    with patch('rclbackup.scheduler.BlockingScheduler') as mock_cls:
        yield mock_cls


class TestInitScheduler:
    """Test scheduler creation."""

    def test_adds_cron_job(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '30 2 * * 1'

        result = init_scheduler(backup_config)

        assert result is mock_scheduler_cls.return_value
        job_defaults = mock_scheduler_cls.call_args[1]['job_defaults']
        assert job_defaults['max_instances'] == 1
        assert job_defaults['coalesce'] is True

        kwargs = result.add_job.call_args[1]
        assert kwargs['func'] is run_backup
        assert kwargs['args'] == [backup_config]
        assert kwargs['id'] == BACKUP_JOB_ID
        assert isinstance(kwargs['trigger'], CronTrigger)

    def test_custom_job(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '0 3 * * *'
        job = Mock()

        init_scheduler(backup_config, job=job)

        assert mock_scheduler_cls.return_value.add_job.call_args[1]['func'] is job

    def test_initialized_once(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '0 3 * * *'

        first = init_scheduler(backup_config)
        second = init_scheduler(backup_config)

        assert first is second
        assert mock_scheduler_cls.call_count == 1


class TestStartStop:
    """Test the scheduler lifecycle."""

    def test_start_requires_init(self):
        with pytest.raises(RuntimeError, match='not initialized'):
            start_scheduler()

    def test_start_blocks_on_scheduler(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '0 3 * * *'
        init_scheduler(backup_config)

        start_scheduler()

        mock_scheduler_cls.return_value.start.assert_called_once()

    def test_keyboard_interrupt_stops_quietly(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '0 3 * * *'
        init_scheduler(backup_config)
        mock_scheduler_cls.return_value.start.side_effect = KeyboardInterrupt

        start_scheduler()

    def test_stop(self, backup_config, mock_scheduler_cls):
        backup_config.schedule = '0 3 * * *'
        instance = init_scheduler(backup_config)
        instance.running = True

        stop_scheduler()

        instance.shutdown.assert_called_once_with(wait=False)
        assert scheduler_module.scheduler is None

    def test_stop_without_scheduler(self):
        stop_scheduler()

        assert scheduler_module.scheduler is None


class TestRunBackup:
    """Test the scheduled job body."""

    def test_failed_run_is_logged(self, backup_config, caplog):
        with patch('rclbackup.scheduler.BackupExecutor') as mock_executor:
            run = mock_executor.return_value.execute.return_value
            run.succeeded = False
            run.error_message = 'Failed to compress'

            result = run_backup(backup_config)

        assert result is run
        assert 'Scheduled backup failed: Failed to compress' in caplog.text

    def test_successful_run(self, backup_config, caplog):
        with patch('rclbackup.scheduler.BackupExecutor') as mock_executor:
            mock_executor.return_value.execute.return_value.succeeded = True

            run_backup(backup_config)

        mock_executor.assert_called_once_with(backup_config)
        assert 'Scheduled backup failed' not in caplog.text
