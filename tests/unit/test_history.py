"""
Unit tests for run history (rclbackup/history.py).
"""

from datetime import datetime

from rclbackup.history import RunHistory
from rclbackup.models import BackupRun, RemoteTarget, RunState, UploadOutcome, UploadStatus


def _run(started_at, state=RunState.DONE, **kwargs):
    return BackupRun(
        started_at=started_at,
        archive_name=f"backup_{started_at:%Y%m%d_%H%M%S}.tar.gz",
        checksum_name=f"backup_{started_at:%Y%m%d_%H%M%S}.tar.gz.sha256",
        dump_name=f"dump_{started_at:%Y%m%d_%H%M%S}.sql",
        retention_count=5,
        state=state,
        **kwargs
    )


class TestRunHistory:
    """Test recording runs in an in-memory database."""

    def test_record_successful_run(self):
        history = RunHistory('sqlite:///:memory:')
        run = _run(
            datetime(2024, 1, 15, 2, 0, 0),
            completed_at=datetime(2024, 1, 15, 2, 5, 0),
            archive_size_bytes=1024,
            outcomes=[
                UploadOutcome(RemoteTarget('r1', 'p', 5), UploadStatus.SUCCESS),
                UploadOutcome(RemoteTarget('r2', 'p', 5), UploadStatus.FAILURE, 'unauthorized'),
            ],
            logs=['[2024-01-15 02:00:00] started', '[2024-01-15 02:05:00] done']
        )

        assert history.record(run) is True

        entry = history.recent()[0]
        assert entry.status == 'done'
        assert entry.archive_name == 'backup_20240115_020000.tar.gz'
        assert entry.file_size_bytes == 1024
        assert entry.succeeded_remotes == 'r1:p'
        assert entry.failed_remotes == 'r2:p'
        assert entry.logs.splitlines()[1] == '[2024-01-15 02:05:00] done'

    def test_record_failed_run(self):
        history = RunHistory('sqlite:///:memory:')
        run = _run(datetime(2024, 1, 15, 2, 0, 0), state=RunState.FAILED, error_message='tar failed')

        history.record(run)

        entry = history.recent()[0]
        assert entry.status == 'failed'
        assert entry.error_message == 'tar failed'
        assert entry.file_size_bytes is None

    def test_recent_newest_first(self):
        history = RunHistory('sqlite:///:memory:')
        for day in (1, 3, 2):
            history.record(_run(datetime(2024, 1, day, 2, 0, 0)))

        entries = history.recent(limit=2)

        assert [e.started_at.day for e in entries] == [3, 2]

    def test_unopenable_database(self, tmp_path, caplog):
        history = RunHistory(f"sqlite:///{tmp_path}/missing/dir/history.db")

        assert history.available is False
        assert history.record(_run(datetime(2024, 1, 1, 2, 0, 0))) is False
        assert history.recent() == []
        assert 'Failed to open backup history database' in caplog.text

    def test_file_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'history.db'}"
        RunHistory(url).record(_run(datetime(2024, 1, 1, 2, 0, 0)))

        assert len(RunHistory(url).recent()) == 1
