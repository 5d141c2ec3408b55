"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Validate configuration (before anything touches the disk)
2. Acquire source files into a temporary workspace (local and docker)
3. Dump the database into the workspace (if configured)
4. Create the compressed archive and its checksum
5. Upload to every rclone remote in parallel and enforce retention
6. Build the report and send the notification
7. Cleanup the workspace, record history

Steps 1-4 are fatal: a failure ends the run as failed. Upload failures
only show up in the report.
"""

import logging
import os
import shutil
import tempfile
import time
from datetime import datetime
from typing import Optional

from rclbackup.config import BackupConfig
from rclbackup.history import RunHistory
from rclbackup.models import BackupRun, RunState
from rclbackup.notify import NtfyNotifier, create_notifier
from .compression import (
    Archiver,
    generate_archive_filename,
    generate_checksum_filename,
    generate_dump_filename,
    get_archive_size,
)
from .coordinator import UploadCoordinator, build_report
from .database import DatabaseDumper
from .process import ProcessRunner
from .sources import acquire_sources

logger = logging.getLogger(__name__)

DATA_DIR_NAME = 'backup_data'


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for one configuration.
    """

    def __init__(
        self,
        config: BackupConfig,
        runner: Optional[ProcessRunner] = None,
        notifier: Optional[NtfyNotifier] = None,
        history: Optional[RunHistory] = None
    ):
        """
        Initialize backup executor.

        Args:
            config: Resolved configuration
            runner: Process runner (defaults to one using config.command_timeout)
            notifier: Notifier (defaults to ntfy when configured)
            history: Run history store (defaults to config.history_db when set)
        """
        self.config = config
        self.runner = runner or ProcessRunner(timeout=config.command_timeout)
        self.notifier = notifier if notifier is not None else create_notifier(config)
        self.history = history
        if self.history is None and config.history_db:
            self.history = RunHistory(config.history_db)
        self.run = None

    def execute(self) -> BackupRun:
        """
        Execute the backup.

        Returns:
            BackupRun with the final state, report and upload outcomes
        """
        start_time = time.monotonic()
        started_at = datetime.now()
        archive_name = generate_archive_filename(started_at)

        self.run = BackupRun(
            started_at=started_at,
            archive_name=archive_name,
            checksum_name=generate_checksum_filename(archive_name),
            dump_name=generate_dump_filename(started_at),
            retention_count=self.config.rotate,
            exclude=list(self.config.exclude)
        )

        try:
            self._execute_workflow()
            self._set_state(RunState.DONE)

        except Exception as e:
            self.run.error_message = str(e)
            self._set_state(RunState.FAILED)
            self._log(f"Backup failed: {e}", logging.ERROR)

        finally:
            self.run.completed_at = datetime.now()
            self._cleanup()
            duration = time.monotonic() - start_time
            self._log(f"All backups completed in {duration:.2f} seconds")
            if self.history is not None:
                self.history.record(self.run)

        return self.run

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        # Step 1: Validate
        self._set_state(RunState.VALIDATING)
        self.config.validate()
        locations = self.config.source_locations()
        database = self.config.database_target()
        targets = self.config.remote_targets()

        self.run.workspace = tempfile.mkdtemp(prefix='rclbackup_')
        data_dir = os.path.join(self.run.workspace, DATA_DIR_NAME)
        os.makedirs(data_dir)
        self._log(f"Backup in temp directory: {self.run.workspace}")

        # Step 2: Acquire source files
        self._set_state(RunState.ACQUIRING)
        acquire_sources(locations, data_dir, self.runner)
        self._log(f"Acquired {len(locations)} source path(s)")

        # Step 3: Dump database
        if database is not None:
            self._set_state(RunState.DUMPING)
            dump_path = os.path.join(data_dir, self.run.dump_name)
            DatabaseDumper(database, self.runner).dump(dump_path)
            self._log(f"Dumped {database.kind.value} database from container {database.container}")
        else:
            self._log("Database not configured, skipping dump", logging.DEBUG)

        # Step 4: Archive and checksum
        self._set_state(RunState.PACKAGING)
        archiver = Archiver(self.runner, verbose=self.config.debug)
        archive_path, checksum_path = archiver.package(
            self.run.workspace,
            DATA_DIR_NAME,
            self.run.archive_name,
            self.run.checksum_name,
            self.run.exclude
        )
        self.run.archive_size_bytes = get_archive_size(archive_path)
        self._log(
            f"Archive created: {self.run.archive_name} "
            f"({self.run.archive_size_bytes / 1024 / 1024:.2f} MB)"
        )

        # Step 5: Upload and retention
        self._set_state(RunState.PUBLISHING)
        coordinator = UploadCoordinator(targets, self.runner, self.config.rclone_bin_path)
        self.run.outcomes = coordinator.upload([archive_path, checksum_path])

        # Step 6: Report
        self._set_state(RunState.REPORTING)
        self.run.report = build_report(self.run.outcomes)
        self._log(self.run.report.rstrip())
        self._notify(self.run.report)

    def _notify(self, message: str):
        """Send the report; a notification problem never fails the run."""
        if self.notifier is None:
            return
        try:
            if not self.notifier.send(message):
                self._log("Notification was not delivered", logging.WARNING)
        except Exception as e:
            self._log(f"Warning: Failed to send notification: {e}", logging.WARNING)

    def _set_state(self, state: RunState):
        self.run.state = state
        logger.debug(f"Backup state: {state.value}")

    def _cleanup(self):
        """Remove temporary directory and files."""
        if self.run.workspace and os.path.exists(self.run.workspace):
            try:
                shutil.rmtree(self.run.workspace)
                self._log("Cleaned up temporary directory", logging.DEBUG)
            except OSError as e:
                self._log(f"Warning: Failed to cleanup temp directory: {e}", logging.WARNING)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Log a message and keep a timestamped copy on the run.

        Args:
            message: Log message
            level: logging level
        """
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.run.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)
