"""
Publishing of backup artifacts to a single remote.
"""

import logging
from typing import List

from rclbackup.models import RemoteTarget
from .process import ProcessRunner
from .retention import RetentionManager
from .storage import RcloneStorage, StorageError

logger = logging.getLogger(__name__)


class RemotePublisher:
    """
    Uploads the archive and checksum to one remote, then prunes old backups.

    A failed upload of one artifact is only a warning: the remote still
    counts as published as long as it could be listed for retention.
    """

    def __init__(self, target: RemoteTarget, runner: ProcessRunner, bin_path: str = 'rclone'):
        self.target = target
        self.storage = RcloneStorage(target, runner, bin_path)

    def publish(self, artifacts: List[str]) -> int:
        """
        Upload artifacts and enforce retention.

        Args:
            artifacts: Local paths of the archive and checksum

        Returns:
            Number of old objects deleted

        Raises:
            RetentionError: If the remote cannot be listed
        """
        for artifact in artifacts:
            try:
                self.storage.upload(artifact)
            except StorageError as e:
                logger.warning(f"Failed to copy {artifact} to {self.target.remote}: {e}")

        retention = RetentionManager(self.storage, self.target.retention_count)
        return retention.enforce()
