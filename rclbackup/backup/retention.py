"""
Retention policy enforcement for backups.

Each backup leaves two objects on a remote (archive and checksum), so a
retention count of N keeps the newest N * 2 objects and deletes the rest,
oldest first.
"""

import logging
from typing import List

from rclbackup.models import RemoteObject
from .storage import RcloneStorage, StorageError

logger = logging.getLogger(__name__)

OBJECTS_PER_BACKUP = 2


class RetentionError(Exception):
    """Raised when retention cannot be decided for a remote."""
    pass


def select_for_deletion(objects: List[RemoteObject], retention_count: int) -> List[RemoteObject]:
    """
    Pick the objects that exceed the retention count.

    Objects are ordered by modification time, then by name, so that ties
    always resolve the same way. The oldest ``len(objects) - retention_count * 2``
    objects are returned, oldest first.

    Args:
        objects: Current listing of the remote
        retention_count: Number of backups to keep

    Returns:
        Objects to delete (empty when nothing exceeds the retention count)
    """
    excess = len(objects) - retention_count * OBJECTS_PER_BACKUP
    if excess <= 0:
        return []

    oldest_first = sorted(objects, key=lambda obj: (obj.modified_at, obj.name))
    return oldest_first[:excess]


class RetentionManager:
    """Deletes old backups from one remote."""

    def __init__(self, storage: RcloneStorage, retention_count: int):
        """
        Initialize retention manager.

        Args:
            storage: Remote to clean up
            retention_count: Number of backups to keep
        """
        self.storage = storage
        self.retention_count = retention_count

    def enforce(self) -> int:
        """
        Enforce the retention count on the remote.

        Individual delete failures are logged and skipped.

        Returns:
            Number of objects deleted

        Raises:
            RetentionError: If the remote cannot be listed
        """
        try:
            objects = self.storage.list_objects()
        except StorageError as e:
            raise RetentionError(f"Failed to list {self.storage.remote}: {e}") from e

        to_delete = select_for_deletion(objects, self.retention_count)
        if not to_delete:
            logger.debug(
                f"{self.storage.remote}: {len(objects)} objects within retention "
                f"of {self.retention_count} backups"
            )
            return 0

        logger.debug(f"{self.storage.remote}: deleting {len(to_delete)} of {len(objects)} objects")

        deleted_count = 0
        for obj in to_delete:
            try:
                self.storage.delete(obj.name)
                deleted_count += 1
            except StorageError as e:
                logger.warning(f"Failed to delete {self.storage.remote}/{obj.name}: {e}")

        return deleted_count
