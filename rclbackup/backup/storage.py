"""
rclone storage handler for backup archives.

Wraps the three rclone subcommands the pipeline needs:
- copy: upload a local file into the remote directory
- lsjson: list the remote directory
- deletefile: remove one object
"""

import json
import logging
import os
from typing import List, Optional

from rclbackup.models import RemoteObject, RemoteTarget
from .process import ProcessRunner, ProcessError

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a storage operation fails."""
    pass


class RcloneStorage:
    """
    Handler for one rclone remote directory.

    Objects are addressed as ``{remote_name}:{remote_path}/{name}``.
    """

    def __init__(self, target: RemoteTarget, runner: ProcessRunner, bin_path: str = 'rclone'):
        """
        Initialize rclone storage handler.

        Args:
            target: Remote name and path to operate on
            runner: Process runner for rclone
            bin_path: rclone binary name or path
        """
        self.target = target
        self.runner = runner
        self.bin_path = bin_path

    @property
    def remote(self) -> str:
        return self.target.remote

    def _run(self, args: List[str], cwd: Optional[str] = None):
        try:
            return self.runner.run(self.bin_path, args, cwd=cwd).check()
        except ProcessError as e:
            raise StorageError(str(e)) from e

    def upload(self, local_path: str):
        """
        Copy a local file into the remote directory.

        Args:
            local_path: Path to local file

        Raises:
            StorageError: If the copy fails
        """
        self._run(['copy', local_path, self.remote])
        logger.info(f"Copied {os.path.basename(local_path)} to {self.remote}")

    def list_objects(self) -> List[RemoteObject]:
        """
        List objects in the remote directory.

        Returns:
            List of RemoteObject

        Raises:
            StorageError: If listing fails or the output is not a valid listing
        """
        result = self._run(['lsjson', self.remote])
        try:
            entries = json.loads(result.stdout_text)
            objects = [RemoteObject.from_lsjson(entry) for entry in entries]
        except (ValueError, TypeError, KeyError) as e:
            raise StorageError(f"Invalid listing from {self.remote}: {e}") from e

        logger.debug(f"Listed {len(objects)} objects at {self.remote}")
        return objects

    def delete(self, name: str):
        """
        Delete one object from the remote directory.

        Args:
            name: Object name relative to the remote path

        Raises:
            StorageError: If deletion fails
        """
        self._run(['deletefile', f"{self.remote}/{name}"])
        logger.info(f"Deleted {self.remote}/{name}")
