"""
Concurrent upload to every configured remote.

Each remote is published by its own worker thread. Workers return an
UploadOutcome and share no state; outcomes are gathered in completion
order once every worker has finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from rclbackup.models import RemoteTarget, UploadOutcome, UploadStatus
from .process import ProcessRunner
from .publisher import RemotePublisher

logger = logging.getLogger(__name__)

SUCCESS_HEADER = "The backup was successful as follows:"
FAILURE_HEADER = "The backup failed as follows:"


class UploadCoordinator:
    """Runs a RemotePublisher per target in parallel."""

    def __init__(self, targets: List[RemoteTarget], runner: ProcessRunner, bin_path: str = 'rclone'):
        """
        Initialize upload coordinator.

        Args:
            targets: Remotes to publish to
            runner: Process runner shared by all publishers
            bin_path: rclone binary name or path
        """
        self.targets = targets
        self.runner = runner
        self.bin_path = bin_path

    def _publish_one(self, target: RemoteTarget, artifacts: List[str]) -> UploadOutcome:
        publisher = RemotePublisher(target, self.runner, self.bin_path)
        try:
            deleted = publisher.publish(artifacts)
        except Exception as e:
            logger.error(f"Failed to upload to remote: [{target.remote}], error: {e}")
            return UploadOutcome(target, UploadStatus.FAILURE, str(e))
        return UploadOutcome(target, UploadStatus.SUCCESS, f"deleted {deleted} old object(s)")

    def upload(self, artifacts: List[str]) -> List[UploadOutcome]:
        """
        Publish artifacts to all targets and wait for every one of them.

        Args:
            artifacts: Local paths of the archive and checksum

        Returns:
            One UploadOutcome per target, in completion order
        """
        if not self.targets:
            return []

        outcomes = []
        with ThreadPoolExecutor(max_workers=len(self.targets), thread_name_prefix='upload') as pool:
            futures = [
                pool.submit(self._publish_one, target, artifacts)
                for target in self.targets
            ]
            for future in as_completed(futures):
                outcomes.append(future.result())
        return outcomes


def build_report(outcomes: List[UploadOutcome]) -> str:
    """
    Render the upload summary sent as the notification message.

    Sections without entries are left out.
    """
    succeeded = [o.target.remote for o in outcomes if o.succeeded]
    failed = [o.target.remote for o in outcomes if not o.succeeded]

    lines = []
    if succeeded:
        lines.append(SUCCESS_HEADER)
        lines.extend(succeeded)
    if failed:
        lines.append(FAILURE_HEADER)
        lines.extend(failed)
    return ''.join(f"{line}\n" for line in lines)
