"""
Source handlers for backup operations.

Supports:
- LocalSource: Copy paths from the local filesystem with ``cp -a``
- DockerSource: Copy a path out of a running container with ``docker cp``

All local paths of a run are copied in one batch; each container path is
copied on its own, one after another, since they share the docker daemon.
"""

import logging
import os
from typing import List, Union

from rclbackup.models import SourceLocation
from .process import ProcessRunner, ProcessError

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """Raised when source acquisition fails."""
    pass


class LocalSource:
    """
    Handler for local filesystem sources.

    Copies all paths into the destination with a single archival copy that
    preserves permissions and timestamps.
    """

    def __init__(self, paths: List[str], runner: ProcessRunner):
        """
        Initialize local source handler.

        Args:
            paths: List of file/directory paths to backup
            runner: Process runner used for the copy
        """
        self.paths = paths
        self.runner = runner

    def acquire(self, dest_dir: str):
        """
        Copy source paths into dest_dir.

        Args:
            dest_dir: Existing directory to copy files into

        Raises:
            AcquisitionError: If the copy fails
        """
        try:
            self.runner.run('cp', ['-a', *self.paths, dest_dir]).check()
        except ProcessError as e:
            raise AcquisitionError(f"Failed to copy source data: {e}") from e
        logger.info(f"Copied {len(self.paths)} local path(s) to {dest_dir}")


class DockerSource:
    """Handler for a path inside a running container."""

    def __init__(self, container: str, path: str, runner: ProcessRunner):
        self.container = container
        self.path = path
        self.runner = runner

    def acquire(self, dest_dir: str):
        """
        Copy the container path into dest_dir.

        Raises:
            AcquisitionError: If docker cp fails
        """
        src = f"{self.container}:{self.path}"
        try:
            self.runner.run('docker', ['cp', src, dest_dir, '-q']).check()
        except ProcessError as e:
            raise AcquisitionError(f"Failed to copy source data by docker from {src}: {e}") from e
        logger.info(f"Copied {src} to {dest_dir} by docker")


def create_sources(locations: List[SourceLocation], runner: ProcessRunner) -> List[Union[LocalSource, DockerSource]]:
    """
    Build source handlers for the configured locations.

    One DockerSource per containerized location comes first, in configured
    order, followed by a single LocalSource grouping every local path.

    Args:
        locations: Ordered source locations
        runner: Process runner shared by the handlers

    Returns:
        List of source handlers
    """
    sources = [
        DockerSource(loc.container, loc.path, runner)
        for loc in locations if loc.is_containerized
    ]
    local_paths = [loc.path for loc in locations if not loc.is_containerized]
    if local_paths:
        sources.append(LocalSource(local_paths, runner))
    return sources


def acquire_sources(locations: List[SourceLocation], dest_dir: str, runner: ProcessRunner) -> int:
    """
    Copy all source locations into dest_dir.

    Args:
        locations: Ordered source locations
        dest_dir: Existing destination directory
        runner: Process runner

    Returns:
        Number of copy invocations issued

    Raises:
        AcquisitionError: If dest_dir is missing or any copy fails
    """
    if not os.path.isdir(dest_dir):
        raise AcquisitionError(f"Destination directory does not exist: {dest_dir}")

    sources = create_sources(locations, runner)
    for source in sources:
        source.acquire(dest_dir)
    return len(sources)
