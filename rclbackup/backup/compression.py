"""
Archive and checksum creation.

Produces the two artifacts that get uploaded:
- backup_{YYYYMMDD_HHMMSS}.tar.gz: gzip compressed tar of the workspace data
- backup_{YYYYMMDD_HHMMSS}.tar.gz.sha256: ``digest  filename`` checksum line
"""

import logging
import os
from datetime import datetime
from typing import List, Optional, Tuple

from .process import ProcessRunner, ProcessError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


class PackagingError(Exception):
    """Raised when archive or checksum creation fails."""
    pass


def generate_archive_filename(timestamp: datetime) -> str:
    """
    Generate the archive filename for a run.

    Format: backup_{YYYYMMDD_HHMMSS}.tar.gz

    Args:
        timestamp: Run start time

    Returns:
        Filename (without path)
    """
    return f"backup_{timestamp.strftime(TIMESTAMP_FORMAT)}.tar.gz"


def generate_checksum_filename(archive_name: str) -> str:
    return f"{archive_name}.sha256"


def generate_dump_filename(timestamp: datetime) -> str:
    """Format: dump_{YYYYMMDD_HHMMSS}.sql"""
    return f"dump_{timestamp.strftime(TIMESTAMP_FORMAT)}.sql"


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        PackagingError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise PackagingError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise PackagingError(f"Failed to get archive size: {e}")


class Archiver:
    """
    Packages a workspace directory with tar and sha256sum.

    Both commands run inside the workspace so the archive members and the
    checksum line use relative names.
    """

    def __init__(self, runner: ProcessRunner, verbose: bool = False, checksum_program: str = 'sha256sum'):
        """
        Initialize archiver.

        Args:
            runner: Process runner for tar and the checksum program
            verbose: List archived files in the debug log
            checksum_program: Program printing ``digest  filename`` for a file
        """
        self.runner = runner
        self.verbose = verbose
        self.checksum_program = checksum_program

    def create_archive(
        self,
        workspace: str,
        source_dir: str,
        archive_name: str,
        exclude: Optional[List[str]] = None
    ) -> str:
        """
        Create a gzip compressed tar of source_dir.

        Args:
            workspace: Directory the command runs in
            source_dir: Directory to archive, relative to workspace
            archive_name: Archive filename, created in workspace
            exclude: Patterns passed to tar as --exclude, verbatim

        Returns:
            Full path to the created archive

        Raises:
            PackagingError: If tar fails
        """
        args = ['-zcvf' if self.verbose else '-zcf', archive_name]
        for pattern in exclude or []:
            args.extend(['--exclude', pattern])
        args.append(source_dir)

        try:
            result = self.runner.run('tar', args, cwd=workspace).check()
        except ProcessError as e:
            raise PackagingError(f"Failed to compress: {e}") from e

        if self.verbose and result.stdout:
            logger.debug(f"Compressed files in {workspace}:\n{result.stdout_text}")

        return os.path.join(workspace, archive_name)

    def write_checksum(self, workspace: str, archive_name: str, checksum_name: str) -> str:
        """
        Write the SHA-256 checksum of the archive to checksum_name.

        Returns:
            Full path to the checksum file

        Raises:
            PackagingError: If hashing or writing fails
        """
        try:
            result = self.runner.run(self.checksum_program, [archive_name], cwd=workspace).check()
        except ProcessError as e:
            raise PackagingError(f"Failed to checksum {archive_name}: {e}") from e

        checksum_path = os.path.join(workspace, checksum_name)
        try:
            with open(checksum_path, 'wb') as f:
                f.write(result.stdout)
        except OSError as e:
            raise PackagingError(f"Failed to write checksum file: {e}") from e

        logger.debug(f"Checksum written: {archive_name} -> {checksum_name}")
        return checksum_path

    def package(
        self,
        workspace: str,
        source_dir: str,
        archive_name: str,
        checksum_name: str,
        exclude: Optional[List[str]] = None
    ) -> Tuple[str, str]:
        """
        Create the archive and then its checksum.

        Returns:
            (archive_path, checksum_path)

        Raises:
            PackagingError: If either step fails
        """
        archive_path = self.create_archive(workspace, source_dir, archive_name, exclude)
        checksum_path = self.write_checksum(workspace, archive_name, checksum_name)
        return archive_path, checksum_path
