"""
Backup module for rclbackup.

This module handles the core backup pipeline including:
- Process execution for the external tools
- Source acquisition (local and docker)
- Database dumps
- Compression and checksums
- rclone uploads with retention enforcement
- Execution orchestration
"""

from .executor import BackupExecutor
from .process import ProcessRunner, ProcessResult
from .sources import LocalSource, DockerSource, acquire_sources
from .database import DatabaseDumper
from .compression import Archiver
from .storage import RcloneStorage
from .retention import RetentionManager, select_for_deletion
from .publisher import RemotePublisher
from .coordinator import UploadCoordinator, build_report

__all__ = [
    'BackupExecutor',
    'ProcessRunner',
    'ProcessResult',
    'LocalSource',
    'DockerSource',
    'acquire_sources',
    'DatabaseDumper',
    'Archiver',
    'RcloneStorage',
    'RetentionManager',
    'select_for_deletion',
    'RemotePublisher',
    'UploadCoordinator',
    'build_report'
]
