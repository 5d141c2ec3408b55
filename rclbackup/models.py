"""
Data model for backup runs.

Plain value objects shared by the pipeline stages. Nothing here touches
the filesystem or runs commands.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

DOCKER_PREFIX = 'docker://'

# RFC 3339 as printed by rclone: fractional seconds of any length, Z or offset
MOD_TIME_PATTERN = re.compile(
    r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})$'
)


class DatabaseKind(str, Enum):
    """Database engines that can be dumped from a container."""
    MYSQL = 'mysql'
    POSTGRES = 'postgres'


class RunState(str, Enum):
    """Stages of a backup run."""
    VALIDATING = 'validating'
    ACQUIRING = 'acquiring'
    DUMPING = 'dumping'
    PACKAGING = 'packaging'
    PUBLISHING = 'publishing'
    REPORTING = 'reporting'
    DONE = 'done'
    FAILED = 'failed'


class UploadStatus(str, Enum):
    SUCCESS = 'success'
    FAILURE = 'failure'


@dataclass(frozen=True)
class SourceLocation:
    """
    A path to back up, either on the local filesystem or inside a container.

    The configured string form is ``/some/path`` for local paths and
    ``docker://<container>:<path>`` for paths inside a running container.
    """
    path: str
    container: Optional[str] = None

    @property
    def is_containerized(self) -> bool:
        return self.container is not None

    @classmethod
    def parse(cls, value: str) -> 'SourceLocation':
        """
        Parse a configured data path.

        Args:
            value: Local path or docker://container:/path

        Returns:
            SourceLocation instance

        Raises:
            ValueError: If the value is empty or a malformed docker location
        """
        if not value:
            raise ValueError("The backup data path can not be empty")

        if not value.startswith(DOCKER_PREFIX):
            return cls(path=value)

        container, sep, path = value[len(DOCKER_PREFIX):].partition(':')
        if not sep or not container or not path:
            raise ValueError(
                f"Invalid container data path: {value}. "
                f"Expected {DOCKER_PREFIX}<container>:<path>"
            )
        return cls(path=path, container=container)

    def __str__(self):
        if self.is_containerized:
            return f"{DOCKER_PREFIX}{self.container}:{self.path}"
        return self.path


@dataclass(frozen=True)
class DatabaseTarget:
    """Database to dump from inside a container."""
    kind: DatabaseKind
    container: str


@dataclass(frozen=True)
class RemoteTarget:
    """One rclone remote plus the path backups are kept under."""
    remote_name: str
    remote_path: str
    retention_count: int

    @property
    def remote(self) -> str:
        """rclone remote string, e.g. ``gdrive:backups/app``."""
        return f"{self.remote_name}:{self.remote_path}"

    def __str__(self):
        return self.remote


@dataclass(frozen=True)
class RemoteObject:
    """One entry of an ``rclone lsjson`` listing."""
    path: str
    name: str
    size: int
    mime_type: str
    mod_time: str
    is_dir: bool

    @classmethod
    def from_lsjson(cls, entry: dict) -> 'RemoteObject':
        """
        Build from an ``rclone lsjson`` item.

        Raises:
            KeyError: If a required key is missing
            ValueError: If ModTime is not an RFC 3339 timestamp
        """
        obj = cls(
            path=entry['Path'],
            name=entry['Name'],
            size=int(entry.get('Size', 0)),
            mime_type=entry.get('MimeType', ''),
            mod_time=entry['ModTime'],
            is_dir=bool(entry.get('IsDir', False))
        )
        parse_mod_time(obj.mod_time)
        return obj

    @property
    def modified_at(self) -> datetime:
        return parse_mod_time(self.mod_time)


def parse_mod_time(value: str) -> datetime:
    """
    Parse an rclone ModTime into a timezone aware datetime.

    rclone prints up to nanosecond precision and drops trailing zeros, so
    the fraction is truncated to microseconds and padded before parsing.

    Raises:
        ValueError: If value is not an RFC 3339 timestamp
    """
    match = MOD_TIME_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid ModTime: {value}")
    base, fraction, offset = match.groups()
    fraction = (fraction or '')[:6].ljust(6, '0')
    if offset in ('Z', 'z'):
        offset = '+00:00'
    return datetime.fromisoformat(f"{base}.{fraction}{offset}")


@dataclass
class UploadOutcome:
    """Result of publishing to one remote target."""
    target: RemoteTarget
    status: UploadStatus
    detail: str = ''

    @property
    def succeeded(self) -> bool:
        return self.status == UploadStatus.SUCCESS


@dataclass
class BackupRun:
    """One execution of the backup pipeline."""
    started_at: datetime
    archive_name: str
    checksum_name: str
    dump_name: str
    retention_count: int
    exclude: List[str] = field(default_factory=list)
    workspace: Optional[str] = None
    state: RunState = RunState.VALIDATING
    report: str = ''
    error_message: Optional[str] = None
    archive_size_bytes: Optional[int] = None
    outcomes: List[UploadOutcome] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def succeeded_targets(self) -> List[RemoteTarget]:
        return [o.target for o in self.outcomes if o.succeeded]

    @property
    def failed_targets(self) -> List[RemoteTarget]:
        return [o.target for o in self.outcomes if not o.succeeded]
