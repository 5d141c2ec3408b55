"""
Configuration for rclbackup.

Settings are resolved once, in this order of precedence:
1. Explicit command line options
2. Process environment variables
3. A dotenv file (``--env-file`` or a ``.env`` found from the working directory)
4. Defaults
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx
from apscheduler.triggers.cron import CronTrigger
from dotenv import dotenv_values, find_dotenv

from rclbackup.models import DatabaseKind, DatabaseTarget, RemoteTarget, SourceLocation

DEFAULT_ROTATE = 30
DEFAULT_RCLONE_BIN = 'rclone'

ENV_VARS = {
    'data_path': 'BACKUP_DATA_PATH',
    'exclude': 'BACKUP_EXCLUDE',
    'rotate': 'BACKUP_ROTATE',
    'db_type': 'DB_TYPE',
    'db_container_name': 'DB_CONTAINER_NAME',
    'rclone_remote_name': 'RCLONE_REMOTE_NAME',
    'rclone_remote_path': 'RCLONE_REMOTE_PATH',
    'rclone_bin_path': 'RCLONE_BIN_PATH',
    'ntfy_base_url': 'NTFY_BASE_URL',
    'ntfy_username': 'NTFY_USERNAME',
    'ntfy_password': 'NTFY_PASSWORD',
    'ntfy_token': 'NTFY_TOKEN',
    'ntfy_topic': 'NTFY_TOPIC',
    'debug': 'BACKUP_DEBUG',
    'log_file': 'BACKUP_LOG_FILE',
    'schedule': 'BACKUP_SCHEDULE',
    'history_db': 'BACKUP_HISTORY_DB',
    'command_timeout': 'BACKUP_COMMAND_TIMEOUT',
}

# Comma separated values, both on the command line and in the environment
DELIMITED_FIELDS = {'data_path', 'rclone_remote_name'}
LIST_FIELDS = DELIMITED_FIELDS | {'exclude'}

TRUE_VALUES = {'1', 'true', 'yes', 'on'}


class ValidationError(Exception):
    """Raised when the configuration is missing or invalid."""
    pass


@dataclass
class BackupConfig:
    """Resolved settings for one backup invocation."""
    data_path: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    rotate: int = DEFAULT_ROTATE
    db_type: Optional[str] = None
    db_container_name: Optional[str] = None
    rclone_remote_name: List[str] = field(default_factory=list)
    rclone_remote_path: Optional[str] = None
    rclone_bin_path: str = DEFAULT_RCLONE_BIN
    ntfy_base_url: Optional[str] = None
    ntfy_username: Optional[str] = None
    ntfy_password: Optional[str] = None
    ntfy_token: Optional[str] = None
    ntfy_topic: Optional[str] = None
    debug: bool = False
    log_file: Optional[str] = None
    schedule: Optional[str] = None
    history_db: Optional[str] = None
    command_timeout: Optional[float] = None
    env_file_loaded: bool = False

    def source_locations(self) -> List[SourceLocation]:
        """
        Parse the configured data paths.

        Raises:
            ValidationError: If no path is configured or one is malformed
        """
        if not self.data_path:
            raise ValidationError("The backup data path is required")
        try:
            return [SourceLocation.parse(p) for p in self.data_path]
        except ValueError as e:
            raise ValidationError(str(e))

    def database_target(self) -> Optional[DatabaseTarget]:
        """
        Return the database to dump, or None when none is configured.

        Raises:
            ValidationError: If only one of type and container is set
        """
        if not self.db_type and not self.db_container_name:
            return None
        if not self.db_type:
            raise ValidationError("The database type is required")
        if not self.db_container_name:
            raise ValidationError("The database container name is required")
        try:
            kind = DatabaseKind(self.db_type.lower())
        except ValueError:
            valid = ', '.join(k.value for k in DatabaseKind)
            raise ValidationError(f"Invalid database type: {self.db_type}. Valid options: {valid}")
        return DatabaseTarget(kind=kind, container=self.db_container_name)

    def remote_targets(self) -> List[RemoteTarget]:
        """
        Build one RemoteTarget per configured remote name.

        Raises:
            ValidationError: If remote names or path are missing or invalid
        """
        if not self.rclone_remote_name:
            raise ValidationError("The rclone remote name is required")
        if any(not name for name in self.rclone_remote_name):
            raise ValidationError("The rclone remote name can not be empty")
        if not self.rclone_remote_path:
            raise ValidationError("The rclone remote path is required")
        if self.rclone_remote_path == '/':
            raise ValidationError("The rclone remote path can not equal /")
        return [
            RemoteTarget(name, self.rclone_remote_path, self.rotate)
            for name in self.rclone_remote_name
        ]

    @property
    def has_notification(self) -> bool:
        return bool(self.ntfy_base_url)

    def validate(self):
        """
        Check the whole configuration before any side effect.

        Raises:
            ValidationError: On the first problem found
        """
        self.source_locations()

        if any(not pattern for pattern in self.exclude):
            raise ValidationError("The exclude pattern can not be empty")

        if self.rotate < 1:
            raise ValidationError("The backup rotate must be at least 1")

        self.database_target()
        self.remote_targets()

        if not self.rclone_bin_path:
            raise ValidationError("The rclone binary path is required")

        if self.has_notification:
            try:
                url = httpx.URL(self.ntfy_base_url)
            except httpx.InvalidURL as e:
                raise ValidationError(f"Invalid ntfy base url '{self.ntfy_base_url}': {e}")
            if url.scheme not in ('http', 'https') or not url.host:
                raise ValidationError(f"Invalid ntfy base url '{self.ntfy_base_url}': expected http(s)://host")
            if not self.ntfy_topic:
                raise ValidationError("The ntfy topic is required")
            if not self.ntfy_token and not (self.ntfy_username and self.ntfy_password):
                raise ValidationError("The ntfy credentials are required")

        if self.schedule:
            try:
                CronTrigger.from_crontab(self.schedule)
            except ValueError as e:
                raise ValidationError(f"Invalid schedule '{self.schedule}': {e}")

        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ValidationError("The command timeout must be positive")


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(',')]


def _load_dotenv(env_file: Optional[str]) -> Tuple[Optional[str], Dict[str, str]]:
    """
    Read the dotenv file without touching os.environ.

    Returns:
        (path of the file read or None, values from the file)

    Raises:
        ValidationError: If an explicitly given file does not exist
    """
    if env_file:
        if not os.path.isfile(env_file):
            raise ValidationError(f"Can not load .env file from '{env_file}'")
        path = env_file
    else:
        path = find_dotenv(usecwd=True)
        if not path:
            return None, {}

    return path, {k: v for k, v in dotenv_values(path).items() if v is not None}


def _from_environment(name: str, raw: str) -> Any:
    if name in LIST_FIELDS:
        return _split(raw) if raw else []
    if name == 'debug':
        return raw.strip().lower() in TRUE_VALUES
    return raw


def _from_option(name: str, value: Any) -> Any:
    if name in DELIMITED_FIELDS:
        items = []
        for item in value:
            items.extend(_split(item))
        return items
    if name in LIST_FIELDS:
        return list(value)
    return value


def _coerce_number(name: str, value: Any, kind):
    if value is None or value == '':
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid value for {ENV_VARS[name]}: {value}")


def resolve_config(
    options: Optional[Mapping[str, Any]] = None,
    env_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> BackupConfig:
    """
    Merge command line options, environment and dotenv file into a config.

    Args:
        options: Values given on the command line; None or empty lists mean unset
        env_file: Explicit dotenv file path
        environ: Environment mapping (defaults to os.environ)

    Returns:
        BackupConfig (not yet validated)

    Raises:
        ValidationError: If the dotenv file is missing or a number is malformed
    """
    options = options or {}
    environ = os.environ if environ is None else environ

    dotenv_path, dotenv = _load_dotenv(env_file)
    merged_env = {**dotenv, **environ}

    values = {}
    for name, env_name in ENV_VARS.items():
        option = options.get(name)
        if option is not None and option != () and option != []:
            values[name] = _from_option(name, option)
        elif merged_env.get(env_name) is not None:
            values[name] = _from_environment(name, merged_env[env_name])

    rotate = _coerce_number('rotate', values.get('rotate'), int)
    values['rotate'] = DEFAULT_ROTATE if rotate is None else rotate
    values['command_timeout'] = _coerce_number('command_timeout', values.get('command_timeout'), float)

    return BackupConfig(env_file_loaded=dotenv_path is not None, **values)
