"""
Command line entry point for rclbackup.

Every option can also be set through the environment variable named in its
help text, or in a .env file.
"""

import logging

import click

from rclbackup import __version__, configure_logging
from rclbackup.backup.executor import BackupExecutor
from rclbackup.config import ValidationError, resolve_config
from rclbackup.models import DatabaseKind

logger = logging.getLogger(__name__)

HELP_DATA_PATH = (
    "Backup data path. Use docker://container_name:/path/to/data for a path "
    "inside a running container. Repeat or separate with commas. "
    "[env: BACKUP_DATA_PATH]")

HELP_EXCLUDE = (
    "Exclude files matching pattern from the archive. Repeatable. "
    "[env: BACKUP_EXCLUDE, comma separated]")


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--data-path', multiple=True, help=HELP_DATA_PATH)
@click.option('--exclude', multiple=True, help=HELP_EXCLUDE)
@click.option('--rotate', type=int, default=None,
              help="Number of backups to keep on each remote. [env: BACKUP_ROTATE, default: 30]")
@click.option('--db-type', type=click.Choice([k.value for k in DatabaseKind], case_sensitive=False),
              default=None, help="Database type. [env: DB_TYPE]")
@click.option('--db-container-name', default=None, help="Database container name. [env: DB_CONTAINER_NAME]")
@click.option('--rclone-remote-name', multiple=True,
              help="Rclone remote. Repeat or separate with commas. [env: RCLONE_REMOTE_NAME]")
@click.option('--rclone-remote-path', default=None, help="Rclone remote path. [env: RCLONE_REMOTE_PATH]")
@click.option('--rclone-bin-path', default=None,
              help="Rclone binary path. [env: RCLONE_BIN_PATH, default: rclone]")
@click.option('--ntfy-base-url', default=None, help="Ntfy base url. [env: NTFY_BASE_URL]")
@click.option('--ntfy-username', default=None, help="Ntfy username. [env: NTFY_USERNAME]")
@click.option('--ntfy-password', default=None, help="Ntfy password. [env: NTFY_PASSWORD]")
@click.option('--ntfy-token', default=None, help="Ntfy token. [env: NTFY_TOKEN]")
@click.option('--ntfy-topic', default=None, help="Ntfy topic. [env: NTFY_TOPIC]")
@click.option('--env-file', default=None, help="Dotenv file path.")
@click.option('--debug', is_flag=True, help="Enable debug log. [env: BACKUP_DEBUG]")
@click.option('--log-file', default=None, help="Also log to this file. [env: BACKUP_LOG_FILE]")
@click.option('--schedule', default=None,
              help="Crontab expression; keep running and back up on this schedule. [env: BACKUP_SCHEDULE]")
@click.option('--history-db', default=None,
              help="SQLAlchemy database URL to record runs in. [env: BACKUP_HISTORY_DB]")
@click.option('--command-timeout', type=float, default=None,
              help="Seconds to wait for each external command. [env: BACKUP_COMMAND_TIMEOUT]")
@click.version_option(version=__version__, prog_name='rclbackup')
def main(env_file, debug, **options):
    """A backup tool using rclone.

    Copies the data paths (and optionally a database dump) into a temporary
    directory, archives them, uploads the archive with its sha256 checksum to
    every rclone remote and keeps only the latest --rotate backups there.
    """
    # An absent flag must not override BACKUP_DEBUG
    options['debug'] = True if debug else None

    try:
        config = resolve_config(options, env_file=env_file)
    except ValidationError as e:
        raise click.ClickException(str(e))

    configure_logging(config.debug, config.log_file)

    if not config.env_file_loaded:
        logger.info("Can not detect .env file")

    if config.schedule:
        try:
            config.validate()
        except ValidationError as e:
            raise click.ClickException(str(e))

        from rclbackup.scheduler import init_scheduler, start_scheduler, stop_scheduler
        init_scheduler(config)
        try:
            start_scheduler()
        finally:
            stop_scheduler()
        return

    run = BackupExecutor(config).execute()
    if not run.succeeded:
        raise click.ClickException(run.error_message or "Backup failed")
