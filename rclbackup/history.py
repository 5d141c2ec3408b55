"""
Backup run history stored with SQLAlchemy.

Optional: enabled by setting BACKUP_HISTORY_DB to a database URL such as
``sqlite:////var/lib/rclbackup/history.db``.
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from rclbackup.models import BackupRun

logger = logging.getLogger(__name__)

Base = declarative_base()


class BackupHistory(Base):
    """Backup execution history and logs"""
    __tablename__ = 'backup_history'

    id = Column(Integer, primary_key=True)
    status = Column(String(20), nullable=False)  # done or failed
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)
    archive_name = Column(String(255), nullable=False)
    file_size_bytes = Column(BigInteger)
    succeeded_remotes = Column(Text)  # newline separated
    failed_remotes = Column(Text)  # newline separated
    error_message = Column(Text)
    logs = Column(Text)

    def __repr__(self):
        return f'<BackupHistory {self.archive_name} status={self.status}>'


class RunHistory:
    """Writes finished runs to the history database."""

    def __init__(self, url: str):
        """
        Open the history database and create the table if needed.

        A database that cannot be opened is logged and leaves the history
        unavailable; record() then does nothing.
        """
        self.Session = None
        try:
            self.engine = create_engine(url)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to open backup history database: {e}")
            return
        self.Session = sessionmaker(bind=self.engine)

    @property
    def available(self) -> bool:
        return self.Session is not None

    def record(self, run: BackupRun) -> bool:
        """
        Store a finished run.

        Database errors are logged and swallowed so they never change the
        outcome of the backup.

        Returns:
            True if the record was written
        """
        if not self.available:
            return False

        entry = BackupHistory(
            status=run.state.value,
            started_at=run.started_at,
            completed_at=run.completed_at,
            archive_name=run.archive_name,
            file_size_bytes=run.archive_size_bytes,
            succeeded_remotes='\n'.join(t.remote for t in run.succeeded_targets),
            failed_remotes='\n'.join(t.remote for t in run.failed_targets),
            error_message=run.error_message,
            logs='\n'.join(run.logs)
        )

        session = self.Session()
        try:
            session.add(entry)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to record backup history: {e}")
            return False
        finally:
            session.close()

    def recent(self, limit: int = 10) -> List[BackupHistory]:
        """Return the latest runs, newest first."""
        if not self.available:
            return []
        session = self.Session()
        try:
            return (
                session.query(BackupHistory)
                .order_by(BackupHistory.started_at.desc(), BackupHistory.id.desc())
                .limit(limit)
                .all()
            )
        finally:
            session.close()
