import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

__version__ = '0.3.2'

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'


def configure_logging(debug: bool = False, log_file: Optional[str] = None):
    """Configure application logging"""

    # Set log level based on the debug flag
    log_level = logging.DEBUG if debug else logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers = [console_handler]

    # File handler
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=handlers)

    logging.getLogger('rclbackup').setLevel(log_level)

    # HTTP client chatter only in debug mode
    http_level = logging.DEBUG if debug else logging.WARNING
    for name in ('httpx', 'httpcore'):
        logging.getLogger(name).setLevel(http_level)

    # APScheduler logs every job execution at INFO
    logging.getLogger('apscheduler').setLevel(log_level if debug else logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured (level: {logging.getLevelName(log_level)})")
