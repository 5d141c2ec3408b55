"""
Push notifications through an ntfy server.

One message per run, posted as JSON ``{"topic": ..., "message": ...}`` to
the server base URL.
"""

import logging
from typing import Optional

import httpx

from rclbackup.config import BackupConfig

logger = logging.getLogger(__name__)


class NtfyNotifier:
    """
    Sends the backup report to ntfy.

    A bearer token is used when configured, otherwise HTTP basic auth with
    username and password.
    """

    def __init__(
        self,
        base_url: str,
        topic: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: float = 30,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize notifier.

        Args:
            base_url: ntfy server URL
            topic: Topic to publish to
            username: Basic auth username
            password: Basic auth password
            token: Access token, takes precedence over username/password
            timeout_seconds: Request timeout
            client: Preconfigured httpx client (tests inject a mock transport)
        """
        self.base_url = base_url
        self.topic = topic
        self.username = username
        self.password = password
        self.token = token
        self.timeout_seconds = timeout_seconds
        self.client = client

    def _request_kwargs(self, message: str) -> dict:
        kwargs = {'json': {'topic': self.topic, 'message': message}}
        if self.token:
            kwargs['headers'] = {'Authorization': f"Bearer {self.token}"}
        elif self.username and self.password:
            kwargs['auth'] = httpx.BasicAuth(self.username, self.password)
        return kwargs

    def send(self, message: str) -> bool:
        """
        Post the message.

        Failures are logged, never raised.

        Args:
            message: Notification body

        Returns:
            True if the server accepted the message
        """
        kwargs = self._request_kwargs(message)

        try:
            if self.client is not None:
                response = self.client.post(self.base_url, **kwargs)
            else:
                with httpx.Client(timeout=self.timeout_seconds) as client:
                    response = client.post(self.base_url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Failed to send notification: {e}")
            return False

        if not response.is_success:
            logger.error(
                f"Failed to send notification, status: {response.status_code}, "
                f"response: {response.text}"
            )
            return False

        logger.info(f"Notification sent to topic {self.topic}")
        return True


def create_notifier(config: BackupConfig) -> Optional[NtfyNotifier]:
    """Return a notifier for the config, or None when ntfy is not configured."""
    if not config.has_notification:
        return None
    return NtfyNotifier(
        base_url=config.ntfy_base_url,
        topic=config.ntfy_topic,
        username=config.ntfy_username,
        password=config.ntfy_password,
        token=config.ntfy_token
    )
