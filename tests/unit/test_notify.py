"""
Unit tests for ntfy notifications (rclbackup/notify.py).

Requests go through httpx.MockTransport, nothing leaves the process.
"""

import base64
import json

import httpx
import pytest

from rclbackup.notify import NtfyNotifier, create_notifier


def _client(requests, status_code=200):
    def handler(request):
        requests.append(request)
        return httpx.Response(status_code, text='ok' if status_code < 400 else 'denied')
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestNtfyNotifier:
    """Test message delivery."""

    def test_posts_topic_and_message(self):
        requests = []
        notifier = NtfyNotifier('https://ntfy.example.com', 'backups', token='tk', client=_client(requests))

        assert notifier.send('The backup was successful as follows:\nr1:p\n') is True

        request = requests[0]
        assert request.method == 'POST'
        assert request.url.host == 'ntfy.example.com'
        assert json.loads(request.content) == {
            'topic': 'backups',
            'message': 'The backup was successful as follows:\nr1:p\n'
        }

    def test_token_takes_precedence(self):
        requests = []
        notifier = NtfyNotifier(
            'https://ntfy.example.com', 'backups',
            username='user', password='secret', token='tk_abc',
            client=_client(requests)
        )

        notifier.send('hello')

        assert requests[0].headers['Authorization'] == 'Bearer tk_abc'

    def test_basic_auth(self):
        requests = []
        notifier = NtfyNotifier(
            'https://ntfy.example.com', 'backups',
            username='user', password='secret',
            client=_client(requests)
        )

        notifier.send('hello')

        expected = base64.b64encode(b'user:secret').decode()
        assert requests[0].headers['Authorization'] == f'Basic {expected}'

    def test_rejected_message(self, caplog):
        requests = []
        notifier = NtfyNotifier('https://ntfy.example.com', 'backups', token='bad', client=_client(requests, 401))

        assert notifier.send('hello') is False
        assert 'status: 401' in caplog.text

    def test_transport_error(self, caplog):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        notifier = NtfyNotifier('https://ntfy.example.com', 'backups', token='tk', client=client)

        assert notifier.send('hello') is False
        assert 'Failed to send notification' in caplog.text


    def test_malformed_url(self, caplog):
        notifier = NtfyNotifier('http://[::1', 'backups', token='tk')

        assert notifier.send('hello') is False
        assert 'Failed to send notification' in caplog.text


class TestCreateNotifier:
    """Test building the notifier from configuration."""

    def test_not_configured(self, backup_config):
        assert create_notifier(backup_config) is None

    def test_configured(self, backup_config):
        backup_config.ntfy_base_url = 'https://ntfy.example.com'
        backup_config.ntfy_topic = 'backups'
        backup_config.ntfy_token = 'tk'

        notifier = create_notifier(backup_config)

        assert isinstance(notifier, NtfyNotifier)
        assert notifier.topic == 'backups'
        assert notifier.token == 'tk'

    @pytest.mark.parametrize("base_url", [None, ''])
    def test_empty_base_url(self, backup_config, base_url):
        backup_config.ntfy_base_url = base_url
        backup_config.ntfy_topic = 'backups'

        assert create_notifier(backup_config) is None
