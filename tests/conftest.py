"""
Shared pytest fixtures for rclbackup tests.

This module provides fixtures for:
- A fake process runner standing in for cp, docker, tar, sha256sum and rclone
- A clean environment (no BACKUP_*/RCLONE_*/NTFY_* variables, no stray .env)
- Configurations for a full backup run
- Temporary source files
- rclone lsjson listings
"""

import json
import os
import threading
from collections import namedtuple

import pytest

from rclbackup.backup.process import ProcessResult
from rclbackup.config import ENV_VARS, BackupConfig

Call = namedtuple('Call', ['program', 'args', 'cwd'])
Rule = namedtuple('Rule', ['program', 'prefix', 'returncode', 'stdout', 'stderr', 'exc'])

FAKE_DIGEST = 'a' * 64


class FakeRunner:
    """
    Thread-safe stand-in for ProcessRunner.

    Records every call. Responses are chosen by the first rule whose program
    and leading arguments match; without a rule the command succeeds, and
    ``tar`` / ``sha256sum`` behave enough like the real tools for a full run.
    """

    def __init__(self):
        self.calls = []
        self.rules = []
        self._lock = threading.Lock()

    def when(self, program, *prefix, returncode=0, stdout=b'', stderr=b'', exc=None):
        self.rules.append(Rule(program, list(prefix), returncode, stdout, stderr, exc))
        return self

    def run(self, program, args, cwd=None):
        args = list(args)
        with self._lock:
            self.calls.append(Call(program, args, cwd))

        for rule in self.rules:
            if rule.program == program and args[:len(rule.prefix)] == rule.prefix:
                if rule.exc is not None:
                    raise rule.exc
                return ProcessResult(program, args, rule.returncode, rule.stdout, rule.stderr)

        return self._default(program, args, cwd)

    def _default(self, program, args, cwd):
        if program == 'tar':
            with open(os.path.join(cwd, args[1]), 'wb') as f:
                f.write(b'fake archive')
        elif program == 'sha256sum':
            return ProcessResult(program, args, 0, f"{FAKE_DIGEST}  {args[0]}\n".encode())
        elif program == 'rclone' and args[0] == 'lsjson':
            return ProcessResult(program, args, 0, b'[]')
        return ProcessResult(program, args, 0)

    def calls_for(self, program, *prefix):
        with self._lock:
            return [
                c for c in self.calls
                if c.program == program and c.args[:len(prefix)] == list(prefix)
            ]


def make_listing(count, prefix='backup', start_day=1):
    """
    Build rclone lsjson output with ``count`` objects, oldest first.

    Names are ``{prefix}_{index:02d}`` and modification times one day apart.
    """
    entries = []
    for i in range(count):
        entries.append({
            'Path': f"{prefix}_{i:02d}",
            'Name': f"{prefix}_{i:02d}",
            'Size': 1024,
            'MimeType': 'application/gzip',
            'ModTime': f"2024-01-{start_day + i:02d}T02:00:00.000000000Z",
            'IsDir': False
        })
    return json.dumps(entries).encode()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Remove backup settings from the environment and run in an empty directory."""
    for env_name in ENV_VARS.values():
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def lsjson():
    """Factory for rclone lsjson output, see make_listing."""
    return make_listing


@pytest.fixture
def backup_config(tmp_path):
    """
    Configuration for a run with one local path and two remotes.
    """
    data_dir = tmp_path / 'data'
    data_dir.mkdir()
    (data_dir / 'file1.txt').write_text('Content 1')

    return BackupConfig(
        data_path=[str(data_dir)],
        rotate=5,
        rclone_remote_name=['r1', 'r2'],
        rclone_remote_path='backups/app'
    )


@pytest.fixture
def temp_files(tmp_path):
    """
    Create temporary test files and directories.

    Creates:
    - source/test_file1.txt
    - source/test_file2.log
    - source/nested/test_file3.txt
    """
    source = tmp_path / 'source'
    source.mkdir()
    (source / 'test_file1.txt').write_text('Test content 1')
    (source / 'test_file2.log').write_text('Test log content')

    nested_dir = source / 'nested'
    nested_dir.mkdir()
    (nested_dir / 'test_file3.txt').write_text('Nested test content')

    return source
