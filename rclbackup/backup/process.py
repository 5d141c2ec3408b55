"""
Process runner for external backup tools.

Every external effect of a backup (cp, docker, tar, sha256sum, rclone)
goes through ProcessRunner so the stages only depend on the
``run(program, args) -> ProcessResult`` contract.
"""

import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)


class ProcessError(Exception):
    """Base class for process runner failures."""
    pass


class SpawnFailed(ProcessError):
    """Raised when a program cannot be started at all."""

    def __init__(self, program: str, reason: Exception):
        self.program = program
        self.reason = reason
        super().__init__(f"Failed to start {program}: {reason}")


class CommandFailed(ProcessError):
    """Raised when a program exits with a non-zero status."""

    def __init__(self, program: str, returncode: int, stderr: str):
        self.program = program
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{program} exited with status {returncode}: {stderr}")


class CommandTimeout(ProcessError):
    """Raised when a program does not finish within the configured timeout."""

    def __init__(self, program: str, timeout: float):
        self.program = program
        self.timeout = timeout
        super().__init__(f"{program} did not finish within {timeout} seconds")


class ProcessResult:
    """Captured outcome of one external command."""

    def __init__(self, program: str, args: List[str], returncode: int, stdout: bytes = b'', stderr: bytes = b''):
        self.program = program
        self.args = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def exit_ok(self) -> bool:
        return self.returncode == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode('utf-8', errors='replace')

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode('utf-8', errors='replace').strip()

    def check(self) -> 'ProcessResult':
        """
        Return self if the command succeeded.

        Raises:
            CommandFailed: If the command exited with a non-zero status
        """
        if not self.exit_ok:
            raise CommandFailed(self.program, self.returncode, self.stderr_text)
        return self

    def __repr__(self):
        return f'<ProcessResult {self.program} returncode={self.returncode}>'


class ProcessRunner:
    """
    Runs external programs and captures their output.

    A non-zero exit never raises here; callers inspect ``exit_ok`` or call
    ``check()``.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize process runner.

        Args:
            timeout: Seconds to wait for each command (None waits forever)
        """
        self.timeout = timeout

    def run(self, program: str, args: List[str], cwd: Optional[str] = None) -> ProcessResult:
        """
        Run a program to completion.

        Args:
            program: Program name or path
            args: Arguments passed to the program
            cwd: Working directory for the command

        Returns:
            ProcessResult with exit status, stdout and stderr

        Raises:
            SpawnFailed: If the program cannot be started
            CommandTimeout: If the timeout expires
        """
        command = [program, *args]
        logger.debug(f"Running command: {' '.join(command)}")

        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                timeout=self.timeout,
                check=False
            )
        except subprocess.TimeoutExpired:
            raise CommandTimeout(program, self.timeout)
        except OSError as e:
            raise SpawnFailed(program, e) from e

        result = ProcessResult(program, args, completed.returncode, completed.stdout, completed.stderr)
        logger.debug(f"Command {program} finished with status {result.returncode}")
        return result
