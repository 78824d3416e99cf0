"""Blocking execution of external commands (git, ssh, ssh-keygen)."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from git_swap.exceptions import SubprocessFailureError

logger = logging.getLogger("git-swap.shell")


@dataclass
class CommandResult:
    """Captured outcome of a finished command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Stripped stdout."""
        return self.stdout.strip()


class ProcessRunner:
    """Runs commands synchronously and captures their output.

    A non-zero exit status is returned as data by ``run``; only a command
    that cannot be started raises. ``check`` turns a non-zero exit into a
    SubprocessFailureError carrying the operation name.
    """

    def run(
        self,
        command: str,
        *args: str,
        cwd: Path | str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = [command, *args]
        logger.debug(f"Running: {' '.join(argv)}")
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                input=input,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise SubprocessFailureError(f"run {command}", argv, stderr=str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise SubprocessFailureError(
                f"run {command}", argv, stderr=f"timed out after {timeout}s"
            ) from e
        return CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def run_interactive(
        self, command: str, *args: str, cwd: Path | str | None = None
    ) -> int:
        """Run attached to the invoking terminal's streams; return the exit status."""
        argv = [command, *args]
        logger.debug(f"Running interactively: {' '.join(argv)}")
        try:
            return subprocess.run(argv, cwd=cwd).returncode
        except FileNotFoundError as e:
            raise SubprocessFailureError(f"run {command}", argv, stderr=str(e)) from e

    def check(
        self,
        operation: str,
        command: str,
        *args: str,
        cwd: Path | str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run and raise SubprocessFailureError on a non-zero exit."""
        try:
            result = self.run(command, *args, cwd=cwd, input=input, timeout=timeout)
        except SubprocessFailureError as e:
            raise SubprocessFailureError(operation, e.command, stderr=e.stderr) from e
        if not result.ok:
            raise SubprocessFailureError(
                operation, result.args, returncode=result.returncode, stderr=result.stderr
            )
        return result
