"""Pytest fixtures for Git Swap tests."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from git_swap.models import Account, PlatformConfig, SshCredential, TokenCredential
from git_swap.shell import CommandResult, ProcessRunner


class FakeRunner(ProcessRunner):
    """ProcessRunner that records commands and replays scripted results.

    Responses are matched by argv prefix; the most recently scripted match
    wins. Unscripted commands succeed with empty output.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self._responses: list[tuple[tuple[str, ...], int, str, str]] = []

    def respond(self, *prefix: str, stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        self._responses.insert(0, (prefix, returncode, stdout, stderr))

    def run(self, command, *args, cwd=None, input=None, timeout=None):
        argv = [command, *args]
        self.calls.append(argv)
        self.inputs.append(input)
        for prefix, returncode, stdout, stderr in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                return CommandResult(argv, returncode, stdout, stderr)
        return CommandResult(argv, 0, "", "")

    def run_interactive(self, command, *args, cwd=None):
        self.calls.append([command, *args])
        return 0

    def called(self, *prefix: str) -> bool:
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)


def script_repo(
    runner: FakeRunner,
    remote: str | None = None,
    user_name: str = "",
    user_email: str = "",
) -> None:
    """Script a repository's identity and origin remote on a FakeRunner."""
    runner.respond("git", "rev-parse", "--is-inside-work-tree", stdout="true\n")
    if remote is not None:
        runner.respond("git", "remote", "get-url", "origin", stdout=remote + "\n")
    else:
        runner.respond("git", "remote", "get-url", "origin", returncode=2, stderr="error: No such remote 'origin'")
    if user_name:
        runner.respond("git", "config", "--local", "--get", "user.name", stdout=user_name + "\n")
    if user_email:
        runner.respond("git", "config", "--local", "--get", "user.email", stdout=user_email + "\n")


@pytest.fixture
def temp_home(tmp_path: Path):
    """Create a temporary home directory for testing."""
    home = tmp_path / "home"
    home.mkdir()

    # Patch HOME environment variable (and USERPROFILE for Windows)
    env_patch = {
        "HOME": str(home),
        "USERPROFILE": str(home),
        "XDG_CONFIG_HOME": str(home / ".config"),
        "GIT_CONFIG_NOSYSTEM": "1",
    }
    with patch.dict(os.environ, env_patch):
        os.environ.pop("GIT_SWAP_HOME", None)
        # Also patch Path.home() directly for cross-platform compatibility
        with patch("pathlib.Path.home", return_value=home):
            yield home


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """An existing directory the FakeRunner can pretend is a repository."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def work_account() -> Account:
    return Account(
        name="work",
        git_user_name="Work Me",
        git_email="me@work.com",
        ssh=SshCredential(key_path="~/.ssh/id_ed25519_work", host_alias="github-work"),
        platform=PlatformConfig(type="github"),
    )


@pytest.fixture
def personal_account() -> Account:
    return Account(
        name="personal",
        git_user_name="Me",
        git_email="me@home.org",
        ssh=SshCredential(key_path="~/.ssh/id_ed25519_personal", host_alias="github-personal"),
        token=TokenCredential(username="me-home", token="ghp_personal"),
    )


@pytest.fixture
def gitlab_account() -> Account:
    return Account(
        name="gitlab-corp",
        git_user_name="Corp Me",
        git_email="me@work.com",
        token=TokenCredential(username="corp-me", token="glpat-123"),
        platform=PlatformConfig(type="gitlab", domain="gitlab.corp.example"),
    )
