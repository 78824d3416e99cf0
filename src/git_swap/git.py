"""Git repository queries and remote URL handling."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from git_swap.exceptions import InvalidRemoteURLError, NotAGitRepositoryError
from git_swap.platforms import PlatformType, detect_platform
from git_swap.shell import ProcessRunner

logger = logging.getLogger("git-swap.git")

# git@host:owner/repo.git, or host:owner/repo.git through an SSH alias
_SCP_PATTERN = re.compile(r"^(?:(?P<user>[^@/:\s]+)@)?(?P<host>[\w.-]{2,}):(?P<path>[^/].*)$")
_SSH_URL_PATTERN = re.compile(
    r"^ssh://(?:(?P<user>[^@/]+)@)?(?P<host>[^/:]+)(?::(?P<port>\d+))?/(?P<path>.+)$"
)
_HTTPS_PATTERN = re.compile(
    r"^(?P<scheme>https?)://(?:(?P<userinfo>[^@/]+)@)?(?P<host>[^/:]+)(?::(?P<port>\d+))?/(?P<path>.+)$"
)


@dataclass
class RemoteURL:
    """Parsed remote URL."""

    url: str
    is_ssh: bool
    host: str
    path: str
    owner: str
    repo: str
    platform: PlatformType
    username: str = ""
    port: str = ""


@dataclass
class RemoteInfo:
    """What the status and list views show about a repository's origin."""

    remote_url: str
    repo_path: str
    auth_type: str
    platform: PlatformType
    host: str


def with_git_suffix(path: str) -> str:
    return path if path.endswith(".git") else path + ".git"


def strip_git_suffix(path: str) -> str:
    return path[: -len(".git")] if path.endswith(".git") else path


def normalize_url(url: str) -> str:
    """Trim whitespace and a trailing '#', and ensure the .git suffix."""
    url = (url or "").strip().rstrip("#").rstrip("/")
    if not url:
        raise InvalidRemoteURLError("Empty URL")
    return with_git_suffix(url)


def parse_remote_url(url: str) -> RemoteURL:
    """Parse scp-like, ssh:// and http(s):// remote URLs.

    Raises:
        InvalidRemoteURLError: If the URL has no recognizable host and owner/repo path.
    """
    normalized = normalize_url(url)

    https_match = _HTTPS_PATTERN.match(normalized)
    ssh_match = _SSH_URL_PATTERN.match(normalized)
    scp_match = None if "://" in normalized else _SCP_PATTERN.match(normalized)

    is_ssh = True
    port = ""
    if https_match:
        is_ssh = False
        host, path = https_match["host"], https_match["path"]
        port = https_match["port"] or ""
        username = (https_match["userinfo"] or "").split(":", 1)[0]
    elif ssh_match:
        host, path = ssh_match["host"], ssh_match["path"]
        port = ssh_match["port"] or ""
        username = ssh_match["user"] or ""
    elif scp_match:
        host, path = scp_match["host"], scp_match["path"]
        username = scp_match["user"] or ""
    else:
        raise InvalidRemoteURLError(f"Unable to parse URL: {url}")

    segments = [s for s in strip_git_suffix(path).strip("/").split("/") if s]
    if len(segments) < 2:
        raise InvalidRemoteURLError(f"Unable to parse URL: {url}")

    return RemoteURL(
        url=normalized,
        is_ssh=is_ssh,
        host=host,
        path="/".join(segments),
        owner=segments[0],
        repo=segments[-1],
        platform=detect_platform(host),
        username=username,
        port=port,
    )


def build_ssh_url(host: str, repo_path: str) -> str:
    """``git@<host>:<path>.git``; host may be an SSH alias."""
    return f"git@{host}:{with_git_suffix(repo_path)}"


def build_https_url(host: str, repo_path: str, username: str | None = None) -> str:
    """``https://[<username>@]<host>/<path>.git``. Never embeds a token."""
    userinfo = f"{username}@" if username else ""
    return f"https://{userinfo}{host}/{with_git_suffix(repo_path)}"


class GitRepository:
    """Git operations scoped to one working tree."""

    def __init__(self, path: Path | str, runner: ProcessRunner | None = None):
        self.path = Path(path)
        self.runner = runner or ProcessRunner()

    def _git(self, *args: str):
        return self.runner.run("git", *args, cwd=self.path)

    @classmethod
    def clone(
        cls,
        url: str,
        target: Path | str,
        runner: ProcessRunner | None = None,
        user_name: str = "",
        email: str = "",
    ) -> GitRepository:
        """Clone url into target and set the new checkout's local identity.

        Raises:
            SubprocessFailureError: If git clone or a config write fails.
        """
        runner = runner or ProcessRunner()
        target = Path(target)
        runner.check("clone repository", "git", "clone", url, str(target))
        repo = cls(target, runner)
        if user_name:
            repo.set_config("user.name", user_name)
        if email:
            repo.set_config("user.email", email)
        logger.info(f"Cloned {url} into {target}")
        return repo

    def is_repo(self) -> bool:
        if not self.path.is_dir():
            return False
        result = self._git("rev-parse", "--is-inside-work-tree")
        return result.ok and result.output == "true"

    def require_repo(self) -> None:
        """Raises NotAGitRepositoryError unless the path is inside a work tree."""
        if not self.is_repo():
            raise NotAGitRepositoryError(self.path)

    def get_config(self, key: str, scope: str | None = "local") -> str | None:
        """Read a config value; None when unset. ``scope`` is local, global or None."""
        args = ["config"]
        if scope:
            args.append(f"--{scope}")
        args.extend(["--get", key])
        result = self._git(*args)
        if not result.ok or not result.output:
            return None
        return result.output

    def set_config(self, key: str, value: str, scope: str = "local") -> None:
        self.runner.check(
            f"set git config {key}",
            "git",
            "config",
            f"--{scope}",
            key,
            value,
            cwd=self.path,
        )

    def get_current_user(self) -> tuple[str, str]:
        """Return (user.name, user.email), each falling back to global config."""
        values = []
        for key in ("user.name", "user.email"):
            value = self.get_config(key, "local") or self.get_config(key, "global") or ""
            values.append(value)
        return values[0], values[1]

    def get_remote_url(self, remote: str = "origin") -> str | None:
        result = self._git("remote", "get-url", remote)
        if not result.ok or not result.output:
            return None
        return result.output

    def set_remote_url(self, url: str, remote: str = "origin") -> None:
        """Point ``remote`` at url, adding the remote if it does not exist."""
        if self.get_remote_url(remote) is None:
            self.runner.check(
                f"add remote {remote}", "git", "remote", "add", remote, url, cwd=self.path
            )
        else:
            self.runner.check(
                f"set URL of remote {remote}",
                "git",
                "remote",
                "set-url",
                remote,
                url,
                cwd=self.path,
            )
        logger.info(f"Remote {remote} of {self.path} set to {url}")

    def get_current_branch(self) -> str | None:
        result = self._git("rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok or result.output in ("", "HEAD"):
            return None
        return result.output

    def get_remote_info(self, remote: str = "origin") -> RemoteInfo | None:
        url = self.get_remote_url(remote)
        if url is None:
            return None
        try:
            parsed = parse_remote_url(url)
        except InvalidRemoteURLError:
            logger.debug(f"Unparseable remote URL: {url}")
            return None
        return RemoteInfo(
            remote_url=url,
            repo_path=parsed.path,
            auth_type="ssh" if parsed.is_ssh else "https",
            platform=parsed.platform,
            host=parsed.host,
        )
