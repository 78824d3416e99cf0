"""Data models for Git Swap."""

from __future__ import annotations

import copy
import json
import os
import platform as platform_module
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto

from git_swap.platforms import PlatformType, get_default_domain

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class HostOS(Enum):
    """Operating system git-swap is running on."""

    MACOS = auto()
    LINUX = auto()
    WSL = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    @classmethod
    def detect(cls) -> HostOS:
        """Detect current operating system."""
        system = platform_module.system()
        if system == "Darwin":
            return cls.MACOS
        elif system == "Windows":
            return cls.WINDOWS
        elif system == "Linux":
            if os.environ.get("WSL_DISTRO_NAME"):
                return cls.WSL
            return cls.LINUX
        return cls.UNKNOWN


@dataclass
class SshCredential:
    """Private key path plus the SSH host alias routed to it."""

    key_path: str = ""
    host_alias: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> SshCredential:
        return cls(
            key_path=data.get("keyPath", ""),
            host_alias=data.get("hostAlias", ""),
        )

    def to_dict(self) -> dict:
        return {"keyPath": self.key_path, "hostAlias": self.host_alias}


@dataclass
class TokenCredential:
    """HTTPS username and personal access token."""

    username: str = ""
    token: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> TokenCredential:
        return cls(username=data.get("username", ""), token=data.get("token", ""))

    def to_dict(self) -> dict:
        return {"username": self.username, "token": self.token}

    def __repr__(self) -> str:
        masked = "***" if self.token else ""
        return f"TokenCredential(username={self.username!r}, token={masked!r})"


@dataclass
class PlatformConfig:
    """Hosting platform, with an optional custom domain for self-hosted instances."""

    type: str = PlatformType.GITHUB.value
    domain: str = ""
    api_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> PlatformConfig:
        return cls(
            type=data.get("type", ""),
            domain=data.get("domain", ""),
            api_url=data.get("apiUrl", ""),
        )

    def to_dict(self) -> dict:
        data = {"type": self.type}
        if self.domain:
            data["domain"] = self.domain
        if self.api_url:
            data["apiUrl"] = self.api_url
        return data


@dataclass
class Account:
    """One configured identity."""

    name: str
    git_user_name: str = ""
    git_email: str = ""
    ssh: SshCredential | None = None
    token: TokenCredential | None = None
    platform: PlatformConfig | None = None

    @property
    def platform_type(self) -> PlatformType:
        """Platform of the account; GitHub when unset."""
        return PlatformType.parse(self.platform.type if self.platform else None)

    @property
    def platform_domain(self) -> str:
        """Custom domain when configured, otherwise the platform's default host."""
        if self.platform and self.platform.domain:
            return self.platform.domain
        return get_default_domain(self.platform_type)

    @property
    def has_ssh(self) -> bool:
        return self.ssh is not None and bool(self.ssh.key_path)

    @property
    def has_token(self) -> bool:
        return self.token is not None and bool(self.token.token)

    @property
    def methods(self) -> list[str]:
        methods = []
        if self.ssh is not None:
            methods.append("ssh")
        if self.token is not None:
            methods.append("token")
        return methods

    @property
    def is_switchable(self) -> bool:
        return self.ssh is not None or self.token is not None

    def clone(self) -> Account:
        """Deep copy; mutating the clone never affects the original."""
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: dict) -> Account:
        """Create Account from dictionary."""
        ssh = data.get("ssh")
        token = data.get("token")
        platform = data.get("platform")
        return cls(
            name=data.get("name", ""),
            git_user_name=data.get("gitUserName", ""),
            git_email=data.get("gitEmail", ""),
            ssh=SshCredential.from_dict(ssh) if ssh is not None else None,
            token=TokenCredential.from_dict(token) if token is not None else None,
            platform=PlatformConfig.from_dict(platform) if platform is not None else None,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization.

        Absent sub-objects and empty optional strings are omitted.
        """
        data: dict = {"name": self.name}
        if self.git_user_name:
            data["gitUserName"] = self.git_user_name
        if self.git_email:
            data["gitEmail"] = self.git_email
        if self.ssh is not None:
            data["ssh"] = self.ssh.to_dict()
        if self.token is not None:
            data["token"] = self.token.to_dict()
        if self.platform is not None:
            data["platform"] = self.platform.to_dict()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> Account:
        return cls.from_dict(json.loads(text))


@dataclass
class ActivityLogEntry:
    """A single append-only activity record."""

    action: str
    account_name: str = ""
    success: bool = False
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ActivityLogEntry:
        return cls(
            action=data.get("action", ""),
            account_name=data.get("accountName", ""),
            success=bool(data.get("success", False)),
            timestamp=data.get("timestamp", ""),
        )

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "accountName": self.account_name,
            "success": self.success,
            "timestamp": self.timestamp,
        }


@dataclass
class HealthStatus:
    """Cached verification result. ``None`` verdicts mean unknown."""

    account_name: str
    ssh_key_valid: bool | None = None
    token_valid: bool | None = None
    last_checked: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> HealthStatus:
        return cls(
            account_name=data.get("accountName", ""),
            ssh_key_valid=data.get("sshKeyValid"),
            token_valid=data.get("tokenValid"),
            last_checked=data.get("lastChecked", ""),
        )

    def to_dict(self) -> dict:
        data: dict = {"accountName": self.account_name}
        if self.ssh_key_valid is not None:
            data["sshKeyValid"] = self.ssh_key_valid
        if self.token_valid is not None:
            data["tokenValid"] = self.token_valid
        data["lastChecked"] = self.last_checked
        return data


@dataclass
class AppConfig:
    """Persisted document: accounts, activity log and health cache."""

    accounts: list[Account] = field(default_factory=list)
    activity_log: list[ActivityLogEntry] = field(default_factory=list)
    health_checks: list[HealthStatus] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict | None) -> AppConfig:
        """Create AppConfig, normalizing missing or null collections to empty lists."""
        data = data or {}
        return cls(
            accounts=[Account.from_dict(a) for a in data.get("accounts") or []],
            activity_log=[
                ActivityLogEntry.from_dict(e) for e in data.get("activityLog") or []
            ],
            health_checks=[
                HealthStatus.from_dict(h) for h in data.get("healthChecks") or []
            ],
        )

    def to_dict(self) -> dict:
        return {
            "accounts": [a.to_dict() for a in self.accounts],
            "activityLog": [e.to_dict() for e in self.activity_log],
            "healthChecks": [h.to_dict() for h in self.health_checks],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> AppConfig:
        return cls.from_dict(json.loads(text))


@dataclass
class SwitchTransaction:
    """Ordered record of a switch in progress.

    Steps are not compensated on failure; the record is what lets a failure
    report exactly how far the switch got.
    """

    account_name: str
    method: str
    repo_path: str
    original_remote_url: str | None = None
    completed_steps: list[str] = field(default_factory=list)
    current_step: str | None = None

    def begin(self, step: str) -> None:
        """Mark a step as in progress."""
        self.current_step = step

    def record_step(self, step: str) -> None:
        """Record a completed step."""
        self.completed_steps.append(step)
        self.current_step = None


def get_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp into an aware datetime.

    Accepts the format written by :func:`get_timestamp` and RFC 3339 with
    offsets. Returns None for empty or unparseable input.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
