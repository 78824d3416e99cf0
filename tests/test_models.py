"""Tests for data models."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from unittest.mock import patch

from git_swap.models import (
    Account,
    AppConfig,
    HealthStatus,
    HostOS,
    PlatformConfig,
    SshCredential,
    TokenCredential,
    get_timestamp,
    parse_timestamp,
)
from git_swap.platforms import PlatformType


class TestAccountSerialization:
    """Test Account to/from the persisted camelCase shape."""

    def test_minimal_account_omits_absent_fields(self):
        """Absent sub-objects and empty strings are not written."""
        data = Account(name="bare").to_dict()
        assert data == {"name": "bare"}

    def test_full_account_uses_camel_case(self, personal_account: Account):
        data = personal_account.to_dict()
        assert data["gitUserName"] == "Me"
        assert data["gitEmail"] == "me@home.org"
        assert data["ssh"] == {
            "keyPath": "~/.ssh/id_ed25519_personal",
            "hostAlias": "github-personal",
        }
        assert data["token"] == {"username": "me-home", "token": "ghp_personal"}
        assert "platform" not in data

    def test_platform_omits_empty_domain(self):
        account = Account(name="a", platform=PlatformConfig(type="gitlab"))
        assert account.to_dict()["platform"] == {"type": "gitlab"}

    def test_from_dict(self):
        data = {
            "name": "corp",
            "gitEmail": "me@corp.example",
            "token": {"username": "corp-me", "token": "t"},
            "platform": {"type": "gitea", "domain": "git.corp.example", "apiUrl": "https://git.corp.example/api"},
        }
        account = Account.from_dict(data)
        assert account.name == "corp"
        assert account.git_user_name == ""
        assert account.ssh is None
        assert account.token == TokenCredential(username="corp-me", token="t")
        assert account.platform.api_url == "https://git.corp.example/api"

    def test_json_round_trip_preserves_absent_ssh(self, gitlab_account: Account):
        restored = Account.from_json(gitlab_account.to_json())
        assert restored == gitlab_account
        assert restored.ssh is None

    def test_json_round_trip_with_every_optional_field(self):
        account = Account(
            name="corp",
            git_user_name="Corp Me",
            git_email="me@corp.example",
            ssh=SshCredential(key_path="~/.ssh/id_ed25519_corp", host_alias="gitea-corp"),
            token=TokenCredential(username="corp-me", token="gta_123"),
            platform=PlatformConfig(type="gitea", domain="git.corp.example", api_url="https://git.corp.example/api/v1"),
        )

        data = json.loads(account.to_json())
        assert data["platform"] == {
            "type": "gitea",
            "domain": "git.corp.example",
            "apiUrl": "https://git.corp.example/api/v1",
        }
        assert Account.from_json(account.to_json()) == account


class TestAccountProperties:
    """Test derived account properties."""

    def test_platform_defaults_to_github(self):
        account = Account(name="a")
        assert account.platform_type == PlatformType.GITHUB
        assert account.platform_domain == "github.com"

    def test_custom_domain_wins(self, gitlab_account: Account):
        assert gitlab_account.platform_type == PlatformType.GITLAB
        assert gitlab_account.platform_domain == "gitlab.corp.example"

    def test_methods_and_switchable(self, work_account: Account, personal_account: Account):
        assert work_account.methods == ["ssh"]
        assert personal_account.methods == ["ssh", "token"]
        assert work_account.is_switchable
        assert not Account(name="none").is_switchable

    def test_clone_is_independent(self, personal_account: Account):
        clone = personal_account.clone()
        clone.ssh.key_path = "/elsewhere"
        clone.token.username = "other"
        assert personal_account.ssh.key_path == "~/.ssh/id_ed25519_personal"
        assert personal_account.token.username == "me-home"

    def test_token_repr_is_masked(self):
        text = repr(TokenCredential(username="u", token="ghp_secret"))
        assert "ghp_secret" not in text
        assert "u" in text


class TestAppConfig:
    """Test the persisted document shape."""

    def test_missing_collections_become_empty(self):
        config = AppConfig.from_dict({})
        assert config.accounts == []
        assert config.activity_log == []
        assert config.health_checks == []

    def test_null_collections_become_empty(self):
        config = AppConfig.from_json('{"accounts": null, "activityLog": null, "healthChecks": null}')
        assert config.accounts == []
        assert config.activity_log == []
        assert config.health_checks == []

    def test_none_input(self):
        assert AppConfig.from_dict(None) == AppConfig()

    def test_to_json_is_indented(self, work_account: Account):
        text = AppConfig(accounts=[work_account]).to_json()
        assert text.startswith("{\n  ")
        assert json.loads(text)["accounts"][0]["name"] == "work"


class TestHealthStatus:
    """Test tri-state health serialization."""

    def test_unknown_verdicts_are_omitted(self):
        data = HealthStatus(account_name="a", last_checked="2024-01-01T00:00:00Z").to_dict()
        assert "sshKeyValid" not in data
        assert "tokenValid" not in data

    def test_false_is_kept(self):
        status = HealthStatus.from_dict({"accountName": "a", "sshKeyValid": False})
        assert status.ssh_key_valid is False
        assert status.token_valid is None
        assert status.to_dict()["sshKeyValid"] is False


class TestTimestamps:
    """Test timestamp formatting and parsing."""

    def test_get_timestamp_format(self):
        stamp = get_timestamp()
        assert stamp.endswith("Z")
        assert parse_timestamp(stamp) is not None

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2024-03-01T12:30:00Z")
        assert parsed == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_parse_offset(self):
        parsed = parse_timestamp("2024-03-01T14:30:00+02:00")
        assert parsed == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("yesterday") is None


class TestHostOSDetection:
    """Test operating system detection."""

    @patch("platform.system", return_value="Darwin")
    def test_macos_detection(self, mock_system):
        assert HostOS.detect() == HostOS.MACOS

    @patch("platform.system", return_value="Linux")
    def test_linux_detection(self, mock_system):
        env = os.environ.copy()
        env.pop("WSL_DISTRO_NAME", None)
        with patch.dict(os.environ, env, clear=True):
            assert HostOS.detect() == HostOS.LINUX

    @patch("platform.system", return_value="Linux")
    @patch.dict(os.environ, {"WSL_DISTRO_NAME": "Ubuntu"})
    def test_wsl_detection(self, mock_system):
        assert HostOS.detect() == HostOS.WSL

    @patch("platform.system", return_value="Windows")
    def test_windows_detection(self, mock_system):
        assert HostOS.detect() == HostOS.WINDOWS

    @patch("platform.system", return_value="FreeBSD")
    def test_unknown_detection(self, mock_system):
        assert HostOS.detect() == HostOS.UNKNOWN
