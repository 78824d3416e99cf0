"""Tests for duplicate validation."""

from __future__ import annotations

import pytest

from git_swap.models import Account, PlatformConfig, SshCredential, TokenCredential
from git_swap.validator import DuplicateValidator


@pytest.fixture
def validator(work_account: Account, personal_account: Account, gitlab_account: Account) -> DuplicateValidator:
    return DuplicateValidator([work_account, personal_account, gitlab_account])


class TestChecks:
    """Test the individual duplicate checks."""

    def test_name(self, validator: DuplicateValidator):
        assert validator.check_name_duplicate("Work")
        assert not validator.check_name_duplicate("works")

    def test_name_uses_simple_case_folding(self):
        validator = DuplicateValidator([Account(name="ﬁle"), Account(name="straße")])
        assert not validator.check_name_duplicate("FILE")
        assert not validator.check_name_duplicate("STRASSE")
        assert validator.check_name_duplicate("STRAẞE")

    def test_email_is_platform_scoped(self, validator: DuplicateValidator):
        assert validator.check_email_duplicate("ME@WORK.COM", "github").name == "work"
        assert validator.check_email_duplicate("me@work.com", "GitLab").name == "gitlab-corp"
        assert validator.check_email_duplicate("me@work.com", "bitbucket") is None

    def test_email_platform_defaults_to_github(self):
        validator = DuplicateValidator([Account(name="a", git_email="x@y.z")])
        assert validator.check_email_duplicate("x@y.z", "github") is not None

    def test_ssh_key_path_normalization(self):
        validator = DuplicateValidator(
            [Account(name="win", ssh=SshCredential(key_path="C:\\Users\\Me\\.ssh\\id_ed25519"))]
        )
        assert validator.check_ssh_key_duplicate("c:/users/me/.ssh/ID_ED25519").name == "win"

    def test_ssh_key_tilde_is_not_resolved(self, validator: DuplicateValidator, temp_home):
        expanded = str(temp_home / ".ssh" / "id_ed25519_work")
        assert validator.check_ssh_key_duplicate(expanded) is None

    def test_token_is_platform_scoped(self, validator: DuplicateValidator):
        assert validator.check_token_duplicate("ME-HOME", "github").name == "personal"
        assert validator.check_token_duplicate("me-home", "gitlab") is None


class TestValidateNew:
    """Test hard errors versus soft warnings."""

    def test_clean_candidate(self, validator: DuplicateValidator):
        result = validator.validate_new(Account(name="fresh", git_email="fresh@example.com"))
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_duplicate_name_is_error(self, validator: DuplicateValidator):
        result = validator.validate_new(Account(name="PERSONAL"))
        assert not result.is_valid
        assert len(result.errors) == 1

    def test_soft_collisions_are_warnings(self, validator: DuplicateValidator):
        candidate = Account(
            name="shared",
            git_email="me@home.org",
            ssh=SshCredential(key_path="~/.ssh/id_ed25519_work", host_alias="github-shared"),
            token=TokenCredential(username="me-home", token="x"),
        )
        result = validator.validate_new(candidate)
        assert result.is_valid
        assert [w.field for w in result.warnings] == ["email", "sshKey", "token"]
        assert [w.conflicting_account for w in result.warnings] == ["personal", "work", "personal"]

    def test_same_email_on_other_platform_is_clean(self, validator: DuplicateValidator):
        candidate = Account(
            name="bb", git_email="me@work.com", platform=PlatformConfig(type="bitbucket")
        )
        assert validator.validate_new(candidate).warnings == []


class TestValidateUpdate:
    """Test validation of an edited account."""

    def test_unchanged_account_is_clean(self, validator: DuplicateValidator, personal_account: Account):
        result = validator.validate_update("personal", personal_account.clone())
        assert result.is_valid
        assert result.warnings == []

    def test_rename_onto_existing_name(self, validator: DuplicateValidator, personal_account: Account):
        edited = personal_account.clone()
        edited.name = "work"
        assert not validator.validate_update("personal", edited).is_valid
