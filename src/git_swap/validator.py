"""Duplicate checks for new and edited accounts."""

from __future__ import annotations

from dataclasses import dataclass, field

from git_swap.exceptions import ValidationWarning
from git_swap.models import Account
from git_swap.normalize import same_path, same_text


@dataclass
class ValidationResult:
    """Outcome of validating a candidate account.

    ``errors`` block the operation; ``warnings`` are soft collisions the user
    may accept.
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)


class DuplicateValidator:
    """Checks a candidate against a snapshot of the stored accounts."""

    def __init__(self, accounts: list[Account]):
        self.accounts = list(accounts)

    def check_name_duplicate(self, name: str) -> bool:
        return any(same_text(a.name, name) for a in self.accounts)

    def check_email_duplicate(self, email: str, platform: str) -> Account | None:
        """First account with the same email on the same platform."""
        for account in self.accounts:
            if same_text(account.git_email, email) and same_text(
                account.platform_type.value, platform
            ):
                return account
        return None

    def check_ssh_key_duplicate(self, key_path: str) -> Account | None:
        for account in self.accounts:
            if account.ssh is not None and account.ssh.key_path:
                if same_path(account.ssh.key_path, key_path):
                    return account
        return None

    def check_token_duplicate(self, username: str, platform: str) -> Account | None:
        """First account with the same token username on the same platform."""
        for account in self.accounts:
            if account.token is not None and same_text(account.token.username, username):
                if same_text(account.platform_type.value, platform):
                    return account
        return None

    def validate_new(self, account: Account) -> ValidationResult:
        """Name clash is an error; email, key and token clashes are warnings."""
        result = ValidationResult()

        if self.check_name_duplicate(account.name):
            result.is_valid = False
            result.errors.append(f"Account name '{account.name}' already exists")

        platform = account.platform_type.value

        if account.git_email:
            conflict = self.check_email_duplicate(account.git_email, platform)
            if conflict is not None:
                result.warnings.append(
                    ValidationWarning(
                        f"Email '{account.git_email}' is already used by account "
                        f"'{conflict.name}' on {platform}",
                        field="email",
                        conflicting_account=conflict.name,
                    )
                )

        if account.ssh is not None and account.ssh.key_path:
            conflict = self.check_ssh_key_duplicate(account.ssh.key_path)
            if conflict is not None:
                result.warnings.append(
                    ValidationWarning(
                        f"SSH key '{account.ssh.key_path}' is already used by account "
                        f"'{conflict.name}'",
                        field="sshKey",
                        conflicting_account=conflict.name,
                    )
                )

        if account.token is not None and account.token.username:
            conflict = self.check_token_duplicate(account.token.username, platform)
            if conflict is not None:
                result.warnings.append(
                    ValidationWarning(
                        f"Token username '{account.token.username}' is already used by "
                        f"account '{conflict.name}' on {platform}",
                        field="token",
                        conflicting_account=conflict.name,
                    )
                )

        return result

    def validate_update(self, original_name: str, account: Account) -> ValidationResult:
        """Validate an edited account, ignoring the entry being edited."""
        others = [a for a in self.accounts if not same_text(a.name, original_name)]
        return DuplicateValidator(others).validate_new(account)
