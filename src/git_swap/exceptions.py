"""Custom exceptions for Git Swap."""

from __future__ import annotations


class GitSwapError(Exception):
    """Base exception for Git Swap errors."""

    pass


class AccountError(GitSwapError):
    """Error related to the stored account set."""

    pass


class DuplicateNameError(AccountError):
    """An account with the same name (ignoring case) already exists."""

    def __init__(self, name: str):
        super().__init__(f"Account name '{name}' already exists")
        self.name = name


class AccountNotFoundError(AccountError):
    """No account matches the given name."""

    def __init__(self, name: str):
        super().__init__(f"Account '{name}' not found")
        self.name = name


class ValidationError(GitSwapError):
    """Validation error."""

    pass


class InvalidRemoteURLError(ValidationError):
    """A remote URL could not be parsed."""

    pass


class ValidationWarning(GitSwapError):
    """Soft collision with an existing account.

    Carried in validation results; never raised by the validator.
    """

    def __init__(self, message: str, field: str, conflicting_account: str):
        super().__init__(message)
        self.field = field
        self.conflicting_account = conflicting_account


class NotAGitRepositoryError(GitSwapError):
    """Path is not inside a git working tree."""

    def __init__(self, path):
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class CredentialError(GitSwapError):
    """Error related to credential operations."""

    pass


class CredentialMissingError(CredentialError):
    """Account has no credentials for the requested switch method."""

    pass


class CredentialWriteError(CredentialError):
    """Failed to hand credentials to the credential store."""

    pass


class SubprocessFailureError(GitSwapError):
    """An external command failed to start or exited non-zero."""

    def __init__(
        self,
        operation: str,
        command: list[str],
        returncode: int | None = None,
        stderr: str = "",
    ):
        detail = stderr.strip() or (
            f"exit status {returncode}" if returncode is not None else "failed to start"
        )
        super().__init__(f"Failed to {operation}: {detail}")
        self.operation = operation
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PersistenceError(GitSwapError):
    """Failed to read, parse or write the configuration document."""

    pass


class SwitchError(GitSwapError):
    """Error during account switch operation."""

    def __init__(
        self,
        message: str,
        failed_step: str | None = None,
        completed_steps: list[str] | None = None,
    ):
        super().__init__(message)
        self.failed_step = failed_step
        self.completed_steps = list(completed_steps or [])


class LockError(GitSwapError):
    """Error acquiring lock."""

    pass
