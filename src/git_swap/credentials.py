"""Hand-off of access tokens to the credential store git reads from."""

from __future__ import annotations

import logging
import sys

# Only import keyring on non-Linux platforms
if sys.platform != "linux":
    import keyring

from git_swap.exceptions import CredentialWriteError, SubprocessFailureError
from git_swap.models import HostOS
from git_swap.shell import ProcessRunner

logger = logging.getLogger("git-swap.credentials")


def keyring_service(host: str) -> str:
    """Service name Git Credential Manager uses for an HTTPS host."""
    return f"git:https://{host}"


class TokenStore:
    """Stores and removes HTTPS tokens for credential-helper lookups.

    On Linux/WSL: feeds ``git credential approve/reject`` so the user's
    configured helper stores the token, avoiding keyring backend issues.
    On macOS/Windows: uses the system keyring directly.
    """

    def __init__(self, runner: ProcessRunner | None = None, host_os: HostOS | None = None):
        self.runner = runner or ProcessRunner()
        self.host_os = host_os or HostOS.detect()

    @property
    def uses_keyring(self) -> bool:
        return self.host_os not in (HostOS.LINUX, HostOS.WSL)

    @staticmethod
    def _credential_input(host: str, username: str, token: str | None = None) -> str:
        lines = ["protocol=https", f"host={host}", f"username={username}"]
        if token is not None:
            lines.append(f"password={token}")
        return "\n".join(lines) + "\n\n"

    def store(self, host: str, username: str, token: str) -> None:
        """Make ``token`` available for ``https://<username>@<host>``.

        Raises:
            CredentialWriteError: If the credential store rejects the write.
        """
        if self.uses_keyring:
            try:
                keyring.set_password(keyring_service(host), username, token)
            except Exception as e:
                raise CredentialWriteError(f"Failed to write token to keyring: {e}") from e
        else:
            try:
                self.runner.check(
                    "store token with git credential helper",
                    "git",
                    "credential",
                    "approve",
                    input=self._credential_input(host, username, token),
                )
            except SubprocessFailureError as e:
                raise CredentialWriteError(str(e)) from e
        logger.info(f"Stored token for {username}@{host}")

    def forget(self, host: str, username: str) -> None:
        """Remove a stored token. Missing entries are not an error."""
        if self.uses_keyring:
            try:
                keyring.delete_password(keyring_service(host), username)
            except keyring.errors.PasswordDeleteError:
                pass  # Credential doesn't exist, that's fine
            except Exception as e:
                logger.warning(f"Failed to delete token from keyring: {e}")
                return
        else:
            result = self.runner.run(
                "git",
                "credential",
                "reject",
                input=self._credential_input(host, username),
            )
            if not result.ok:
                logger.warning(f"git credential reject failed: {result.stderr.strip()}")
                return
        logger.info(f"Forgot token for {username}@{host}")
