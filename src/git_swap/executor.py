"""Reconfigures a repository to use an account's credentials."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from git_swap.credentials import TokenStore
from git_swap.exceptions import (
    CredentialMissingError,
    GitSwapError,
    SwitchError,
    ValidationError,
)
from git_swap.git import GitRepository, build_https_url, build_ssh_url, parse_remote_url
from git_swap.models import Account, SwitchTransaction
from git_swap.shell import ProcessRunner
from git_swap.ssh import SshConfigFile

logger = logging.getLogger("git-swap.executor")

STEP_VALIDATE = "validate"
STEP_SSH_ALIAS = "ssh_alias"
STEP_CREDENTIAL_STORE = "credential_store"
STEP_REMOTE_URL = "remote_url"
STEP_GIT_IDENTITY = "git_identity"


class SwitchMethod(str, Enum):
    SSH = "ssh"
    TOKEN = "token"


def default_method(account: Account) -> SwitchMethod:
    """SSH when configured, otherwise token."""
    if account.ssh is None and account.token is not None:
        return SwitchMethod.TOKEN
    return SwitchMethod.SSH


@dataclass
class SwitchResult:
    account_name: str
    method: SwitchMethod
    remote_url: str
    steps: list[str] = field(default_factory=list)


class SwitchExecutor:
    """Runs the switch as an ordered list of steps.

    A failing step stops the sequence with a SwitchError naming the step and
    everything already applied. Applied steps are not undone.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        ssh_config: SshConfigFile | None = None,
        token_store: TokenStore | None = None,
    ):
        self.runner = runner or ProcessRunner()
        self.ssh_config = ssh_config or SshConfigFile()
        self.token_store = token_store or TokenStore(self.runner)

    @staticmethod
    def validate_credentials(account: Account, method: SwitchMethod) -> None:
        """Raises CredentialMissingError if the account lacks the method's credentials."""
        if method == SwitchMethod.SSH:
            if account.ssh is None or not account.ssh.key_path or not account.ssh.host_alias:
                raise CredentialMissingError(
                    f"Account '{account.name}' has no SSH key and host alias configured"
                )
        elif account.token is None or not account.token.username or not account.token.token:
            raise CredentialMissingError(
                f"Account '{account.name}' has no token configured"
            )

    def switch(
        self, account: Account, method: SwitchMethod | str, repo_path: Path | str
    ) -> SwitchResult:
        """Switch the repository at repo_path to account using method.

        Raises:
            CredentialMissingError: If the account lacks credentials for method.
            NotAGitRepositoryError: If repo_path is not a repository.
            SwitchError: If any later step fails.
        """
        method = SwitchMethod(method)
        repo = GitRepository(repo_path, self.runner)
        transaction = SwitchTransaction(
            account_name=account.name, method=method.value, repo_path=str(repo.path)
        )

        transaction.begin(STEP_VALIDATE)
        self.validate_credentials(account, method)
        repo.require_repo()
        transaction.original_remote_url = repo.get_remote_url("origin")
        if not transaction.original_remote_url:
            raise SwitchError(
                "Repository has no 'origin' remote", failed_step=STEP_VALIDATE
            )
        try:
            parse_remote_url(transaction.original_remote_url)
        except ValidationError as e:
            raise SwitchError(str(e), failed_step=STEP_VALIDATE) from e
        transaction.record_step(STEP_VALIDATE)

        if method == SwitchMethod.SSH:
            steps = [
                (STEP_SSH_ALIAS, lambda: self._write_ssh_alias(account, transaction)),
                (STEP_REMOTE_URL, lambda: self._rewrite_remote(repo, account, method, transaction)),
                (STEP_GIT_IDENTITY, lambda: self._set_identity(repo, account)),
            ]
        else:
            steps = [
                (STEP_CREDENTIAL_STORE, lambda: self._store_token(account, transaction)),
                (STEP_REMOTE_URL, lambda: self._rewrite_remote(repo, account, method, transaction)),
                (STEP_GIT_IDENTITY, lambda: self._set_identity(repo, account)),
            ]

        remote_url = ""
        for name, action in steps:
            transaction.begin(name)
            try:
                value = action()
            except (GitSwapError, OSError) as e:
                logger.error(
                    f"Switch to {account.name} failed at step {name} "
                    f"(completed: {', '.join(transaction.completed_steps)}): {e}"
                )
                raise SwitchError(
                    f"Switch failed at step '{name}': {e}",
                    failed_step=name,
                    completed_steps=transaction.completed_steps,
                ) from e
            if name == STEP_REMOTE_URL:
                remote_url = value
            transaction.record_step(name)

        logger.info(f"Switched {repo.path} to {account.name} ({method.value})")
        return SwitchResult(
            account_name=account.name,
            method=method,
            remote_url=remote_url,
            steps=list(transaction.completed_steps),
        )

    def _write_ssh_alias(self, account: Account, transaction: SwitchTransaction) -> None:
        hostname = self._real_host(account, transaction.original_remote_url)
        self.ssh_config.load()
        self.ssh_config.upsert_host(account.ssh.host_alias, hostname, account.ssh.key_path)
        self.ssh_config.save()

    def _store_token(self, account: Account, transaction: SwitchTransaction) -> None:
        host = self._real_host(account, transaction.original_remote_url)
        self.token_store.store(host, account.token.username, account.token.token)

    def _rewrite_remote(
        self,
        repo: GitRepository,
        account: Account,
        method: SwitchMethod,
        transaction: SwitchTransaction,
    ) -> str:
        current = transaction.original_remote_url
        parsed = parse_remote_url(current)

        if method == SwitchMethod.SSH:
            new_url = build_ssh_url(account.ssh.host_alias, parsed.path)
        else:
            new_url = build_https_url(
                self._real_host(account, current), parsed.path, account.token.username
            )

        if new_url != current:
            repo.set_remote_url(new_url, "origin")
        return new_url

    def _real_host(self, account: Account, remote_url: str | None) -> str:
        """Real platform host: the account's custom domain, else the remote's host
        unless it is an SSH alias, else the platform default."""
        if account.platform is not None and account.platform.domain:
            return account.platform.domain
        if remote_url:
            parsed = parse_remote_url(remote_url)
            is_alias = (
                parsed.is_ssh
                and account.ssh is not None
                and parsed.host == account.ssh.host_alias
            )
            if not is_alias and "." in parsed.host:
                return parsed.host
        return account.platform_domain or "github.com"

    def token_hosts(self, account: Account, remote_url: str | None = None) -> list[str]:
        """Hosts a switch may have stored the account's token under.

        Includes the host a switch of the repository at remote_url would use.
        """
        hosts = []
        if remote_url:
            try:
                hosts.append(self._real_host(account, remote_url))
            except ValidationError:
                logger.debug(f"Unparseable remote URL: {remote_url}")
        hosts.append(self._real_host(account, None))
        return list(dict.fromkeys(hosts))

    @staticmethod
    def _set_identity(repo: GitRepository, account: Account) -> None:
        if account.git_user_name:
            repo.set_config("user.name", account.git_user_name)
        if account.git_email:
            repo.set_config("user.email", account.git_email)

    def switch_global_ssh(self, account: Account) -> str:
        """Point the platform's real host entry at the account's key.

        Affects every repository using plain ``git@<host>:`` remotes.

        Returns:
            The host whose entry was written.
        """
        if account.ssh is None or not account.ssh.key_path:
            raise CredentialMissingError(
                f"Account '{account.name}' has no SSH key configured"
            )
        host = account.platform_domain or "github.com"
        self.ssh_config.load()
        self.ssh_config.upsert_host(host, host, account.ssh.key_path)
        self.ssh_config.save()
        logger.info(f"Global SSH for {host} now uses {account.ssh.key_path} ({account.name})")
        return host
