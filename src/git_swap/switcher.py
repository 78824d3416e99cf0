"""Command façade tying the store, detection and switching together."""

from __future__ import annotations

import getpass
import os
import re
import sys
from contextlib import contextmanager
from pathlib import Path

from git_swap.credentials import TokenStore
from git_swap.detection import DetectionEngine, DetectionResult
from git_swap.exceptions import (
    AccountError,
    CredentialMissingError,
    DuplicateNameError,
    GitSwapError,
    NotAGitRepositoryError,
    ValidationError,
)
from git_swap.executor import SwitchExecutor, SwitchMethod, default_method
from git_swap.git import GitRepository, parse_remote_url
from git_swap.health import HealthChecker, format_health_display, get_account_health
from git_swap.locking import FileLock
from git_swap.logging_config import setup_logging
from git_swap.models import (
    Account,
    ActivityLogEntry,
    PlatformConfig,
    SshCredential,
    TokenCredential,
)
from git_swap.normalize import fold
from git_swap.persistence import ConfigStore
from git_swap.platforms import (
    PlatformType,
    get_default_domain,
    get_platform_display,
    is_valid_platform,
)
from git_swap.shell import ProcessRunner
from git_swap.ssh import SshConfigFile, SshTools, expand_path
from git_swap.store import AccountStore
from git_swap.validator import DuplicateValidator, ValidationResult

APP_DIR_NAME = "git-swap"
LEGACY_DIR_NAME = "github-switch"
CONFIG_FILE_NAME = "config.json"

ACTION_ADD = "add"
ACTION_EDIT = "edit"
ACTION_REMOVE = "remove"
ACTION_HEALTH_CHECK = "health-check"
ACTION_GLOBAL_SSH = "global-ssh"
ACTION_TEST_CONNECTION = "test-connection"


def get_config_base() -> Path:
    """Directory holding per-application config directories."""
    if sys.platform == "win32" and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"])
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def get_config_dir() -> Path:
    """``$GIT_SWAP_HOME`` if set, otherwise ``<config base>/git-swap``."""
    override = os.environ.get("GIT_SWAP_HOME")
    if override:
        return Path(override).expanduser()
    return get_config_base() / APP_DIR_NAME


def switch_action(method: SwitchMethod) -> str:
    return f"switch-{method.value}"


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9-]+", "-", fold(text)).strip("-") or "account"


class GitAccountSwitcher:
    """Multi-account switcher for git repositories."""

    def __init__(
        self,
        debug: bool = False,
        config_dir: Path | str | None = None,
        runner: ProcessRunner | None = None,
        repo_path: Path | str | None = None,
        ssh_config_path: Path | None = None,
    ):
        self.config_dir = Path(config_dir) if config_dir else get_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE_NAME
        self.legacy_config_path = self.config_dir.parent / LEGACY_DIR_NAME / CONFIG_FILE_NAME
        self.lock_file = self.config_dir / ".lock"
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self._logger = setup_logging(self.config_dir, debug=debug)

        self.runner = runner or ProcessRunner()
        self.config_store = ConfigStore(self.config_path, self.legacy_config_path)
        self.ssh_config = SshConfigFile(ssh_config_path)
        self.ssh_tools = SshTools(self.runner)
        self.token_store = TokenStore(self.runner)
        self.executor = SwitchExecutor(self.runner, self.ssh_config, self.token_store)

    def _load_store(self) -> AccountStore:
        return AccountStore(self.config_store.load())

    @contextmanager
    def _locked_store(self):
        """Load, yield for mutation, then save; all under the config lock.

        The document is not saved if the body raises.
        """
        with FileLock(self.lock_file):
            store = self._load_store()
            yield store
            self.config_store.save(store.config)

    def _log(self, store: AccountStore, action: str, account_name: str, success: bool) -> None:
        store.log_activity(
            ActivityLogEntry(action=action, account_name=account_name, success=success)
        )
        if success:
            self._logger.info(f"{action} {account_name}: ok")
        else:
            self._logger.warning(f"{action} {account_name}: failed")

    def _detect(self, store: AccountStore) -> DetectionResult | None:
        """Detection for the current repository, or None outside a repository."""
        engine = DetectionEngine(store.list(), self.runner)
        try:
            return engine.detect(self.repo_path)
        except NotAGitRepositoryError:
            return None

    @staticmethod
    def _resolve(store: AccountStore, identifier: str) -> Account:
        """Look up by name, or by 1-based position when the name is not taken."""
        account = store.find(identifier)
        if account is not None:
            return account
        if identifier.isdigit():
            accounts = store.list()
            index = int(identifier) - 1
            if 0 <= index < len(accounts):
                return accounts[index]
        return store.get(identifier)

    @staticmethod
    def _prompt(label: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        value = input(f"{label}{suffix}: ").strip()
        return value or default

    @staticmethod
    def _confirm(question: str, default: bool = False) -> bool:
        hint = "[Y/n]" if default else "[y/N]"
        answer = input(f"{question} {hint} ").strip().lower()
        if not answer:
            return default
        return answer == "y"

    def _accept_validation(self, result: ValidationResult) -> bool:
        """Raise on hard errors; ask about soft collisions."""
        if not result.is_valid:
            raise ValidationError("; ".join(result.errors))
        if not result.warnings:
            return True
        for warning in result.warnings:
            print(f"Warning: {warning}")
        return self._confirm("Continue anyway?")

    def list_accounts(self) -> None:
        """List all accounts with platform, methods and health."""
        store = self._load_store()
        accounts = store.list()
        if not accounts:
            print("No accounts configured yet.")
            print("Run 'gswap --add-account' to add one.")
            return

        detection = self._detect(store)
        active = detection.account_name if detection else None

        print("Accounts:")
        for num, account in enumerate(accounts, start=1):
            platform = get_platform_display(
                account.platform_type,
                account.platform.domain if account.platform else "",
            )
            health = format_health_display(
                get_account_health(account, store.get_health(account.name))
            )
            identity = f" <{account.git_email}>" if account.git_email else ""
            methods = ",".join(account.methods) or "none"
            line = f"  {num}: {account.name}{identity}  {platform}  [{methods}]  {health}"
            if active is not None and fold(active) == fold(account.name):
                line += " (active)"
            print(line)

    def status(self) -> None:
        """Show the repository's identity and which account it matches."""
        store = self._load_store()
        engine = DetectionEngine(store.list(), self.runner)
        result = engine.detect(self.repo_path)
        facts = result.facts

        print(f"Repository: {facts.path}")
        branch = GitRepository(facts.path, self.runner).get_current_branch()
        if branch:
            print(f"  Branch: {branch}")
        print(f"  Remote: {facts.remote_url or '(none)'}")
        identity = facts.user_name or "(unset)"
        if facts.user_email:
            identity += f" <{facts.user_email}>"
        print(f"  Identity: {identity}")

        if not store.list():
            print("Status: No accounts configured")
        elif result.is_active:
            best = result.best
            print(
                f"Status: Active account: {best.account_name} "
                f"(score {best.score}: {', '.join(best.matched_fields)})"
            )
        elif result.best is not None:
            best = result.best
            print(
                f"Status: No confident match "
                f"(closest: {best.account_name}, score {best.score} < {engine.confidence_floor})"
            )
        else:
            print("Status: No matching account")

    def activity_log(self, limit: int = 10) -> None:
        store = self._load_store()
        entries = store.get_recent_activity(limit)
        if not entries:
            print("No activity recorded yet.")
            return
        print("Recent activity:")
        for entry in entries:
            mark = "✓" if entry.success else "✗"
            print(f"  {entry.timestamp}  {mark} {entry.action:<16} {entry.account_name}")

    def switch(self) -> None:
        """Interactively pick an account (and method) for the current repository."""
        store = self._load_store()
        accounts = store.list()
        if not accounts:
            raise AccountError("No accounts configured. Run 'gswap --add-account' first.")

        self.list_accounts()
        choice = input(f"Switch to account [1-{len(accounts)}]: ").strip()
        if not choice.isdigit() or not 1 <= int(choice) <= len(accounts):
            raise ValidationError(f"Invalid selection: {choice}")
        account = accounts[int(choice) - 1]

        method = None
        if account.ssh is not None and account.token is not None:
            answer = self._prompt("Method (ssh/token)", SwitchMethod.SSH.value).lower()
            if answer not in (m.value for m in SwitchMethod):
                raise ValidationError(f"Invalid method: {answer}")
            method = answer

        self.switch_to(account.name, method)

    def switch_to(self, identifier: str, method: SwitchMethod | str | None = None) -> None:
        """Switch the current repository to an account.

        The outcome is recorded in the activity log whether or not the switch
        succeeds.
        """
        with self._locked_store() as store:
            account = self._resolve(store, identifier)
            method = SwitchMethod(method) if method else default_method(account)
            try:
                result = self.executor.switch(account, method, self.repo_path)
            except GitSwapError:
                self._log(store, switch_action(method), account.name, False)
                self.config_store.save(store.config)
                raise
            self._log(store, switch_action(method), account.name, True)

        print(f"Switched to '{account.name}' ({method.value})")
        print(f"  Remote: {result.remote_url}")
        if account.git_user_name or account.git_email:
            print(f"  Identity: {account.git_user_name} <{account.git_email}>")

    def switch_global_ssh(self, identifier: str) -> None:
        """Point the platform host's global SSH entry at an account's key."""
        with self._locked_store() as store:
            account = self._resolve(store, identifier)
            try:
                host = self.executor.switch_global_ssh(account)
            except GitSwapError:
                self._log(store, ACTION_GLOBAL_SSH, account.name, False)
                self.config_store.save(store.config)
                raise
            self._log(store, ACTION_GLOBAL_SSH, account.name, True)

        print(f"Global SSH for {host} now uses {account.ssh.key_path} ({account.name})")
        print(f"This affects every repository with git@{host}: remotes.")

    def clone(self, url: str, target: str | None = None) -> None:
        """Clone a repository, optionally set up for a chosen account.

        The chosen account's identity is written into the new checkout, which
        is then switched with the account's default method. A failed switch
        leaves the clone in place and is reported as a warning.
        """
        parsed = parse_remote_url(url)
        destination = Path(target) if target else Path(parsed.repo)
        if not destination.is_absolute():
            destination = self.repo_path / destination

        store = self._load_store()
        accounts = store.list()
        account = None
        if accounts:
            print("Select account (Enter to skip):")
            for num, acc in enumerate(accounts, 1):
                print(f"  {num}: {acc.name}")
            choice = self._prompt("Account")
            if choice and choice != "0":
                account = self._resolve(store, choice)

        print(f"Cloning {url}...")
        if account is None:
            GitRepository.clone(url, destination, self.runner)
            print(f"Cloned to {destination}")
            print(f"  Repository: {parsed.owner}/{parsed.repo}")
            return

        repo = GitRepository.clone(
            url, destination, self.runner, account.git_user_name, account.git_email
        )
        print(f"Cloned to {repo.path}")
        if not account.is_switchable:
            print(f"Identity set to '{account.name}' (no credentials to configure)")
            return

        method = default_method(account)
        with self._locked_store() as store:
            try:
                result = self.executor.switch(account, method, repo.path)
            except GitSwapError as e:
                self._log(store, switch_action(method), account.name, False)
                print(f"Warning: failed to set up account '{account.name}': {e}")
                return
            self._log(store, switch_action(method), account.name, True)

        print(f"Account '{account.name}' configured ({method.value})")
        print(f"  Remote: {result.remote_url}")

    def health_check(self) -> None:
        """Verify every account's credentials and cache the results."""
        checker = HealthChecker(self.ssh_tools)
        with self._locked_store() as store:
            accounts = store.list()
            if not accounts:
                print("No accounts configured yet.")
                return
            print("Health check:")
            for account in accounts:
                status = checker.check(account)
                store.record_health(status)
                healthy = status.ssh_key_valid is not False and status.token_valid is not False
                self._log(store, ACTION_HEALTH_CHECK, account.name, healthy)
                display = format_health_display(get_account_health(account, status))
                print(f"  {account.name}: {display}")

    def test_connection(self, identifier: str) -> None:
        """Probe SSH authentication through an account's host alias."""
        with self._locked_store() as store:
            account = self._resolve(store, identifier)
            if account.ssh is None:
                raise CredentialMissingError(
                    f"Account '{account.name}' has no SSH key configured"
                )
            host = account.ssh.host_alias or account.platform_domain
            result = self.ssh_tools.test_connection(host)
            self._log(store, ACTION_TEST_CONNECTION, account.name, result.success)

        mark = "✓" if result.success else "✗"
        print(f"{mark} {host}: {result.message}")

    def _prompt_platform(self, current: PlatformConfig | None = None) -> PlatformConfig:
        default_type = current.type if current and current.type else PlatformType.GITHUB.value
        choices = "/".join(p.value for p in PlatformType)
        value = fold(self._prompt(f"Platform ({choices})", default_type))
        if not is_valid_platform(value):
            raise ValidationError(f"Unknown platform: {value}")
        platform_type = PlatformType.parse(value)

        default_domain = current.domain if current else ""
        domain_hint = get_default_domain(platform_type) or "required for self-hosted"
        domain = self._prompt(f"Custom domain (empty for {domain_hint})", default_domain)
        if not domain and not get_default_domain(platform_type):
            raise ValidationError(f"A domain is required for {platform_type.value}")
        api_url = current.api_url if current else ""
        return PlatformConfig(type=platform_type.value, domain=domain, api_url=api_url)

    def _prompt_ssh(
        self,
        name: str,
        comment: str,
        platform: PlatformConfig,
        current: SshCredential | None = None,
    ) -> SshCredential:
        existing = SshTools.list_private_keys()
        if existing and current is None:
            print("Existing keys:")
            for key in existing:
                print(f"  {key}")

        if current is not None:
            default_key = current.key_path
        else:
            default_key = f"~/.ssh/{SshTools.suggest_key_filenames(_slug(name))[0]}"
        key_path = self._prompt("SSH private key path", default_key)

        if not expand_path(key_path).exists():
            if self._confirm(f"Key {key_path} not found. Generate a new ed25519 key?", True):
                self.ssh_tools.generate_key(key_path, comment)
                pub = self.ssh_tools.ensure_public_key(key_path)
                print(f"Add this public key to your {platform.type} account:")
                print(pub.read_text(encoding="utf-8").strip())

        default_alias = current.host_alias if current else f"{platform.type}-{_slug(name)}"
        host_alias = self._prompt("SSH host alias", default_alias)
        return SshCredential(key_path=key_path, host_alias=host_alias)

    def _prompt_token(self, current: TokenCredential | None = None) -> TokenCredential:
        username = self._prompt("Token username", current.username if current else "")
        if not username:
            raise ValidationError("Token username is required")
        hint = " (empty keeps the current token)" if current else ""
        token = getpass.getpass(f"Personal access token{hint}: ").strip()
        if not token and current is not None:
            token = current.token
        if not token:
            raise ValidationError("Token is required")
        return TokenCredential(username=username, token=token)

    def add_account(self) -> None:
        """Interactively add an account."""
        store = self._load_store()
        validator = DuplicateValidator(store.list())

        name = input("Account name: ").strip()
        if not name:
            raise ValidationError("Account name is required")
        if validator.check_name_duplicate(name):
            raise DuplicateNameError(name)

        platform = self._prompt_platform()
        git_user_name = self._prompt("Git user.name")
        git_email = self._prompt("Git user.email")

        method = fold(self._prompt("Authentication (ssh/token/both)", "ssh"))
        if method not in ("ssh", "token", "both"):
            raise ValidationError(f"Invalid authentication method: {method}")

        account = Account(
            name=name,
            git_user_name=git_user_name,
            git_email=git_email,
            platform=platform,
        )
        if method in ("ssh", "both"):
            account.ssh = self._prompt_ssh(name, git_email or name, platform)
        if method in ("token", "both"):
            account.token = self._prompt_token()

        if not self._accept_validation(validator.validate_new(account)):
            print("Cancelled")
            return

        with self._locked_store() as store:
            store.add(account)
            self._log(store, ACTION_ADD, account.name, True)
        print(f"Added account '{account.name}'")

    def edit_account(self, identifier: str) -> None:
        """Interactively edit an account; empty answers keep current values."""
        store = self._load_store()
        original = self._resolve(store, identifier)
        updated = original.clone()

        updated.name = self._prompt("Account name", original.name)
        updated.platform = self._prompt_platform(original.platform)
        updated.git_user_name = self._prompt("Git user.name", original.git_user_name)
        updated.git_email = self._prompt("Git user.email", original.git_email)

        if original.ssh is not None or self._confirm("Configure SSH?"):
            updated.ssh = self._prompt_ssh(
                updated.name, updated.git_email or updated.name, updated.platform, original.ssh
            )
        if original.token is not None or self._confirm("Configure a token?"):
            updated.token = self._prompt_token(original.token)

        result = DuplicateValidator(store.list()).validate_update(original.name, updated)
        if not self._accept_validation(result):
            print("Cancelled")
            return

        with self._locked_store() as store:
            store.update(original.name, updated)
            status = store.get_health(original.name)
            if status is not None and status.account_name != updated.name:
                store.forget_health(original.name)
                status.account_name = updated.name
                store.record_health(status)
            self._log(store, ACTION_EDIT, updated.name, True)
        print(f"Updated account '{updated.name}'")

    def remove_account(self, identifier: str) -> None:
        """Remove an account after confirmation and forget its stored token."""
        store = self._load_store()
        account = self._resolve(store, identifier)

        detection = self._detect(store)
        if detection is not None and detection.account_name == account.name:
            print(f"Warning: '{account.name}' is active in this repository")

        if not self._confirm(f"Are you sure you want to permanently remove '{account.name}'?"):
            print("Cancelled")
            return

        with self._locked_store() as store:
            removed = store.remove(account.name)
            store.forget_health(removed.name)
            self._log(store, ACTION_REMOVE, removed.name, True)

        if removed.token is not None and removed.token.username:
            remote_url = detection.facts.remote_url if detection is not None else None
            for host in self.executor.token_hosts(removed, remote_url):
                self.token_store.forget(host, removed.token.username)
        print(f"Account '{removed.name}' has been removed")
        if removed.ssh is not None and removed.ssh.key_path:
            print(f"SSH key {removed.ssh.key_path} was left in place.")
