"""In-memory identity store over a loaded configuration document."""

from __future__ import annotations

import dataclasses

from git_swap.exceptions import AccountNotFoundError, DuplicateNameError
from git_swap.models import (
    Account,
    ActivityLogEntry,
    AppConfig,
    HealthStatus,
    get_timestamp,
)
from git_swap.normalize import same_text


class AccountStore:
    """Invariant-preserving mutators over an AppConfig.

    The store owns the accounts of the config it wraps. Name uniqueness is
    enforced by ``add`` only; ``update`` may rename freely.
    """

    def __init__(self, config: AppConfig):
        self.config = config

    def _index_of(self, name: str) -> int | None:
        for i, account in enumerate(self.config.accounts):
            if same_text(account.name, name):
                return i
        return None

    def add(self, account: Account) -> None:
        """Append an account.

        Raises:
            DuplicateNameError: If an account with the same name exists.
        """
        if self._index_of(account.name) is not None:
            raise DuplicateNameError(account.name)
        self.config.accounts.append(account)

    def remove(self, name: str) -> Account:
        """Remove exactly one account, preserving the order of the rest.

        Raises:
            AccountNotFoundError: If no account matches.
        """
        index = self._index_of(name)
        if index is None:
            raise AccountNotFoundError(name)
        return self.config.accounts.pop(index)

    def update(self, name: str, account: Account) -> None:
        """Replace the matching account in place.

        Raises:
            AccountNotFoundError: If no account matches.
        """
        index = self._index_of(name)
        if index is None:
            raise AccountNotFoundError(name)
        self.config.accounts[index] = account

    def find(self, name: str) -> Account | None:
        index = self._index_of(name)
        return None if index is None else self.config.accounts[index]

    def get(self, name: str) -> Account:
        """Like find, but raises AccountNotFoundError."""
        account = self.find(name)
        if account is None:
            raise AccountNotFoundError(name)
        return account

    def list(self) -> list[Account]:
        return list(self.config.accounts)

    def log_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Append a copy of entry stamped with the current time."""
        stamped = dataclasses.replace(entry, timestamp=get_timestamp())
        self.config.activity_log.append(stamped)
        return stamped

    def get_recent_activity(self, limit: int) -> list[ActivityLogEntry]:
        """Return the last ``limit`` entries in storage order.

        A non-positive limit, or one larger than the log, returns everything.
        """
        log = self.config.activity_log
        if limit <= 0 or limit >= len(log):
            return list(log)
        return log[-limit:]

    def get_health(self, name: str) -> HealthStatus | None:
        for status in self.config.health_checks:
            if same_text(status.account_name, name):
                return status
        return None

    def record_health(self, status: HealthStatus) -> None:
        """Insert or replace the cached health status for an account."""
        for i, existing in enumerate(self.config.health_checks):
            if same_text(existing.account_name, status.account_name):
                self.config.health_checks[i] = status
                return
        self.config.health_checks.append(status)

    def forget_health(self, name: str) -> None:
        self.config.health_checks = [
            s for s in self.config.health_checks if not same_text(s.account_name, name)
        ]
