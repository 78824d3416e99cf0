"""Credential health indicators for accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from git_swap.models import Account, HealthStatus, TokenCredential, get_timestamp, parse_timestamp
from git_swap.ssh import SshTools, expand_path

logger = logging.getLogger("git-swap.health")

STALE_THRESHOLD = timedelta(hours=24)
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)

HEALTH_VALID = "✓"
HEALTH_INVALID = "✗"
HEALTH_UNKNOWN = "?"


@dataclass
class HealthIndicators:
    """Derived health of one account. ``None`` verdicts mean unknown."""

    ssh_key_exists: bool = False
    ssh_key_valid: bool | None = None
    token_valid: bool | None = None
    is_stale: bool = False
    last_checked: datetime | None = None


def get_health_indicator(value: bool | None) -> str:
    if value is None:
        return HEALTH_UNKNOWN
    return HEALTH_VALID if value else HEALTH_INVALID


def is_stale_check(last_checked: datetime | None, now: datetime | None = None) -> bool:
    """True when a check never happened (None or zero time) or is older than the threshold."""
    if last_checked is None:
        return True
    if last_checked.tzinfo is None:
        last_checked = last_checked.replace(tzinfo=timezone.utc)
    if last_checked == ZERO_TIME:
        return True
    now = now or datetime.now(timezone.utc)
    return now - last_checked > STALE_THRESHOLD


def check_ssh_key_health(key_path: str) -> HealthIndicators:
    """Existence check on the key file; a missing key is a confirmed failure."""
    indicators = HealthIndicators()
    if not key_path:
        indicators.ssh_key_valid = False
        return indicators
    indicators.ssh_key_exists = expand_path(key_path).is_file()
    if not indicators.ssh_key_exists:
        indicators.ssh_key_valid = False
    return indicators


def check_token_health(token: TokenCredential | None, platform: str = "github") -> HealthIndicators:
    """A configured token cannot be verified without calling the platform, so it stays unknown."""
    indicators = HealthIndicators()
    if token is None or not token.token:
        indicators.token_valid = False
    return indicators


def get_account_health(account: Account, cached: HealthStatus | None = None) -> HealthIndicators:
    """Combine filesystem checks with a cached HealthStatus.

    Cached verdicts fill in unknowns but never override a confirmed negative.
    """
    indicators = HealthIndicators()

    if account.ssh is not None:
        ssh = check_ssh_key_health(account.ssh.key_path)
        indicators.ssh_key_exists = ssh.ssh_key_exists
        indicators.ssh_key_valid = ssh.ssh_key_valid

    if account.token is not None:
        indicators.token_valid = check_token_health(
            account.token, account.platform_type.value
        ).token_valid

    if cached is not None:
        if indicators.ssh_key_valid is None:
            indicators.ssh_key_valid = cached.ssh_key_valid
        if indicators.token_valid is None:
            indicators.token_valid = cached.token_valid
        indicators.last_checked = parse_timestamp(cached.last_checked)
        indicators.is_stale = is_stale_check(indicators.last_checked)

    return indicators


def format_health_display(indicators: HealthIndicators) -> str:
    """Compact display such as ``SSH:✓ Token:?`` with a ``(stale)`` suffix."""
    parts = []
    if indicators.ssh_key_valid is not None or indicators.ssh_key_exists:
        parts.append(f"SSH:{get_health_indicator(indicators.ssh_key_valid)}")
    if indicators.token_valid is not None:
        parts.append(f"Token:{get_health_indicator(indicators.token_valid)}")
    if not parts:
        return HEALTH_UNKNOWN
    display = " ".join(parts)
    if indicators.is_stale:
        display += " (stale)"
    return display


class HealthChecker:
    """Runs the checks that can be done without platform APIs.

    SSH keys are verified with a bounded ``ssh -T`` handshake through the
    account's host alias; tokens remain unknown.
    """

    def __init__(self, ssh_tools: SshTools | None = None):
        self.ssh_tools = ssh_tools or SshTools()

    def check(self, account: Account) -> HealthStatus:
        status = HealthStatus(account_name=account.name, last_checked=get_timestamp())

        if account.ssh is not None:
            ssh = check_ssh_key_health(account.ssh.key_path)
            if ssh.ssh_key_exists:
                host = account.ssh.host_alias or account.platform_domain
                result = self.ssh_tools.test_connection(host)
                status.ssh_key_valid = result.success
                logger.info(f"SSH check for {account.name} via {host}: {result.message}")
            else:
                status.ssh_key_valid = False

        if account.token is not None:
            status.token_valid = check_token_health(
                account.token, account.platform_type.value
            ).token_valid

        return status
