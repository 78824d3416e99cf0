"""Inference of the active account in a repository.

No single signal is trusted on its own: local identity and remote URLs are
often stale or shared between accounts. Each account collects points for
every signal it matches and must clear a confidence floor to be reported
active.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from git_swap.exceptions import InvalidRemoteURLError
from git_swap.git import GitRepository, RemoteURL, parse_remote_url
from git_swap.models import Account
from git_swap.normalize import same_text
from git_swap.shell import ProcessRunner

logger = logging.getLogger("git-swap.detection")

FIELD_EMAIL = "email"
FIELD_USER_NAME = "userName"
FIELD_SSH_ALIAS = "sshAlias"
FIELD_TOKEN_USERNAME = "tokenUsername"
FIELD_PLATFORM = "platform"

# Weights sum to 100 for the best achievable match, so scores read as percentages.
MATCH_WEIGHTS = {
    FIELD_EMAIL: 35,
    FIELD_USER_NAME: 15,
    FIELD_SSH_ALIAS: 40,
    FIELD_TOKEN_USERNAME: 40,
    FIELD_PLATFORM: 10,
}

CONFIDENCE_FLOOR = 50


@dataclass
class RepoFacts:
    """Observed identity and remote state of a repository."""

    path: Path
    user_name: str = ""
    user_email: str = ""
    remote_url: str | None = None
    remote: RemoteURL | None = None

    @property
    def ssh_host(self) -> str | None:
        """Host segment of an SSH remote, which may be an alias."""
        if self.remote is not None and self.remote.is_ssh:
            return self.remote.host
        return None


@dataclass
class MatchScore:
    account_name: str
    score: int = 0
    matched_fields: list[str] = field(default_factory=list)
    is_active: bool = False


@dataclass
class DetectionResult:
    facts: RepoFacts
    best: MatchScore | None = None
    candidates: list[MatchScore] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.best is not None and self.best.is_active

    @property
    def account_name(self) -> str | None:
        """Name of the active account, or None below the confidence floor."""
        return self.best.account_name if self.is_active else None


class DetectionEngine:
    """Scores stored accounts against a repository's identity and remote."""

    def __init__(
        self,
        accounts: list[Account],
        runner: ProcessRunner | None = None,
        confidence_floor: int = CONFIDENCE_FLOOR,
    ):
        self.accounts = accounts
        self.runner = runner or ProcessRunner()
        self.confidence_floor = confidence_floor

    def gather_facts(self, path: Path | str) -> RepoFacts:
        """Read identity (local, then global) and the origin remote.

        Raises:
            NotAGitRepositoryError: If path is not inside a work tree.
        """
        repo = GitRepository(path, self.runner)
        repo.require_repo()

        user_name, user_email = repo.get_current_user()
        facts = RepoFacts(path=repo.path, user_name=user_name, user_email=user_email)
        facts.remote_url = repo.get_remote_url("origin")
        if facts.remote_url:
            try:
                facts.remote = parse_remote_url(facts.remote_url)
            except InvalidRemoteURLError:
                logger.debug(f"Ignoring unparseable remote {facts.remote_url}")
        return facts

    def score_account(self, account: Account, facts: RepoFacts) -> MatchScore:
        matched: list[str] = []

        if account.git_email and same_text(account.git_email, facts.user_email):
            matched.append(FIELD_EMAIL)

        if account.git_user_name and same_text(account.git_user_name, facts.user_name):
            matched.append(FIELD_USER_NAME)

        remote = facts.remote
        if remote is not None:
            if (
                remote.is_ssh
                and account.ssh is not None
                and account.ssh.host_alias
                and same_text(account.ssh.host_alias, remote.host)
            ):
                matched.append(FIELD_SSH_ALIAS)

            if (
                not remote.is_ssh
                and remote.username
                and account.token is not None
                and same_text(account.token.username, remote.username)
            ):
                matched.append(FIELD_TOKEN_USERNAME)

            if self._platform_matches(account, remote):
                matched.append(FIELD_PLATFORM)

        score = sum(MATCH_WEIGHTS[f] for f in matched)
        return MatchScore(
            account_name=account.name,
            score=score,
            matched_fields=matched,
            is_active=score >= self.confidence_floor,
        )

    @staticmethod
    def _platform_matches(account: Account, remote: RemoteURL) -> bool:
        if account.platform is not None and account.platform.domain:
            return same_text(account.platform.domain, remote.host)
        return remote.platform == account.platform_type

    def detect(self, path: Path | str) -> DetectionResult:
        """Score every account; the strictly highest score wins.

        Ties keep the first account in store order. A best candidate below
        the floor is returned with ``is_active`` False.
        """
        facts = self.gather_facts(path)
        result = DetectionResult(facts=facts)

        for account in self.accounts:
            candidate = self.score_account(account, facts)
            result.candidates.append(candidate)
            if candidate.score > 0 and (result.best is None or candidate.score > result.best.score):
                result.best = candidate

        if result.best is not None:
            logger.debug(
                f"Best match {result.best.account_name} score={result.best.score} "
                f"fields={result.best.matched_fields} active={result.best.is_active}"
            )
        return result

    def detect_active(self, path: Path | str) -> str | None:
        return self.detect(path).account_name
