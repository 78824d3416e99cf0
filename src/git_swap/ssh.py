"""SSH alias configuration and key tooling."""

from __future__ import annotations

import logging
import os
import re
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path

from git_swap.exceptions import SubprocessFailureError, ValidationError
from git_swap.normalize import fold, same_text
from git_swap.shell import ProcessRunner

logger = logging.getLogger("git-swap.ssh")

_BLOCK_START = re.compile(r"^\s*(?P<keyword>host|match)(?:\s*=\s*|\s+)(?P<value>.*)$", re.IGNORECASE)
_DIRECTIVE = re.compile(r"^\s*(?P<keyword>[A-Za-z]+)(?:\s*=\s*|\s+)(?P<value>.*)$")

DEFAULT_INDENT = "    "

# Files in ~/.ssh that are never private keys.
_NON_KEY_FILES = {
    "known_hosts",
    "known_hosts.old",
    "config",
    "authorized_keys",
    "authorized_keys2",
}

_AUTH_SUCCESS_PATTERNS = [
    r"successfully authenticated",
    r"Hi .+! You've successfully authenticated",
    r"Welcome to GitLab",
    r"logged in as",
    r"authenticated via",
    r"You can use git",
    r"Hi there,",
]
_AUTH_USER_PATTERN = re.compile(
    r"Hi\s+([^!,]+)[!,]|logged in as\s+(\S+)|@([\w.-]+)|Hi there,?\s+([^!]+)!"
)


def default_ssh_dir() -> Path:
    return Path.home() / ".ssh"


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` in a key path."""
    return Path(os.path.expanduser(str(path)))


@dataclass
class ConfigBlock:
    """A ``Host`` or ``Match`` section, or the preamble before the first one."""

    keyword: str | None
    patterns: list[str]
    header: str
    lines: list[str] = field(default_factory=list)

    def is_host(self, alias: str) -> bool:
        """True for a ``Host`` block whose only pattern is alias."""
        return (
            self.keyword == "host"
            and len(self.patterns) == 1
            and same_text(self.patterns[0], alias)
        )

    def directives(self) -> dict[str, str]:
        """First value of each directive, keyed by lowercased name."""
        values: dict[str, str] = {}
        for line in self.lines:
            match = _DIRECTIVE.match(line)
            if match and not line.lstrip().startswith("#"):
                values.setdefault(fold(match["keyword"]), match["value"].strip())
        return values


class SshConfigFile:
    """Read-modify-write access to an OpenSSH client config file.

    The whole file is rewritten on save. Lines outside the managed host
    blocks are preserved verbatim.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or default_ssh_dir() / "config"
        self.blocks: list[ConfigBlock] = []
        self._loaded = False

    def load(self) -> SshConfigFile:
        text = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
        self.blocks = self._parse(text)
        self._loaded = True
        return self

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    @staticmethod
    def _parse(text: str) -> list[ConfigBlock]:
        blocks = [ConfigBlock(keyword=None, patterns=[], header="")]
        for line in text.splitlines():
            match = _BLOCK_START.match(line)
            if match:
                keyword = match["keyword"].lower()
                patterns = match["value"].split() if keyword == "host" else []
                blocks.append(ConfigBlock(keyword=keyword, patterns=patterns, header=line))
            else:
                blocks[-1].lines.append(line)
        return blocks

    def render(self) -> str:
        out: list[str] = []
        for block in self.blocks:
            if block.keyword is not None:
                out.append(block.header)
            out.extend(block.lines)
        while out and not out[-1].strip():
            out.pop()
        return "\n".join(out) + "\n" if out else ""

    def get_host(self, alias: str) -> dict[str, str] | None:
        """Directives of the alias's block, or None if absent."""
        self._ensure_loaded()
        for block in self.blocks:
            if block.is_host(alias):
                return block.directives()
        return None

    def upsert_host(
        self, alias: str, hostname: str, identity_file: str, user: str = "git"
    ) -> bool:
        """Create or update the alias's block.

        Managed directives (HostName, User, IdentityFile, IdentitiesOnly) are
        rewritten in place; other directives are kept. Extra blocks for the
        same alias are dropped so the file never holds duplicates.

        Returns:
            True if a new block was created, False if an existing one was updated.
        """
        self._ensure_loaded()
        managed = {
            "hostname": f"HostName {hostname}",
            "user": f"User {user}",
            "identityfile": f"IdentityFile {identity_file}",
            "identitiesonly": "IdentitiesOnly yes",
        }

        matches = [b for b in self.blocks if b.is_host(alias)]
        if not matches:
            self._append_block(alias, list(managed.values()))
            logger.info(f"Added SSH host alias {alias} -> {hostname}")
            return True

        block = matches[0]
        for duplicate in matches[1:]:
            self.blocks.remove(duplicate)

        indent = self._indent_of(block)
        body: list[str] = []
        written: set[str] = set()
        for line in block.lines:
            match = _DIRECTIVE.match(line)
            keyword = fold(match["keyword"]) if match and not line.lstrip().startswith("#") else None
            if keyword in managed:
                if keyword not in written:
                    body.append(indent + managed[keyword])
                    written.add(keyword)
                continue
            body.append(line)

        trailing: list[str] = []
        while body and not body[-1].strip():
            trailing.insert(0, body.pop())
        for keyword, directive in managed.items():
            if keyword not in written:
                body.append(indent + directive)
        block.lines = body + trailing
        logger.info(f"Updated SSH host alias {alias} -> {hostname}")
        return False

    def remove_host(self, alias: str) -> bool:
        self._ensure_loaded()
        before = len(self.blocks)
        self.blocks = [b for b in self.blocks if not b.is_host(alias)]
        return len(self.blocks) != before

    def _append_block(self, alias: str, directives: list[str]) -> None:
        last = self.blocks[-1]
        if self.render():
            while last.lines and not last.lines[-1].strip():
                last.lines.pop()
            last.lines.append("")
        self.blocks.append(
            ConfigBlock(
                keyword="host",
                patterns=[alias],
                header=f"Host {alias}",
                lines=[DEFAULT_INDENT + d for d in directives],
            )
        )

    @staticmethod
    def _indent_of(block: ConfigBlock) -> str:
        for line in block.lines:
            if line.strip():
                return line[: len(line) - len(line.lstrip())] or DEFAULT_INDENT
        return DEFAULT_INDENT

    def save(self) -> None:
        """Rewrite the file; ~/.ssh is created 0700 and the file set to 0600."""
        self._ensure_loaded()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if sys.platform != "win32":
            os.chmod(self.path.parent, 0o700)
        self.path.write_text(self.render(), encoding="utf-8")
        if sys.platform != "win32":
            os.chmod(self.path, 0o600)


@dataclass
class ConnectionResult:
    success: bool
    message: str


class SshTools:
    """Key management and connectivity probes built on ssh and ssh-keygen."""

    def __init__(self, runner: ProcessRunner | None = None):
        self.runner = runner or ProcessRunner()

    def generate_key(self, key_path: str, comment: str) -> Path:
        """Generate an ed25519 key pair with an empty passphrase via ssh-keygen."""
        path = expand_path(key_path)
        if path.exists():
            raise ValidationError(f"Key already exists: {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        if sys.platform != "win32":
            os.chmod(path.parent, 0o700)
        self.runner.check(
            "generate SSH key",
            "ssh-keygen",
            "-t",
            "ed25519",
            "-f",
            str(path),
            "-C",
            comment,
            "-N",
            "",
        )
        self.set_key_permissions(path)
        logger.info(f"Generated SSH key {path}")
        return path

    def import_key(self, src_path: str, dest_path: str) -> Path:
        """Copy a private key (and its .pub if present) to a new location."""
        src = expand_path(src_path)
        dest = expand_path(dest_path)
        if not src.is_file():
            raise ValidationError(f"Source key not found: {src}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        src_pub = src.with_name(src.name + ".pub")
        if src_pub.is_file():
            shutil.copyfile(src_pub, dest.with_name(dest.name + ".pub"))
        self.set_key_permissions(dest)
        return dest

    def ensure_public_key(self, key_path: str) -> Path:
        """Derive ``<key>.pub`` from the private key if it does not exist."""
        path = expand_path(key_path)
        pub_path = path.with_name(path.name + ".pub")
        if pub_path.exists():
            return pub_path
        result = self.runner.check("derive public key", "ssh-keygen", "-y", "-f", str(path))
        pub_path.write_text(result.output + "\n", encoding="utf-8")
        if sys.platform != "win32":
            os.chmod(pub_path, 0o644)
        return pub_path

    @staticmethod
    def set_key_permissions(key_path: str | Path) -> None:
        if sys.platform == "win32":
            return
        path = expand_path(key_path)
        os.chmod(path, 0o600)
        pub_path = path.with_name(path.name + ".pub")
        if pub_path.exists():
            os.chmod(pub_path, 0o644)

    def test_connection(self, host: str = "github.com", timeout: int = 10) -> ConnectionResult:
        """Probe ``ssh -T git@<host>`` in batch mode with a connect timeout.

        Hosting platforms exit non-zero even on successful authentication,
        so the verdict comes from the greeting text.
        """
        host = host or "github.com"
        try:
            result = self.runner.run(
                "ssh",
                "-T",
                "-o",
                "StrictHostKeyChecking=accept-new",
                "-o",
                f"ConnectTimeout={timeout}",
                "-o",
                "BatchMode=yes",
                f"git@{host}",
                timeout=timeout + 5,
            )
        except SubprocessFailureError as e:
            return ConnectionResult(False, str(e))

        output = (result.stdout + result.stderr).strip()
        for pattern in _AUTH_SUCCESS_PATTERNS:
            if re.search(pattern, output, re.IGNORECASE):
                user_match = _AUTH_USER_PATTERN.search(output)
                if user_match:
                    user = next(g for g in user_match.groups() if g)
                    return ConnectionResult(
                        True, f"Successfully authenticated as {user.strip().rstrip('.')}"
                    )
                return ConnectionResult(True, "Successfully authenticated")
        return ConnectionResult(False, output or f"ssh exited with status {result.returncode}")

    @staticmethod
    def list_private_keys(ssh_dir: Path | None = None) -> list[Path]:
        ssh_dir = ssh_dir or default_ssh_dir()
        if not ssh_dir.is_dir():
            return []
        keys = []
        for entry in sorted(ssh_dir.iterdir()):
            if not entry.is_file():
                continue
            if entry.name in _NON_KEY_FILES or entry.name.endswith(".pub"):
                continue
            keys.append(entry)
        return keys

    @staticmethod
    def suggest_key_filenames(username: str, label: str = "") -> list[str]:
        base = (username or label or "github").lower()
        base = re.sub(r"[^a-z0-9_-]+", "", base) or "github"
        candidates = [
            f"id_ed25519_{base}",
            f"id_ecdsa_{base}",
            f"id_rsa_{base}",
            "id_ed25519_github",
        ]
        return list(dict.fromkeys(candidates))
