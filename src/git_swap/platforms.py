"""Supported git hosting platforms."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from git_swap.normalize import fold


class PlatformType(str, Enum):
    """Git hosting platforms an account can belong to."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    GITEA = "gitea"
    CODEBERG = "codeberg"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> PlatformType:
        """Parse a platform name, defaulting to GitHub when empty and Other when unknown."""
        if not value:
            return cls.GITHUB
        try:
            return cls(fold(value))
        except ValueError:
            return cls.OTHER


DEFAULT_PLATFORM = PlatformType.GITHUB


@dataclass(frozen=True)
class PlatformInfo:
    """Display information for a platform."""

    type: PlatformType
    icon: str
    name: str
    domain: str


PLATFORM_REGISTRY: dict[PlatformType, PlatformInfo] = {
    PlatformType.GITHUB: PlatformInfo(PlatformType.GITHUB, "🐙", "GitHub", "github.com"),
    PlatformType.GITLAB: PlatformInfo(PlatformType.GITLAB, "🦊", "GitLab", "gitlab.com"),
    PlatformType.BITBUCKET: PlatformInfo(
        PlatformType.BITBUCKET, "🪣", "Bitbucket", "bitbucket.org"
    ),
    PlatformType.GITEA: PlatformInfo(PlatformType.GITEA, "🍵", "Gitea", ""),
    PlatformType.CODEBERG: PlatformInfo(
        PlatformType.CODEBERG, "🏔️", "Codeberg", "codeberg.org"
    ),
    PlatformType.OTHER: PlatformInfo(PlatformType.OTHER, "🔗", "Other", ""),
}

# Checked in order; the first marker found in a lowercased URL or host wins.
_URL_MARKERS: list[tuple[str, PlatformType]] = [
    ("github", PlatformType.GITHUB),
    ("gitlab", PlatformType.GITLAB),
    ("bitbucket", PlatformType.BITBUCKET),
    ("codeberg", PlatformType.CODEBERG),
    ("gitea", PlatformType.GITEA),
]


def get_platform_info(platform: str | PlatformType | None) -> PlatformInfo:
    """Return display info, falling back to Other for unknown names."""
    if isinstance(platform, PlatformType):
        return PLATFORM_REGISTRY[platform]
    if platform and fold(platform) not in {p.value for p in PlatformType}:
        return PLATFORM_REGISTRY[PlatformType.OTHER]
    return PLATFORM_REGISTRY[PlatformType.parse(platform)]


def get_platform_display(platform: str | PlatformType | None, custom_domain: str = "") -> str:
    """Icon plus the custom domain when set, else icon plus platform name."""
    info = get_platform_info(platform)
    if custom_domain:
        return f"{info.icon} {custom_domain}"
    return f"{info.icon} {info.name}"


def get_default_domain(platform: str | PlatformType | None) -> str:
    return get_platform_info(platform).domain


def detect_platform(url_or_host: str) -> PlatformType:
    """Infer the platform from a remote URL or host name."""
    lowered = fold(url_or_host)
    for marker, platform in _URL_MARKERS:
        if marker in lowered:
            return platform
    return PlatformType.OTHER


def supported_platforms() -> list[PlatformType]:
    return list(PlatformType)


def is_valid_platform(value: str) -> bool:
    return fold(value) in {p.value for p in PlatformType}
