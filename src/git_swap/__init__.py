"""Git Swap - Multi-account switcher for git repositories."""

from importlib.metadata import version

__version__ = version("git-swap")

from git_swap.switcher import GitAccountSwitcher

__all__ = ["GitAccountSwitcher", "__version__"]
