"""Command-line interface for Git Swap."""

from __future__ import annotations

import argparse
import sys

from git_swap import __version__
from git_swap.exceptions import GitSwapError
from git_swap.switcher import GitAccountSwitcher


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gswap",
        description="Multi-account switcher for git repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --add-account
  %(prog)s --list
  %(prog)s --status
  %(prog)s --switch
  %(prog)s --switch-to work
  %(prog)s --switch-to work --method token
  %(prog)s --global-ssh personal
  %(prog)s --clone git@github.com:acme/widgets.git
  %(prog)s --activity-log 20
        """,
    )

    # Version and debug flags (outside mutually exclusive group)
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--method",
        choices=["ssh", "token"],
        help="Switch method for --switch-to (default: ssh when configured)",
    )
    parser.add_argument(
        "--repo",
        metavar="PATH",
        help="Repository to operate on (default: current directory)",
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--list",
        action="store_true",
        help="List all accounts",
    )
    group.add_argument(
        "--status",
        action="store_true",
        help="Show which account the repository is using",
    )
    group.add_argument(
        "--switch",
        action="store_true",
        help="Pick an account for the repository interactively",
    )
    group.add_argument(
        "--switch-to",
        metavar="NAME|NUM",
        help="Switch the repository to an account",
    )
    group.add_argument(
        "--add-account",
        action="store_true",
        help="Add an account",
    )
    group.add_argument(
        "--edit-account",
        metavar="NAME|NUM",
        help="Edit an account",
    )
    group.add_argument(
        "--remove-account",
        metavar="NAME|NUM",
        help="Remove an account",
    )
    group.add_argument(
        "--health-check",
        action="store_true",
        help="Verify every account's credentials",
    )
    group.add_argument(
        "--activity-log",
        metavar="N",
        type=int,
        nargs="?",
        const=10,
        help="Show the last N activity entries (default 10, 0 for all)",
    )
    group.add_argument(
        "--global-ssh",
        metavar="NAME|NUM",
        help="Use an account's key for the platform host in every repository",
    )
    group.add_argument(
        "--test-connection",
        metavar="NAME|NUM",
        help="Test SSH authentication for an account",
    )
    group.add_argument(
        "--clone",
        nargs="+",
        metavar=("URL", "DIR"),
        help="Clone a repository and set it up for an account",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.clone is not None and len(args.clone) > 2:
        parser.error("--clone takes a URL and an optional directory")

    try:
        switcher = GitAccountSwitcher(debug=args.debug, repo_path=args.repo)
        if args.list:
            switcher.list_accounts()
        elif args.status:
            switcher.status()
        elif args.switch:
            switcher.switch()
        elif args.switch_to:
            switcher.switch_to(args.switch_to, args.method)
        elif args.add_account:
            switcher.add_account()
        elif args.edit_account:
            switcher.edit_account(args.edit_account)
        elif args.remove_account:
            switcher.remove_account(args.remove_account)
        elif args.health_check:
            switcher.health_check()
        elif args.activity_log is not None:
            switcher.activity_log(args.activity_log)
        elif args.global_ssh:
            switcher.switch_global_ssh(args.global_ssh)
        elif args.test_connection:
            switcher.test_connection(args.test_connection)
        elif args.clone:
            switcher.clone(*args.clone)
    except GitSwapError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nOperation cancelled")
        sys.exit(130)


if __name__ == "__main__":
    main()
