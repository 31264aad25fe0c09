"""Command-line argument parsing for arbor."""

import argparse
from typing import List, Optional

from arbor.__version__ import __version__
from arbor.constants import SORT_KEYS


def _add_global_flags(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    """Flags accepted both before and after the subcommand.

    Subcommand copies use SUPPRESS defaults so they never overwrite a flag
    given before the subcommand.
    """
    default = argparse.SUPPRESS if suppress else False
    parser.add_argument("-v", "--verbose", action="store_true", default=default, help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", default=default, help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", default=default, help="Only show warnings and errors"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=default,
        help="Preview mode - show what would be done without changing anything",
    )


def _add_step_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--arg",
        dest="step_args",
        action="append",
        default=[],
        metavar="ARG",
        help="Extra argument appended to every tool step (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arbor",
        description="Manage parallel git worktrees with per-worktree project scaffolding",
    )
    parser.add_argument("--version", action="version", version=f"arbor {__version__}")
    _add_global_flags(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text, description=help_text)
        _add_global_flags(sub, suppress=True)
        return sub

    init = add("init", "Clone a repository as a bare repo with a default-branch worktree")
    init.add_argument("repo", help="Repository URL or GitHub owner/repo short form")
    init.add_argument("path", nargs="?", default="", help="Target directory (defaults to the repository name)")
    init.add_argument("--preset", default="", help="Project preset (laravel, php, laravel-shared-db)")

    work = add("work", "Create or check out a worktree for a branch and scaffold it")
    work.add_argument("branch", help="Branch name")
    work.add_argument("path", nargs="?", default="", help="Custom worktree path")
    work.add_argument("-b", "--base", default="", help="Base branch for a new branch")
    work.add_argument("--no-scaffold", action="store_true", help="Skip the scaffold steps")
    _add_step_args(work)

    remove = add("remove", "Run cleanup steps and remove a worktree")
    remove.add_argument("worktree", help="Worktree name, branch or partial match")
    remove.add_argument("-f", "--force", action="store_true", help="Skip confirmations and safety checks")
    remove.add_argument("-d", "--delete-branch", action="store_true", help="Also delete the branch")

    list_cmd = add("list", "List worktrees")
    list_cmd.add_argument("--sort-by", choices=SORT_KEYS, default="name", help="Sort key (default: name)")
    list_cmd.add_argument("-r", "--reverse", action="store_true", help="Reverse the sort order")
    list_cmd.add_argument("--legend", action="store_true", help="Explain the status column")

    for name, help_text in (
        ("cd", "Print the path of a worktree for shell navigation"),
        ("info", "Print the path of a worktree"),
    ):
        sub = add(name, help_text)
        sub.add_argument("worktree", nargs="?", default="", help="Worktree name, branch or partial match")
        if name == "cd":
            sub.add_argument("--shell", action="store_true", help="Print a 'cd <path>' command")

    prune = add("prune", "Remove worktrees whose branch is merged into the default branch")
    prune.add_argument("-f", "--force", action="store_true", help="Skip interactive confirmation")

    link = add("link", "Register an existing git repository for centralized worktrees")
    link.add_argument("path", nargs="?", default=".", help="Repository path (defaults to the current directory)")
    link.add_argument("--name", default="", help="Project name (defaults to the directory name)")
    link.add_argument("--preset", default="", help="Project preset (detected when omitted)")
    link.add_argument("--site-name", default="", help="Site name for scaffold steps (defaults to the name)")

    unlink = add("unlink", "Remove a linked project registration")
    unlink.add_argument("name", nargs="?", default="", help="Project name (defaults to the current project)")
    unlink.add_argument("--clean", action="store_true", help="Also remove the project's worktrees")
    unlink.add_argument("-f", "--force", action="store_true", help="Skip confirmation when using --clean")

    repair = add("repair", "Fix the fetch refspec and branch tracking of a project")
    repair.add_argument("--refspec-only", action="store_true", help="Only repair the fetch refspec")
    repair.add_argument("--tracking-only", action="store_true", help="Only repair branch tracking")

    scaffold = add("scaffold", "Run the scaffold steps for an existing worktree")
    scaffold.add_argument("worktree", nargs="?", default="", help="Worktree (defaults to the current one)")
    _add_step_args(scaffold)

    add("version", "Show the arbor version")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
