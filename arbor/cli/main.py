"""Command-line interface for arbor"""

import argparse
import shlex
import sys
from typing import Callable, Dict, List, Optional

from arbor.__version__ import __version__
from arbor.constants import EXIT_GENERAL_ERROR, EXIT_SUCCESS
from arbor.core import Arbor
from arbor.exceptions import ArborError
from arbor.logging_config import get_logger, setup_logging
from arbor.scaffold.context import StepOptions
from arbor.services.display_service import DisplayService
from arbor.ui import console

from .args import parse_args

logger = get_logger(__name__)


def _arbor(args: argparse.Namespace) -> Arbor:
    force = getattr(args, "force", False)
    opts = StepOptions(
        dry_run=args.dry_run,
        verbose=args.verbose,
        quiet=args.quiet,
        args=list(getattr(args, "step_args", [])),
    )
    return Arbor(opts=opts, interactive=sys.stdin.isatty() and not force, force=force)


def _print_path(path: str, shell: bool = False) -> None:
    console.print_plain(f"cd {shlex.quote(path)}" if shell else path)


def cmd_init(args: argparse.Namespace) -> int:
    _arbor(args).init_project(args.repo, args.path, args.preset)
    return EXIT_SUCCESS


def cmd_work(args: argparse.Namespace) -> int:
    path = _arbor(args).create_worktree(
        args.branch, base_branch=args.base, path=args.path, scaffold=not args.no_scaffold
    )
    console.print_plain(path)
    return EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    _arbor(args).remove_worktree(args.worktree, delete_branch=args.delete_branch)
    return EXIT_SUCCESS


def cmd_list(args: argparse.Namespace) -> int:
    arbor = _arbor(args)
    worktrees = arbor.list_worktrees(sort_by=args.sort_by, reverse=args.reverse)
    DisplayService(console.console).display_worktree_table(
        worktrees, arbor.project.repo_name, show_legend=args.legend
    )
    return EXIT_SUCCESS


def cmd_cd(args: argparse.Namespace) -> int:
    arbor = _arbor(args)
    if not args.worktree:
        DisplayService(console.console).display_worktree_paths(arbor.list_worktrees())
        return EXIT_SUCCESS
    _print_path(arbor.find_worktree(args.worktree).path, shell=getattr(args, "shell", False))
    return EXIT_SUCCESS


def cmd_prune(args: argparse.Namespace) -> int:
    _arbor(args).prune()
    return EXIT_SUCCESS


def cmd_link(args: argparse.Namespace) -> int:
    _arbor(args).link_project(args.path, name=args.name, preset=args.preset, site_name=args.site_name)
    return EXIT_SUCCESS


def cmd_unlink(args: argparse.Namespace) -> int:
    _arbor(args).unlink_project(args.name, clean=args.clean)
    return EXIT_SUCCESS


def cmd_repair(args: argparse.Namespace) -> int:
    _arbor(args).repair(refspec_only=args.refspec_only, tracking_only=args.tracking_only)
    return EXIT_SUCCESS


def cmd_scaffold(args: argparse.Namespace) -> int:
    _arbor(args).scaffold_worktree(args.worktree)
    return EXIT_SUCCESS


def cmd_version(args: argparse.Namespace) -> int:
    console.print_plain(f"arbor {__version__}")
    return EXIT_SUCCESS


COMMANDS: Dict[str, Callable[[argparse.Namespace], int]] = {
    "init": cmd_init,
    "work": cmd_work,
    "remove": cmd_remove,
    "list": cmd_list,
    "cd": cmd_cd,
    "info": cmd_cd,
    "prune": cmd_prune,
    "link": cmd_link,
    "unlink": cmd_unlink,
    "repair": cmd_repair,
    "scaffold": cmd_scaffold,
    "version": cmd_version,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)

    log_path = setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)
    if log_path:
        logger.debug(f"arbor {__version__}, writing debug log to {log_path}")
    console.set_quiet(parsed_args.quiet)

    try:
        return COMMANDS[parsed_args.command](parsed_args)
    except ArborError as e:
        console.print_error(str(e))
        logger.debug("Command failed", exc_info=True)
        return e.exit_code
    except (KeyboardInterrupt, EOFError) as e:
        aborted = console.normalize_abort(e)
        console.print_error(str(aborted))
        return EXIT_GENERAL_ERROR
    except Exception as e:
        console.print_error(str(e))
        if parsed_args.debug:
            console.error_console.print_exception()
        return EXIT_GENERAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
