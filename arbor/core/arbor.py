"""Core functionality for arbor"""

import os
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Union

from arbor.config.global_config import (
    ProjectInfo,
    load_or_create_global_config,
    save_global_config,
)
from arbor.config.project import ProjectConfig, save_project
from arbor.constants import BARE_DIR, DEFAULT_BRANCH, DEFAULT_WORKTREE_BASE, LOCAL_STATE_FILE
from arbor.exceptions import (
    ArborError,
    ConfigError,
    GitOperationError,
    NotFoundError,
)
from arbor.logging_config import get_logger
from arbor.models.worktree import Worktree
from arbor.presets import register_all
from arbor.project.context import ProjectContext
from arbor.project.resolver import resolve_project
from arbor.scaffold.commander import Commander
from arbor.scaffold.context import StepOptions
from arbor.scaffold.executor import ExecutionResult
from arbor.scaffold.manager import ScaffoldManager
from arbor.services.git.operations import GitOperations
from arbor.services.git.worktrees import WorktreeService, sort_worktrees
from arbor.ui import console
from arbor.utils.paths import extract_repo_name, is_short_form, sanitize_branch

logger = get_logger(__name__)

LOCAL_STATE_WARNING = "Add .arbor.local to .gitignore to prevent committing local state"


@dataclass
class RepairResult:
    """What ``repair`` changed (or would change in a dry run)."""

    refspec_configured: bool = False
    tracking_configured: List[str] = field(default_factory=list)


class Arbor:
    """Main class for managing a project's worktrees."""

    def __init__(
        self,
        cwd: Optional[Union[str, Path]] = None,
        opts: Optional[StepOptions] = None,
        interactive: bool = False,
        force: bool = False,
        config_dir: Optional[Union[str, Path]] = None,
        git_ops: Optional[GitOperations] = None,
        commander: Optional[Commander] = None,
        manager: Optional[ScaffoldManager] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        """Initialize Arbor.

        Args:
            cwd: Directory commands run from (the process cwd by default)
            opts: Dry-run / verbose / quiet flags and extra step args
            interactive: Ask before destructive operations
            force: Skip confirmations and override safety checks
            config_dir: Global config directory override
            git_ops: Git collaborator
            commander: Runner for non-git commands
            manager: Scaffold manager; one with the built-in presets by default
            env: Extra environment for scaffold subprocesses
        """
        self.cwd = os.path.abspath(str(cwd or os.getcwd()))
        self.opts = opts or StepOptions()
        self.interactive = interactive
        self.force = force
        self.config_dir = config_dir
        self.git_ops = git_ops or GitOperations()
        self.commander = commander or Commander()
        if manager is None:
            manager = ScaffoldManager(commander=self.commander)
            register_all(manager)
        self.manager = manager
        self.env = dict(env or {})
        self.cancel_event = threading.Event()
        self._project: Optional[ProjectContext] = None

    @property
    def dry_run(self) -> bool:
        return self.opts.dry_run

    @property
    def project(self) -> ProjectContext:
        """The project owning ``cwd``, resolved on first use.

        Raises:
            ProjectNotFoundError: If ``cwd`` is not inside an Arbor project
        """
        if self._project is None:
            self._project = resolve_project(self.cwd, git_ops=self.git_ops, config_dir=self.config_dir)
        return self._project

    def worktree_service(self) -> WorktreeService:
        return WorktreeService(self.git_ops, self.project.git_dir)

    def _confirm(self, question: str) -> bool:
        if self.force or not self.interactive:
            return True
        return console.confirm(question, default=False)

    # Project lifecycle

    def init_project(self, repo: str, path: str = "", preset: str = "") -> str:
        """Clone ``repo`` bare and set up a legacy project around it.

        Args:
            repo: Clone URL or GitHub ``owner/repo`` short form
            path: Target directory; derived from the repository name if empty
            preset: Preset to record in ``arbor.yaml``

        Returns:
            Absolute path of the new project

        Raises:
            ArborError: If the target already holds an Arbor project
            GitOperationError: If cloning or creating the worktree fails
        """
        target = sanitize_branch(path or extract_repo_name(repo))
        project_path = os.path.abspath(os.path.join(self.cwd, target))
        bare_path = os.path.join(project_path, BARE_DIR)

        if os.path.isdir(bare_path):
            raise ArborError(f"{project_path} is already an arbor project")

        if self.dry_run:
            console.print_info(f"[DRY-RUN] Would clone {repo} into {bare_path}")
            return project_path

        console.print_info(f"Cloning repository to {bare_path}")
        self._clone(repo, bare_path)

        remote_url = self.git_ops.get_remote_url(bare_path)
        if remote_url:
            self.git_ops.configure_fetch_refspec(bare_path, remote_url)

        try:
            default_branch = self.git_ops.get_default_branch(bare_path) or DEFAULT_BRANCH
        except GitOperationError as e:
            logger.debug(f"Falling back to {DEFAULT_BRANCH}: {e}")
            default_branch = DEFAULT_BRANCH
        console.print_info(f"Default branch: {default_branch}")

        main_path = os.path.join(project_path, sanitize_branch(default_branch))
        console.print_info(f"Creating main worktree at {main_path}")
        self.git_ops.create_worktree(bare_path, main_path, default_branch)

        save_project(project_path, ProjectConfig(default_branch=default_branch, preset=preset))

        console.print_success(f"Arbor project initialised at {project_path}")
        return project_path

    def _clone(self, repo: str, bare_path: str) -> None:
        # local paths look like owner/repo too
        local = os.path.join(self.cwd, repo)
        if os.path.exists(local):
            self.git_ops.clone_bare(os.path.abspath(local), bare_path)
            return
        if not is_short_form(repo):
            self.git_ops.clone_bare(repo, bare_path)
            return

        if shutil.which("gh") is None:
            self.git_ops.clone_bare(f"https://github.com/{repo}.git", bare_path)
            return

        console.print_info("Using gh CLI for repository clone")
        result = self.commander.run(
            ["gh", "repo", "clone", repo, bare_path, "--", "--bare"],
            cwd=self.cwd,
            cancel_event=self.cancel_event,
        )
        if not result.ok:
            raise GitOperationError("clone", bare_path, result.output.strip())

    def link_project(self, path: str = ".", name: str = "", preset: str = "", site_name: str = "") -> str:
        """Register an existing repository as a linked project.

        Returns:
            The registered project name

        Raises:
            ArborError: If ``path`` is not a plain git repository
            ConfigError: If ``name`` is registered for another path
        """
        abs_path = os.path.abspath(os.path.join(self.cwd, path))
        if not self.git_ops.is_git_repo(abs_path):
            raise ArborError(f"{abs_path} is not a git repository (no .git directory found)")
        if os.path.isdir(os.path.join(abs_path, BARE_DIR)):
            raise ArborError(f"{abs_path} is already an arbor project (has .bare directory)")

        global_config = load_or_create_global_config(self.config_dir)
        if not global_config.worktree_base:
            console.print_warning("No worktree_base configured in global config")
            console.print_info(f"Worktrees will be created in {DEFAULT_WORKTREE_BASE}")
            global_config.worktree_base = DEFAULT_WORKTREE_BASE
        worktree_base = global_config.worktree_base_expanded()

        name = name or os.path.basename(abs_path)
        existing = global_config.get_linked_project_by_name(name)
        if existing is not None:
            if os.path.realpath(os.path.expanduser(existing.path)) == os.path.realpath(abs_path):
                console.print_warning(f"Project '{name}' is already linked")
                return name
            raise ConfigError(
                f"a project named '{name}' already exists at {existing.path}. "
                "Use --name to specify a different name"
            )

        git_dir = self.git_ops.find_git_dir(abs_path)
        try:
            default_branch = self.git_ops.get_default_branch(git_dir) or DEFAULT_BRANCH
        except GitOperationError as e:
            logger.debug(f"Falling back to {DEFAULT_BRANCH}: {e}")
            default_branch = DEFAULT_BRANCH

        if not preset:
            preset = self.manager.detect_preset(abs_path)
            if preset:
                console.print_success(f"Detected preset: {preset}")

        global_config.add_project(
            name,
            ProjectInfo(path=abs_path, default_branch=default_branch, preset=preset, site_name=site_name or name),
        )

        if self.dry_run:
            console.print_info(f"[DRY-RUN] Would link '{name}' from {abs_path}")
            return name

        save_global_config(global_config)
        project_dir = os.path.join(worktree_base, name)
        os.makedirs(project_dir, exist_ok=True)

        console.print_success(f"Linked '{name}' from {abs_path}")
        console.print_info(f"Default branch: {default_branch}")
        if preset:
            console.print_info(f"Preset: {preset}")
        console.print_info(f"Worktrees will be stored in: {project_dir}")
        return name

    def unlink_project(self, name: str = "", clean: bool = False) -> str:
        """Remove a project registration, optionally deleting its worktrees.

        Returns:
            The unlinked project name

        Raises:
            NotFoundError: If the project is not linked
        """
        global_config = load_or_create_global_config(self.config_dir)
        if name:
            info = global_config.get_linked_project_by_name(name)
            if info is None:
                raise NotFoundError(f"project '{name}' is not linked")
        else:
            name, info = global_config.find_linked_project_from_path(self.cwd)
            if info is None:
                raise NotFoundError(
                    "current directory is not inside a linked project. Specify the project name as an argument"
                )

        worktree_base = global_config.worktree_base_expanded()
        project_dir = os.path.join(worktree_base, name) if worktree_base else ""
        entries = sorted(os.listdir(project_dir)) if project_dir and os.path.isdir(project_dir) else []

        if entries and not clean:
            console.print_warning(f"Worktrees exist at {project_dir} (use --clean to remove)")
        elif entries and self.dry_run:
            console.print_info(f"[DRY-RUN] Would remove {len(entries)} worktree(s) in {project_dir}")
        elif entries:
            if not self._confirm(f"Remove {len(entries)} worktree(s) in {project_dir}?"):
                console.print_info("Cancelled")
                return name
            self._remove_linked_worktrees(info, project_dir, entries)

        if self.dry_run:
            console.print_info(f"[DRY-RUN] Would unlink '{name}'")
            return name

        global_config.remove_project(name)
        save_global_config(global_config)
        console.print_success(f"Unlinked '{name}'")
        console.print_info(f"Project at {info.path} is no longer managed by arbor")
        return name

    def _remove_linked_worktrees(self, info: ProjectInfo, project_dir: str, entries: List[str]) -> None:
        try:
            git_dir = self.git_ops.find_git_dir(os.path.expanduser(info.path))
        except GitOperationError as e:
            console.print_warning(f"Repository not found, deleting worktree directories only: {e}")
            git_dir = ""

        for entry in entries:
            worktree_path = os.path.join(project_dir, entry)
            if not git_dir or not os.path.isdir(worktree_path):
                continue
            try:
                self.git_ops.remove_worktree(git_dir, worktree_path, force=True)
            except GitOperationError as e:
                logger.debug(f"git could not remove {worktree_path}: {e}")

        shutil.rmtree(project_dir)
        if git_dir:
            self.git_ops.prune_worktrees(git_dir)
        console.print_success(f"Removed worktrees in {project_dir}")

    # Worktrees

    def list_worktrees(self, sort_by: str = "name", reverse: bool = False) -> List[Worktree]:
        """All worktrees, classified and sorted."""
        project = self.project
        worktrees = self.worktree_service().list_detailed(self.cwd, project.default_branch)
        return sort_worktrees(worktrees, by=sort_by, reverse=reverse)

    def find_worktree(self, query: str) -> Worktree:
        """Look a worktree up by name, branch or unambiguous partial match."""
        return self.worktree_service().find(query)

    def current_worktree(self) -> Worktree:
        """The worktree containing ``cwd``."""
        worktree = self.worktree_service().find_by_path(self.cwd)
        if worktree is None:
            raise NotFoundError(f"{self.cwd} is not inside a worktree")
        return worktree

    def create_worktree(self, branch: str, base_branch: str = "", path: str = "", scaffold: bool = True) -> str:
        """Create (or reuse) the worktree for ``branch`` and scaffold it.

        Args:
            branch: Branch to check out; created from ``base_branch`` if new
            base_branch: Start point for a new branch (project default if empty)
            path: Custom location; placement rules apply when empty
            scaffold: Run the scaffold pipeline afterwards

        Returns:
            Absolute path of the worktree
        """
        project = self.project
        if path:
            target = os.path.abspath(os.path.join(self.cwd, path))
        else:
            target = project.worktree_path(branch)

        existing = self.worktree_service().find_by_path(target)
        if existing is not None and os.path.realpath(existing.path) == os.path.realpath(target):
            console.print_info(f"Worktree already exists at {target}")
        elif self.dry_run:
            console.print_info(f"[DRY-RUN] Would create worktree for {branch} at {target}")
        else:
            self.git_ops.create_worktree(project.git_dir, target, branch, base_branch or project.default_branch)
            console.print_success(f"Created worktree for {branch} at {target}")

        if scaffold:
            self.run_scaffold(target, branch)
        return target

    def remove_worktree(self, query: str, delete_branch: bool = False) -> Worktree:
        """Run cleanup for and remove the worktree matching ``query``.

        Raises:
            ArborError: When asked to remove the default branch without force
            WorktreeNotFoundError / AmbiguousWorktreeError: From the lookup
        """
        project = self.project
        worktree = self.find_worktree(query)
        if worktree.branch == project.default_branch and not self.force:
            raise ArborError(
                f"refusing to remove the {project.default_branch} worktree without --force"
            )
        if not self._confirm(f"Remove worktree {worktree.name} ({worktree.path})?"):
            console.print_info("Cancelled")
            return worktree

        self._remove(worktree, delete_branch=delete_branch)
        return worktree

    def _remove(self, worktree: Worktree, delete_branch: bool = False) -> None:
        project = self.project
        try:
            self.run_cleanup(worktree.path, worktree.branch)
        except ArborError as e:
            if not self.force:
                raise
            console.print_warning(f"Cleanup failed, removing anyway: {e}")

        if self.dry_run:
            console.print_info(f"[DRY-RUN] Would remove worktree {worktree.path}")
            return

        self.git_ops.remove_worktree(project.git_dir, worktree.path, force=self.force)
        console.print_success(f"Removed worktree {worktree.path}")

        if delete_branch:
            self.git_ops.delete_branch(project.git_dir, worktree.branch, force=self.force)
            console.print_success(f"Deleted branch {worktree.branch}")

        remove_empty_parents(worktree.path, project.worktrees_root)

    def prune(self) -> List[Worktree]:
        """Remove every merged worktree other than the main and current ones.

        Returns:
            The worktrees removed (or that would be, in a dry run)
        """
        candidates = [
            wt for wt in self.list_worktrees()
            if wt.is_merged and not wt.is_main and not wt.is_current
        ]
        if not candidates:
            console.print_info("No merged worktrees to prune")
            return []

        for wt in candidates:
            console.print_info(f"Merged: {wt.name} ({wt.branch})")
        if not self.dry_run and not self._confirm(f"Remove {len(candidates)} merged worktree(s)?"):
            console.print_info("Cancelled")
            return []

        removed = []
        for wt in candidates:
            try:
                self._remove(wt)
            except GitOperationError as e:
                console.print_warning(f"Could not remove {wt.name}: {e}")
                continue
            removed.append(wt)
        return removed

    # Scaffolding

    def run_scaffold(self, worktree_path: str, branch: str) -> List[ExecutionResult]:
        """Run the scaffold pipeline for a worktree of this project."""
        project = self.project
        results = self.manager.run_scaffold(
            worktree_path,
            branch,
            project.repo_name,
            project.site_name,
            project.config.preset,
            project.config,
            self.opts,
            env=self.env,
            cancel_event=self.cancel_event,
        )
        if not self.dry_run:
            self.check_local_state_ignored(worktree_path)
        return results

    def run_cleanup(self, worktree_path: str, branch: str) -> List[ExecutionResult]:
        """Run the cleanup pipeline for a worktree of this project."""
        project = self.project
        return self.manager.run_cleanup(
            worktree_path,
            branch,
            project.repo_name,
            project.site_name,
            project.config.preset,
            project.config,
            self.opts,
            env=self.env,
            cancel_event=self.cancel_event,
        )

    def scaffold_worktree(self, query: str = "") -> Worktree:
        """Re-run scaffolding for the worktree matching ``query`` (or the current one)."""
        worktree = self.find_worktree(query) if query else self.current_worktree()
        self.run_scaffold(worktree.path, worktree.branch)
        return worktree

    def check_local_state_ignored(self, worktree_path: str) -> bool:
        """Warn when ``.arbor.local`` exists but git would commit it.

        Returns:
            True if a warning was printed
        """
        if not os.path.exists(os.path.join(worktree_path, LOCAL_STATE_FILE)):
            return False
        try:
            if self.git_ops.is_ignored(worktree_path, LOCAL_STATE_FILE):
                return False
        except GitOperationError as e:
            logger.debug(f"Could not check ignore status in {worktree_path}: {e}")
        console.print_warning(LOCAL_STATE_WARNING)
        return True

    # Repair

    def repair(self, refspec_only: bool = False, tracking_only: bool = False) -> RepairResult:
        """Fix the fetch refspec and branch tracking of the project's repository.

        Raises:
            ConfigError: If both ``refspec_only`` and ``tracking_only`` are set,
                or no remote URL can be found
        """
        if refspec_only and tracking_only:
            raise ConfigError("cannot use --refspec-only and --tracking-only together")

        result = RepairResult()
        if not tracking_only:
            result.refspec_configured = self._repair_fetch_refspec()
        if not refspec_only:
            result.tracking_configured = self._repair_branch_tracking()

        console.print_success("Repair complete")
        return result

    def _find_remote_url(self) -> str:
        git_dir = self.project.git_dir
        url = self.git_ops.get_remote_url(git_dir)
        if url:
            return url
        for wt in self.git_ops.list_worktrees(git_dir):
            try:
                url = self.git_ops.get_remote_url(wt.path)
            except GitOperationError as e:
                logger.debug(f"No remote URL in {wt.path}: {e}")
                continue
            if url:
                return url
        return ""

    def _repair_fetch_refspec(self) -> bool:
        git_dir = self.project.git_dir
        if self.git_ops.has_fetch_refspec(git_dir):
            if self.opts.verbose:
                console.print_info("Fetch refspec already configured")
            return False

        url = self._find_remote_url()
        if not url:
            raise ConfigError("remote URL not configured for origin")
        console.print_info(f"Using remote URL: {url}")

        if self.dry_run:
            console.print_info(f"[DRY-RUN] Would configure fetch refspec for {url}")
            return True

        self.git_ops.configure_fetch_refspec(git_dir, url)
        console.print_success("Configured fetch refspec")
        return True

    def _repair_branch_tracking(self) -> List[str]:
        git_dir = self.project.git_dir
        local, remote = self.git_ops.get_branch_refs(git_dir)
        prefix = "origin/"
        on_remote = {name[len(prefix):] for name in remote if name.startswith(prefix)}

        fixed: List[str] = []
        already = 0
        for branch in local:
            try:
                if self.git_ops.has_branch_tracking(git_dir, branch):
                    already += 1
                    continue
            except GitOperationError as e:
                console.print_warning(f"Could not check tracking for '{branch}': {e}")
                continue

            if branch not in on_remote:
                if self.opts.verbose:
                    console.print_info(f"No remote branch for '{branch}', skipping tracking setup")
                continue

            if self.dry_run:
                console.print_info(f"[DRY-RUN] Would set up tracking for branch '{branch}'")
                fixed.append(branch)
                continue

            self.git_ops.set_branch_upstream(git_dir, branch)
            console.print_success(f"Set up tracking for branch '{branch}'")
            fixed.append(branch)

        if not fixed:
            if already:
                console.print_info("All branches already have tracking configured")
            else:
                console.print_info("No branches needed tracking configuration")
        return fixed

    def cancel(self) -> None:
        """Stop the subprocess currently run by a scaffold step."""
        self.cancel_event.set()


def remove_empty_parents(path: str, stop: str) -> None:
    """Delete empty directories above ``path`` up to, not including, ``stop``."""
    stop = os.path.realpath(stop)
    parent = os.path.dirname(os.path.abspath(path))
    while True:
        real = os.path.realpath(parent)
        if real == stop or not real.startswith(stop + os.sep):
            return
        if not os.path.isdir(parent) or os.listdir(parent):
            return
        os.rmdir(parent)
        logger.debug(f"Removed empty directory {parent}")
        parent = os.path.dirname(parent)
