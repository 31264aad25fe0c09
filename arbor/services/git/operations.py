"""Git operations service"""

import os
from typing import List, Optional, Tuple

import git

from arbor.constants import DEFAULT_BRANCH, DEFAULT_BRANCH_CANDIDATES, DEFAULT_REMOTE
from arbor.exceptions import GitOperationError
from arbor.logging_config import get_logger
from arbor.models.worktree import Worktree

logger = get_logger(__name__)

FETCH_REFSPEC = "+refs/heads/*:refs/remotes/origin/*"


def parse_worktree_porcelain(output: str) -> List[Worktree]:
    """Parse ``git worktree list --porcelain`` output.

    Only entries checked out on a local branch are returned; bare and
    detached entries are skipped.

    Args:
        output: Raw porcelain output

    Returns:
        Worktrees in the order git reported them
    """
    # Format:
    # worktree /path/to/worktree
    # HEAD commit_sha
    # branch refs/heads/branch-name
    # (blank line between worktrees)
    worktrees = []
    current_path = ""
    for line in output.split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.startswith("worktree "):
            current_path = line[len("worktree "):].strip()
        elif line.startswith("branch refs/heads/"):
            branch = line[len("branch refs/heads/"):].strip()
            if current_path and branch:
                worktrees.append(Worktree(path=current_path, branch=branch))
                current_path = ""
    return worktrees


def _error_details(e: git.exc.GitCommandError) -> str:
    """Extract a readable message from a GitCommandError."""
    stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else "").strip()
    status = e.status if hasattr(e, "status") else "unknown"
    if stderr:
        return f"exit {status}: {stderr}"
    return f"exit code {status}"


class GitOperations:
    """Service for the git verbs arbor needs.

    Every method takes the git directory (or worktree path) it operates on,
    so one instance can serve several projects. GitPython's
    ``GitCommandError`` never escapes; failures are raised as
    ``GitOperationError`` naming the verb and the path.
    """

    def _git(self, path: str) -> git.Git:
        """Get a git command wrapper running in ``path``.

        Creates a new wrapper for each call to ensure thread safety.
        """
        return git.Git(path)

    @staticmethod
    def repo_dir(git_dir: str) -> str:
        """Directory to run git in for ``git_dir``.

        A ``.git`` directory maps to its working repository; a bare
        repository (such as ``.bare``) is used as is.
        """
        if os.path.basename(os.path.normpath(git_dir)) == ".git":
            return os.path.dirname(os.path.normpath(git_dir))
        return git_dir

    def _run(self, operation: str, path: str, *args: str) -> str:
        try:
            return self._git(self.repo_dir(path)).execute(["git", *args])
        except git.exc.GitCommandError as e:
            raise GitOperationError(operation, path, _error_details(e)) from e

    def _check(self, operation: str, path: str, *args: str) -> bool:
        """Run a git predicate: exit 0 is True, exit 1 is False, anything else raises."""
        try:
            self._git(self.repo_dir(path)).execute(["git", *args])
            return True
        except git.exc.GitCommandError as e:
            if e.status == 1:
                return False
            raise GitOperationError(operation, path, _error_details(e)) from e

    # Repository discovery

    def find_git_dir(self, path: str) -> str:
        """Find the git directory for the repository at ``path``.

        Handles both a ``.git`` directory and a ``.git`` file containing a
        ``gitdir:`` pointer.

        Raises:
            GitOperationError: If ``path`` has no ``.git``
        """
        abs_path = os.path.abspath(path)
        git_path = os.path.join(abs_path, ".git")
        if os.path.isdir(git_path):
            return git_path
        if os.path.isfile(git_path):
            with open(git_path, "r", encoding="utf-8") as f:
                line = f.read().strip()
            if line.startswith("gitdir: "):
                actual = line[len("gitdir: "):].strip()
                if not os.path.isabs(actual):
                    actual = os.path.normpath(os.path.join(abs_path, actual))
                return actual
        raise GitOperationError("find git dir", abs_path, "no .git found")

    @staticmethod
    def is_git_repo(path: str) -> bool:
        return os.path.exists(os.path.join(path, ".git"))

    def clone_bare(self, url: str, dest: str) -> None:
        """Clone ``url`` as a bare repository into ``dest``."""
        logger.info(f"Cloning {url} into {dest}")
        try:
            git.Repo.clone_from(url, dest, bare=True)
        except git.exc.GitCommandError as e:
            raise GitOperationError("clone", dest, _error_details(e)) from e

    # Worktrees

    def create_worktree(self, git_dir: str, worktree_path: str, branch: str, base_branch: str = "") -> None:
        """Create a worktree for ``branch`` at ``worktree_path``.

        An existing local branch is checked out as is. A branch that only
        exists on origin is created tracking it. Otherwise the branch is
        created from ``base_branch`` (default ``main``).
        """
        os.makedirs(os.path.dirname(os.path.abspath(worktree_path)), exist_ok=True)

        if self.branch_exists(git_dir, branch):
            self._run("worktree add", git_dir, "worktree", "add", worktree_path, branch)
        elif self.remote_branch_exists(git_dir, branch):
            self._run(
                "worktree add", git_dir,
                "worktree", "add", "--track", "-b", branch, worktree_path, f"{DEFAULT_REMOTE}/{branch}",
            )
        else:
            base = base_branch or DEFAULT_BRANCH
            self._run("worktree add", git_dir, "worktree", "add", "-b", branch, worktree_path, base)
        logger.info(f"Created worktree for {branch} at {worktree_path}")

    def remove_worktree(self, git_dir: str, worktree_path: str, force: bool = False) -> None:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(worktree_path)
        self._run("worktree remove", git_dir, *args)
        logger.info(f"Removed worktree at {worktree_path}")

    def prune_worktrees(self, git_dir: str) -> None:
        """Prune stale worktree metadata."""
        self._run("worktree prune", git_dir, "worktree", "prune")

    def list_worktrees(self, git_dir: str) -> List[Worktree]:
        output = self._run("worktree list", git_dir, "worktree", "list", "--porcelain")
        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        return worktrees

    # Branches

    def get_default_branch(self, git_dir: str) -> str:
        """Return the default branch: main, master or develop if present, else HEAD."""
        for candidate in DEFAULT_BRANCH_CANDIDATES:
            if self.branch_exists(git_dir, candidate):
                return candidate
        return self._run("default branch", git_dir, "symbolic-ref", "HEAD", "--short").strip()

    def is_merged(self, git_dir: str, branch: str, target: str) -> bool:
        """Whether ``branch`` is an ancestor of ``target``.

        Raises:
            GitOperationError: If the check itself fails (e.g. unknown ref)
        """
        return self._check("merge-base", git_dir, "merge-base", "--is-ancestor", branch, target)

    def branch_exists(self, git_dir: str, branch: str) -> bool:
        try:
            self._git(self.repo_dir(git_dir)).execute(
                ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"]
            )
            return True
        except git.exc.GitCommandError:
            return False

    def remote_branch_exists(self, git_dir: str, branch: str, remote: str = DEFAULT_REMOTE) -> bool:
        try:
            self._git(self.repo_dir(git_dir)).execute(
                ["git", "rev-parse", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}"]
            )
            return True
        except git.exc.GitCommandError:
            return False

    def delete_branch(self, git_dir: str, branch: str, force: bool = False) -> None:
        self._run("branch delete", git_dir, "branch", "-D" if force else "-d", branch)
        logger.info(f"Deleted branch {branch}")

    def get_branch_refs(self, git_dir: str) -> Tuple[List[str], List[str]]:
        """Return (local, remote) short branch names; ``origin/HEAD`` is skipped."""
        local_out = self._run(
            "list branches", git_dir, "for-each-ref", "--format=%(refname:short)", "refs/heads/"
        )
        remote_out = self._run(
            "list branches", git_dir, "for-each-ref", "--format=%(refname:short)", "refs/remotes/"
        )
        local = [line.strip() for line in local_out.splitlines() if line.strip()]
        remote = [
            line.strip() for line in remote_out.splitlines()
            if line.strip() and not line.strip().endswith("/HEAD")
        ]
        return local, remote

    def list_local_branches(self, git_dir: str) -> List[str]:
        return self.get_branch_refs(git_dir)[0]

    def list_remote_branches(self, git_dir: str) -> List[str]:
        return self.get_branch_refs(git_dir)[1]

    def list_all_branches(self, git_dir: str) -> List[str]:
        local, remote = self.get_branch_refs(git_dir)
        return local + remote

    # Remote and tracking configuration

    def configure_fetch_refspec(self, git_dir: str, remote_url: str) -> None:
        """Set origin's URL and the standard fetch refspec (bare clones lack it)."""
        self._run("configure remote", git_dir, "config", "remote.origin.url", remote_url)
        self._run("configure fetch refspec", git_dir, "config", "remote.origin.fetch", FETCH_REFSPEC)

    def has_fetch_refspec(self, git_dir: str) -> bool:
        return self._check("check fetch refspec", git_dir, "config", "--get", "remote.origin.fetch")

    def get_remote_url(self, git_dir: str, remote: str = DEFAULT_REMOTE) -> str:
        """Return the remote's URL, or "" when the remote is not configured."""
        try:
            output = self._git(self.repo_dir(git_dir)).execute(
                ["git", "config", "--get", f"remote.{remote}.url"]
            )
        except git.exc.GitCommandError as e:
            if e.status == 1:
                return ""
            raise GitOperationError("get remote url", git_dir, _error_details(e)) from e
        return output.strip()

    def set_branch_upstream(self, git_dir: str, branch: str, remote: str = DEFAULT_REMOTE) -> None:
        self._run("set upstream", git_dir, "config", f"branch.{branch}.remote", remote)
        self._run("set upstream", git_dir, "config", f"branch.{branch}.merge", f"refs/heads/{branch}")

    def has_branch_tracking(self, git_dir: str, branch: str) -> bool:
        return self._check("check tracking", git_dir, "config", "--get", f"branch.{branch}.remote")

    # Worktree state

    def is_ignored(self, worktree_path: str, relative_path: str) -> bool:
        """Whether ``relative_path`` is ignored by git inside the worktree."""
        return self._check("check-ignore", worktree_path, "check-ignore", "-q", "--", relative_path)

    def has_stash(self, worktree_path: str) -> bool:
        output = self._run("stash list", worktree_path, "stash", "list")
        return bool(output.strip())

    def is_detached_head(self, worktree_path: str) -> bool:
        return not self._check("symbolic-ref", worktree_path, "symbolic-ref", "-q", "HEAD")

    def current_branch(self, worktree_path: str) -> Optional[str]:
        """Branch checked out in ``worktree_path``, or None when detached."""
        if self.is_detached_head(worktree_path):
            return None
        return self._run("current branch", worktree_path, "symbolic-ref", "--short", "HEAD").strip()
