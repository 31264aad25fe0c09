"""Worktree listing, classification and lookup for arbor."""

import os
from threading import Lock
from typing import Dict, List, Optional

from arbor.exceptions import AmbiguousWorktreeError, GitOperationError, WorktreeNotFoundError
from arbor.models.worktree import Worktree
from arbor.services.git.operations import GitOperations
from arbor.ui import console


def _real(path: str) -> str:
    return os.path.realpath(os.path.abspath(path)) if path else ""


def sort_worktrees(worktrees: List[Worktree], by: str = "name", reverse: bool = False) -> List[Worktree]:
    """Return a sorted copy of ``worktrees``.

    Args:
        worktrees: Worktrees to sort
        by: ``name`` (directory name), ``branch`` or ``created`` (mtime of
            the directory; missing directories sort as oldest)
        reverse: Reverse the chosen order

    Returns:
        New list; ties fall back to the path so the order is stable
    """
    if by == "branch":
        def key(wt: Worktree):
            return wt.branch
    elif by == "created":
        mtimes: Dict[str, float] = {}
        for wt in worktrees:
            try:
                mtimes[wt.path] = os.stat(wt.path).st_mtime
            except OSError:
                mtimes[wt.path] = 0.0

        def key(wt: Worktree):
            return mtimes[wt.path]
    else:
        def key(wt: Worktree):
            return wt.name

    # Path tie-break always ascending; sort by path first, then by key (stable sort)
    by_path = sorted(worktrees, key=lambda wt: wt.path)
    return sorted(by_path, key=key, reverse=reverse)


def find_worktree(worktrees: List[Worktree], query: str) -> Worktree:
    """Look a worktree up by directory name, branch name or partial match.

    An exact match on directory or branch name wins. Otherwise the query is
    matched case-insensitively as a substring of both.

    Raises:
        WorktreeNotFoundError: If nothing matches
        AmbiguousWorktreeError: If more than one worktree matches partially
    """
    for wt in worktrees:
        if wt.name == query or wt.branch == query:
            return wt

    query_lower = query.lower()
    matches = [
        wt for wt in worktrees
        if query_lower in wt.name.lower() or query_lower in wt.branch.lower()
    ]

    if not matches:
        raise WorktreeNotFoundError(query)
    if len(matches) > 1:
        raise AmbiguousWorktreeError(query, [wt.name for wt in matches])
    return matches[0]


class WorktreeService:
    """Service for listing and classifying a project's worktrees."""

    def __init__(self, git_ops: GitOperations, git_dir: str):
        """Initialize the worktree service.

        Args:
            git_ops: Git collaborator used for listing and ancestry checks
            git_dir: Git directory of the project
        """
        self.git_ops = git_ops
        self.git_dir = git_dir
        self._merge_cache: Dict[str, bool] = {}
        self._cache_lock = Lock()  # Thread safety for cache access

    def clear_cache(self):
        """Clear the merge status cache."""
        with self._cache_lock:
            self._merge_cache = {}

    def _is_ancestor(self, branch: str, target: str) -> bool:
        key = f"{branch}->{target}"
        with self._cache_lock:
            if key in self._merge_cache:
                return self._merge_cache[key]
        result = self.git_ops.is_merged(self.git_dir, branch, target)
        with self._cache_lock:
            self._merge_cache[key] = result
        return result

    def is_merged(self, branch: str, default_branch: str) -> bool:
        """Whether ``branch`` has been fully absorbed into ``default_branch``.

        True only when the branch is an ancestor of the default branch and
        the default branch is not an ancestor of the branch, so a branch
        with no commits of its own is not reported as merged.
        """
        if branch == default_branch:
            return False
        if not self._is_ancestor(branch, default_branch):
            return False
        return not self._is_ancestor(default_branch, branch)

    def list_worktrees(self) -> List[Worktree]:
        return self.git_ops.list_worktrees(self.git_dir)

    def list_detailed(self, current_path: str, default_branch: str) -> List[Worktree]:
        """List worktrees flagged as main / current / merged.

        Args:
            current_path: The caller's working directory
            default_branch: The project's effective default branch
        """
        worktrees = self.list_worktrees()
        current_real = _real(current_path)

        for wt in worktrees:
            wt.is_main = wt.branch == default_branch
            wt.is_current = _real(wt.path) == current_real
            if wt.is_main:
                continue
            try:
                wt.is_merged = self.is_merged(wt.branch, default_branch)
            except GitOperationError as e:
                console.print_warning(f"Could not check merge status of {wt.branch}: {e}")
                wt.is_merged = False

        return worktrees

    def find(self, query: str) -> Worktree:
        return find_worktree(self.list_worktrees(), query)

    def find_by_path(self, path: str) -> Optional[Worktree]:
        """The worktree whose directory contains ``path``, if any."""
        target = _real(path)
        best: Optional[Worktree] = None
        for wt in self.list_worktrees():
            root = _real(wt.path)
            if target == root or target.startswith(root + os.sep):
                if best is None or len(root) > len(_real(best.path)):
                    best = wt
        return best
