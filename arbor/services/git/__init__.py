"""Git-related services for arbor."""

from .operations import GitOperations
from .worktrees import WorktreeService, find_worktree, sort_worktrees

__all__ = [
    "GitOperations",
    "WorktreeService",
    "find_worktree",
    "sort_worktrees",
]
