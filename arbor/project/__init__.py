"""Project discovery and worktree placement."""

from .context import ProjectContext
from .placement import is_in_worktree, worktree_path
from .resolver import find_bare_path, resolve_project

__all__ = ["ProjectContext", "is_in_worktree", "worktree_path", "find_bare_path", "resolve_project"]
