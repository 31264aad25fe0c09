"""Where worktrees live on disk."""

import os

from arbor.constants import BARE_DIR
from arbor.config.global_config import is_same_or_subpath
from arbor.project.context import ProjectContext
from arbor.utils.paths import sanitize_branch


def worktree_path(ctx: ProjectContext, branch: str) -> str:
    """Compute the directory for ``branch``'s worktree.

    Linked projects place worktrees at ``<worktree_base>/<project>/<branch>``;
    legacy projects keep them beside ``.bare`` in the project root. The
    branch is sanitized (``/`` becomes ``-``).
    """
    return os.path.join(ctx.worktrees_root, sanitize_branch(branch))


def is_in_worktree(ctx: ProjectContext) -> bool:
    """Whether the context's cwd lies inside one of the project's worktrees.

    This is a directory check only: any directory strictly below the
    worktrees root, other than ``.bare``, counts.
    """
    cwd = os.path.realpath(os.path.abspath(ctx.cwd))
    root = os.path.realpath(os.path.abspath(ctx.worktrees_root))

    if cwd == root or not is_same_or_subpath(root, cwd):
        return False
    bare = os.path.join(root, BARE_DIR)
    if cwd == bare or is_same_or_subpath(bare, cwd):
        return False
    return True
