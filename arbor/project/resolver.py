"""Find the Arbor project that owns a directory."""

import os
from pathlib import Path
from typing import Optional, Union

from arbor.config.global_config import GlobalConfig, ProjectInfo, is_same_or_subpath, load_global_config
from arbor.config.project import ProjectConfig, load_project, project_config_exists
from arbor.constants import BARE_DIR, DEFAULT_BRANCH
from arbor.exceptions import GitOperationError, ProjectNotFoundError
from arbor.logging_config import get_logger
from arbor.project.context import ProjectContext
from arbor.services.git.operations import GitOperations

logger = get_logger(__name__)


def find_bare_path(start: Union[str, Path]) -> Optional[str]:
    """Walk up from ``start`` looking for a directory containing ``.bare``.

    Returns:
        Absolute path of the ``.bare`` directory, or None
    """
    current = os.path.abspath(str(start))
    while True:
        candidate = os.path.join(current, BARE_DIR)
        if os.path.isdir(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _default_branch(configured: str, git_ops: GitOperations, git_dir: str) -> str:
    """Configured branch, else what git reports, else ``main``."""
    if configured:
        return configured
    try:
        detected = git_ops.get_default_branch(git_dir)
    except GitOperationError as e:
        logger.debug(f"Could not detect default branch in {git_dir}: {e}")
        detected = ""
    return detected or DEFAULT_BRANCH


def _open_linked(
    cwd: str,
    name: str,
    info: ProjectInfo,
    global_config: GlobalConfig,
    git_ops: GitOperations,
) -> ProjectContext:
    project_path = os.path.abspath(os.path.expanduser(info.path))
    git_dir = git_ops.find_git_dir(project_path)

    # A linked repository may carry its own arbor.yaml; registration
    # settings fill in whatever it leaves empty.
    if project_config_exists(project_path):
        config = load_project(project_path)
    else:
        config = ProjectConfig()
    config.site_name = config.site_name or info.site_name
    config.preset = config.preset or info.preset

    default_branch = _default_branch(info.default_branch or config.default_branch, git_ops, git_dir)
    config.default_branch = default_branch

    return ProjectContext(
        cwd=cwd,
        git_dir=git_dir,
        project_path=project_path,
        config=config,
        default_branch=default_branch,
        is_linked=True,
        project_name=name,
        worktree_base=global_config.worktree_base_expanded(),
        global_config=global_config,
    )


def _linked_name_from_worktree_base(cwd: str, global_config: GlobalConfig) -> str:
    """Project name when ``cwd`` is below ``worktree_base``, else ""."""
    base = global_config.worktree_base_expanded()
    if not base:
        return ""
    base = os.path.realpath(base)
    if cwd == base or not is_same_or_subpath(base, cwd):
        return ""
    rel = os.path.relpath(cwd, base)
    return rel.split(os.sep, 1)[0]


def resolve_project(
    cwd: Union[str, Path],
    global_config: Optional[GlobalConfig] = None,
    git_ops: Optional[GitOperations] = None,
    config_dir: Optional[Union[str, Path]] = None,
) -> ProjectContext:
    """Resolve the project owning ``cwd``.

    Lookup order:
      1. a linked project whose registered path contains ``cwd``
      2. a linked project whose worktrees directory under ``worktree_base``
         contains ``cwd``
      3. a legacy project found by walking up to a ``.bare`` directory

    Args:
        cwd: Directory to resolve from
        global_config: Preloaded global config; loaded from ``config_dir``
            (or the XDG location) when omitted
        git_ops: Git collaborator
        config_dir: Global config directory override

    Returns:
        The project's context

    Raises:
        ProjectNotFoundError: If ``cwd`` belongs to no project
        ConfigError: If a legacy project's arbor.yaml is missing or malformed
    """
    git_ops = git_ops or GitOperations()
    cwd_abs = os.path.abspath(str(cwd))
    cwd_real = os.path.realpath(cwd_abs)

    if global_config is None:
        global_config = load_global_config(config_dir)

    if global_config is not None:
        name, info = global_config.find_linked_project_from_path(cwd_real)
        if info is not None:
            logger.debug(f"{cwd_abs} is inside linked project {name}")
            return _open_linked(cwd_abs, name, info, global_config, git_ops)

        name = _linked_name_from_worktree_base(cwd_real, global_config)
        info = global_config.get_linked_project_by_name(name) if name else None
        if info is not None:
            logger.debug(f"{cwd_abs} is inside a worktree of linked project {name}")
            return _open_linked(cwd_abs, name, info, global_config, git_ops)

    bare_path = find_bare_path(cwd_abs)
    if bare_path is None:
        raise ProjectNotFoundError(cwd_abs)

    project_path = os.path.dirname(bare_path)
    config = load_project(project_path)
    default_branch = _default_branch(config.default_branch, git_ops, bare_path)
    logger.debug(f"{cwd_abs} is inside legacy project {project_path}")

    return ProjectContext(
        cwd=cwd_abs,
        git_dir=bare_path,
        project_path=project_path,
        config=config,
        default_branch=default_branch,
        global_config=global_config,
    )
