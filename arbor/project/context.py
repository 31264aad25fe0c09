"""The per-invocation view of an Arbor project."""

import os
from dataclasses import dataclass, field
from typing import Optional

from arbor.config.global_config import GlobalConfig
from arbor.config.project import ProjectConfig


@dataclass(frozen=True)
class ProjectContext:
    """Everything a command needs to know about the project it runs in.

    Built once by the resolver at the start of a command and never
    modified afterwards.
    """

    cwd: str
    git_dir: str  # .bare for legacy projects, .git for linked ones
    project_path: str
    config: ProjectConfig
    default_branch: str

    # Linked project fields
    is_linked: bool = False
    project_name: str = ""
    worktree_base: str = ""
    global_config: Optional[GlobalConfig] = field(default=None, compare=False, repr=False)

    @property
    def repo_name(self) -> str:
        """Name used for the project in templates and messages."""
        if self.project_name:
            return self.project_name
        return os.path.basename(os.path.normpath(self.project_path))

    @property
    def site_name(self) -> str:
        return self.config.site_name or self.repo_name

    @property
    def worktrees_root(self) -> str:
        """Directory under which this project's worktrees are placed."""
        if self.is_linked and self.worktree_base:
            return os.path.join(self.worktree_base, self.project_name)
        return self.project_path

    def worktree_path(self, branch: str) -> str:
        from arbor.project.placement import worktree_path
        return worktree_path(self, branch)

    def is_in_worktree(self) -> bool:
        from arbor.project.placement import is_in_worktree
        return is_in_worktree(self)
