"""Worktree data models."""

import os
from dataclasses import dataclass


@dataclass
class Worktree:
    """A git worktree attached to a project."""

    path: str  # Absolute path
    branch: str
    is_main: bool = False  # Checked out on the project's default branch
    is_current: bool = False  # Same directory as the caller's cwd
    is_merged: bool = False  # Fully absorbed into the default branch

    @property
    def name(self) -> str:
        """Directory name of the worktree."""
        return os.path.basename(self.path.rstrip(os.sep))

    def __str__(self) -> str:
        """String representation of worktree."""
        flags = []
        if self.is_current:
            flags.append("current")
        if self.is_main:
            flags.append("main")
        if self.is_merged:
            flags.append("merged")
        marker = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.branch} @ {self.path}{marker}"
