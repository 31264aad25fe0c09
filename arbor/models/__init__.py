"""Data models for arbor."""

from .worktree import Worktree

__all__ = ["Worktree"]
