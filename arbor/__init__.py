"""
arbor - Parallel git worktrees with per-worktree project scaffolding
"""

from .__version__ import __version__
from .core import Arbor
from .cli.main import main

__all__ = ["Arbor", "main", "__version__"]
