"""Core functionality for arbor."""

from .arbor import Arbor, RepairResult

__all__ = ["Arbor", "RepairResult"]
