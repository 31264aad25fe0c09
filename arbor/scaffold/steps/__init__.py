"""Built-in scaffold step implementations."""

from .base import Step
from .binary import BinaryStep
from .database import DbCreateStep, DbDestroyStep
from .env_copy import EnvCopyStep
from .env_read import EnvReadStep
from .env_write import EnvWriteStep
from .file_copy import FileCopyStep
from .shell import ShellStep

__all__ = [
    "Step",
    "BinaryStep",
    "DbCreateStep",
    "DbDestroyStep",
    "EnvCopyStep",
    "EnvReadStep",
    "EnvWriteStep",
    "FileCopyStep",
    "ShellStep",
]
