"""Custom exceptions for arbor"""

from typing import Iterable, List, Optional

from arbor.constants import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERAL_ERROR,
    EXIT_GIT_OPERATION_FAILED,
    EXIT_SCAFFOLD_STEP_FAILED,
    EXIT_WORKTREE_NOT_FOUND,
)


class ArborError(Exception):
    """Base exception for all arbor errors."""

    exit_code = EXIT_GENERAL_ERROR


class NotFoundError(ArborError):
    """Something the command needs could not be found."""
    pass


class ProjectNotFoundError(NotFoundError):
    """Raised when the current directory is not inside an Arbor project."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        message = "not inside an Arbor project"
        if path:
            message += f" ({path})"
        super().__init__(message)


class WorktreeNotFoundError(NotFoundError):
    """Raised when no worktree matches a query."""

    exit_code = EXIT_WORKTREE_NOT_FOUND

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"no worktree found matching '{query}'")


class EnvKeyNotFoundError(NotFoundError):
    """Raised when a key is missing from an env file."""

    def __init__(self, keys: Iterable[str], file: str):
        self.keys = list(keys)
        self.file = file
        if len(self.keys) == 1:
            message = f"key '{self.keys[0]}' not found in {file}"
        else:
            message = f"keys not found in {file}: {', '.join(self.keys)}"
        super().__init__(message)


class AmbiguousWorktreeError(ArborError):
    """Raised when a partial query matches more than one worktree."""

    exit_code = EXIT_WORKTREE_NOT_FOUND

    def __init__(self, query: str, names: List[str]):
        self.query = query
        self.names = names
        super().__init__(f"multiple worktrees match '{query}': {', '.join(names)}")


class ConfigError(ArborError):
    """Raised for malformed or conflicting configuration."""

    exit_code = EXIT_CONFIGURATION_ERROR


class GitOperationError(ArborError):
    """Exception raised for errors in Git operations."""

    exit_code = EXIT_GIT_OPERATION_FAILED

    def __init__(self, operation: str, path: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.path = path
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if path:
            error_msg += f" for '{path}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class TemplateError(ArborError):
    """Raised when a template string references an unknown or malformed variable."""
    pass


class ConditionError(ArborError):
    """Raised when a condition map cannot be evaluated."""
    pass


class CommandCancelledError(ArborError):
    """Raised when a subprocess is cancelled or exceeds its deadline."""

    def __init__(self, command: str, reason: str = "cancelled"):
        self.command = command
        self.reason = reason
        super().__init__(f"{command}: {reason}")


class StepFailedError(ArborError):
    """Raised by the pipeline when a scaffold step returns an error."""

    exit_code = EXIT_SCAFFOLD_STEP_FAILED

    def __init__(self, step_name: str, cause: BaseException):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"step {step_name} failed: {cause}")


class PreflightFailedError(ArborError):
    """Raised when pre-flight checks fail before any scaffold step runs."""

    exit_code = EXIT_SCAFFOLD_STEP_FAILED

    def __init__(
        self,
        missing_env: Optional[List[str]] = None,
        missing_commands: Optional[List[str]] = None,
        missing_files: Optional[List[str]] = None,
        reason: Optional[str] = None,
    ):
        self.missing_env = missing_env or []
        self.missing_commands = missing_commands or []
        self.missing_files = missing_files or []
        self.reason = reason

        parts = []
        if self.missing_env:
            parts.append("Missing environment variables:\n  - " + "\n  - ".join(self.missing_env))
        if self.missing_commands:
            parts.append("Missing commands:\n  - " + "\n  - ".join(self.missing_commands))
        if self.missing_files:
            parts.append("Missing files:\n  - " + "\n  - ".join(self.missing_files))

        if parts:
            message = (
                "pre-flight checks failed:\n\n"
                + "\n\n".join(parts)
                + "\n\nPlease resolve these issues and try again"
            )
        elif reason:
            message = f"pre-flight checks failed: {reason}"
        else:
            message = "pre-flight checks failed"

        super().__init__(message)


class UserAbortedError(ArborError):
    """Raised when the user cancels an interactive prompt."""

    def __init__(self):
        super().__init__("user aborted")


class CommandFailedError(ArborError):
    """Raised when an external command run by a step exits non-zero."""

    def __init__(self, command: str, returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        message = f"{command} exited with status {returncode}"
        if output.strip():
            message += f": {output.strip()}"
        super().__init__(message)
