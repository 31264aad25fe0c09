"""Condition predicates gating scaffold steps."""

import os
import platform
import shutil
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Tuple

from arbor.constants import (
    CONDITION_COMMAND_EXISTS,
    CONDITION_ENV_EXISTS,
    CONDITION_ENV_FILE_CONTAINS,
    CONDITION_ENV_FILE_MISSING,
    CONDITION_FILE_EXISTS,
    CONDITION_NOT,
    CONDITION_OS,
    DEFAULT_ENV_FILE,
)
from arbor.exceptions import ConditionError
from arbor.utils.env_file import read_env_file

if TYPE_CHECKING:
    from arbor.scaffold.context import ScaffoldContext


def _names(key: str, value: Any) -> List[str]:
    """Normalize a string-or-list argument."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConditionError(f"{key} expects a string or a list of strings, got {value!r}")


def current_os() -> str:
    """Runtime OS identifier: ``darwin``, ``linux`` or ``windows``."""
    return platform.system().lower()


def missing_files(value: Any, ctx: "ScaffoldContext") -> List[str]:
    return [
        name for name in _names(CONDITION_FILE_EXISTS, value)
        if not os.path.exists(os.path.join(ctx.worktree_path, name))
    ]


def missing_commands(value: Any, ctx: "ScaffoldContext") -> List[str]:
    path = ctx.process_env().get("PATH")
    return [name for name in _names(CONDITION_COMMAND_EXISTS, value) if shutil.which(name, path=path) is None]


def missing_env(value: Any, ctx: "ScaffoldContext") -> List[str]:
    env = ctx.process_env()
    return [name for name in _names(CONDITION_ENV_EXISTS, value) if name not in env]


def _env_file_target(value: Any) -> Tuple[str, str]:
    """(file, key) from ``{file, key}`` or a bare key (meaning ``.env``)."""
    if isinstance(value, str):
        return DEFAULT_ENV_FILE, value
    if isinstance(value, Mapping):
        key = value.get("key")
        if not isinstance(key, str) or not key:
            raise ConditionError(f"{CONDITION_ENV_FILE_CONTAINS} requires a key, got {value!r}")
        file = value.get("file") or DEFAULT_ENV_FILE
        return str(file), key
    raise ConditionError(f"expected a key or a {{file, key}} mapping, got {value!r}")


def _env_file_value(value: Any, ctx: "ScaffoldContext") -> str:
    file, key = _env_file_target(value)
    return read_env_file(ctx.worktree_path, file).get(key, "")


def _env_file_contains(value: Any, ctx: "ScaffoldContext") -> bool:
    current = _env_file_value(value, ctx)
    if not current:
        return False
    # Optional exact match: {file, key, value}
    if isinstance(value, Mapping) and "value" in value:
        return current == str(value["value"])
    return True


def _env_file_missing(value: Any, ctx: "ScaffoldContext") -> bool:
    current = _env_file_value(value, ctx)
    return not current


def _os_matches(value: Any, ctx: "ScaffoldContext") -> bool:
    return current_os() in [name.lower() for name in _names(CONDITION_OS, value)]


def _not(value: Any, ctx: "ScaffoldContext") -> bool:
    if not isinstance(value, Mapping):
        raise ConditionError(f"{CONDITION_NOT} expects a condition map, got {value!r}")
    return not evaluate(value, ctx)


PREDICATES: Dict[str, Callable[[Any, "ScaffoldContext"], bool]] = {
    CONDITION_FILE_EXISTS: lambda value, ctx: not missing_files(value, ctx),
    CONDITION_COMMAND_EXISTS: lambda value, ctx: not missing_commands(value, ctx),
    CONDITION_ENV_EXISTS: lambda value, ctx: not missing_env(value, ctx),
    CONDITION_ENV_FILE_CONTAINS: _env_file_contains,
    CONDITION_ENV_FILE_MISSING: _env_file_missing,
    CONDITION_OS: _os_matches,
    CONDITION_NOT: _not,
}


def evaluate(condition: Mapping[str, Any], ctx: "ScaffoldContext") -> bool:
    """Evaluate every predicate in ``condition``; all must hold.

    An empty condition is true.

    Raises:
        ConditionError: For an unknown predicate or a malformed argument
        OSError: If an env file exists but cannot be read
    """
    for key, value in condition.items():
        predicate = PREDICATES.get(key)
        if predicate is None:
            raise ConditionError(f"unknown condition '{key}'")
        if not predicate(value, ctx):
            return False
    return True


def preflight_failures(
    condition: Mapping[str, Any], ctx: "ScaffoldContext"
) -> Tuple[List[str], List[str], List[str], List[str]]:
    """Check a pre-flight condition, collecting everything that is missing.

    Unlike :func:`evaluate` this does not stop at the first failure.

    Returns:
        Tuple of (missing env vars, missing commands, missing files, other
        failed predicate names)

    Raises:
        ConditionError: For an unknown predicate or a malformed argument
    """
    env: List[str] = []
    commands: List[str] = []
    files: List[str] = []
    other: List[str] = []

    for key, value in condition.items():
        if key == CONDITION_ENV_EXISTS:
            env.extend(missing_env(value, ctx))
        elif key == CONDITION_COMMAND_EXISTS:
            commands.extend(missing_commands(value, ctx))
        elif key == CONDITION_FILE_EXISTS:
            files.extend(missing_files(value, ctx))
        else:
            predicate = PREDICATES.get(key)
            if predicate is None:
                raise ConditionError(f"unknown condition '{key}'")
            if not predicate(value, ctx):
                other.append(key)

    return env, commands, files, other
