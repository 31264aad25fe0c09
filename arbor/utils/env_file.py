"""Reading and atomically updating dotenv-style ``KEY=VALUE`` files."""

import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Mapping, Union

from arbor.constants import DEFAULT_ENV_FILE
from arbor.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_file_locks: Dict[str, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def parse_env(text: str) -> Dict[str, str]:
    """Parse env file content into a dict.

    Blank lines and ``#`` comments are skipped, each remaining line is split
    on its first ``=`` and both sides are stripped. Lines without ``=`` are
    dropped.
    """
    values: Dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        values[key.strip()] = value.strip()
    return values


def read_env_file(directory: PathLike, filename: str = DEFAULT_ENV_FILE) -> Dict[str, str]:
    """Read ``directory/filename`` as an env file.

    Returns:
        The parsed key/value pairs, or an empty dict when the file is missing
    """
    path = Path(directory) / filename
    if not path.exists():
        return {}
    return parse_env(path.read_text(encoding="utf-8"))


def update_env_content(content: str, key: str, value: str) -> str:
    """Set ``key`` to ``value`` in env file content.

    The first line starting with ``KEY=`` or ``KEY `` is replaced; every
    other line is kept verbatim. When the key is absent, ``KEY=VALUE`` is
    appended after making sure the content ends with a newline.
    """
    new_line = f"{key}={value}"
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if line.startswith(f"{key}=") or line.startswith(f"{key} "):
            lines[i] = new_line
            return "\n".join(lines)

    if content and not content.endswith("\n"):
        content += "\n"
    return content + new_line + "\n"


def atomic_write_text(path: PathLike, content: str, default_mode: int = 0o644) -> None:
    """Atomically replace ``path`` with ``content``.

    Writes to a uniquely named temp file in the same directory, applies the
    target's existing mode (or ``default_mode`` for a new file) and renames
    it over the target. Parent directories are created as needed.

    Args:
        path: File to write
        content: Full text content
        default_mode: Permission bits used when the file does not exist yet
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        mode = target.stat().st_mode & 0o777
    except FileNotFoundError:
        mode = default_mode

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(target.parent),
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, target)
        tmp_path = None
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def get_file_lock(path: PathLike) -> threading.Lock:
    """Return the process-wide lock guarding writes to ``path``.

    Locks are keyed by absolute path so that relative and absolute
    references to the same file share one lock.
    """
    key = os.path.abspath(str(path))
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _file_locks[key] = lock
        return lock


def write_env_values(path: PathLike, values: Mapping[str, str]) -> None:
    """Apply ``values`` to the env file at ``path`` in one atomic write.

    Creates the file (mode 0644) when it does not exist. Keys are applied
    in mapping order using :func:`update_env_content`.
    """
    target = Path(path)
    with get_file_lock(target):
        content = target.read_text(encoding="utf-8") if target.exists() else ""
        for key, value in values.items():
            content = update_env_content(content, key, value)
        atomic_write_text(target, content)
    logger.debug(f"Wrote {len(values)} key(s) to {target}")


def write_env_value(path: PathLike, key: str, value: str) -> None:
    """Set a single key in the env file at ``path``."""
    write_env_values(path, {key: value})
