"""Per-worktree local state (``.arbor.local``)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from arbor.constants import LOCAL_STATE_FILE
from arbor.exceptions import ConfigError
from arbor.utils.env_file import atomic_write_text


@dataclass
class LocalState:
    """Machine-written state that must never be committed."""

    db_suffix: str = ""


def _read_raw(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"parsing local state {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: local state must be a mapping")
    return data


def read_local_state(worktree_path: Union[str, Path]) -> LocalState:
    """Read ``.arbor.local`` from a worktree.

    A missing file yields an empty LocalState rather than an error.
    """
    path = Path(worktree_path) / LOCAL_STATE_FILE
    if not path.exists():
        return LocalState()
    data = _read_raw(path)
    suffix = data.get("db_suffix")
    return LocalState(db_suffix=str(suffix) if suffix else "")


def write_local_state(worktree_path: Union[str, Path], state: LocalState) -> None:
    """Merge ``state`` into ``.arbor.local``.

    Keys already in the file are kept; an empty value never overwrites an
    existing one.
    """
    path = Path(worktree_path) / LOCAL_STATE_FILE
    existing = _read_raw(path) if path.exists() else {}

    if state.db_suffix:
        existing["db_suffix"] = state.db_suffix

    atomic_write_text(path, yaml.safe_dump(existing, default_flow_style=False, sort_keys=False))
