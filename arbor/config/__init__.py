"""Configuration files: project arbor.yaml, global arbor.yaml and .arbor.local."""

from .project import (
    CleanupStep,
    PreFlight,
    ProjectConfig,
    ScaffoldConfig,
    StepConfig,
    SyncConfig,
    ToolConfig,
    load_project,
    save_project,
)
from .global_config import (
    GlobalConfig,
    ProjectInfo,
    global_config_dir,
    load_global_config,
    load_or_create_global_config,
    save_global_config,
)
from .local_state import LocalState, read_local_state, write_local_state
from .migration import migrate_db_suffix_to_local

__all__ = [
    "CleanupStep",
    "PreFlight",
    "ProjectConfig",
    "ScaffoldConfig",
    "StepConfig",
    "SyncConfig",
    "ToolConfig",
    "load_project",
    "save_project",
    "GlobalConfig",
    "ProjectInfo",
    "global_config_dir",
    "load_global_config",
    "load_or_create_global_config",
    "save_global_config",
    "LocalState",
    "read_local_state",
    "write_local_state",
    "migrate_db_suffix_to_local",
]
