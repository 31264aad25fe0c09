"""Shared constants for arbor."""

from typing import List


# Exit codes returned to the shell
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_INVALID_ARGUMENTS = 2
EXIT_WORKTREE_NOT_FOUND = 3
EXIT_GIT_OPERATION_FAILED = 4
EXIT_CONFIGURATION_ERROR = 5
EXIT_SCAFFOLD_STEP_FAILED = 6


# File and directory names
PROJECT_CONFIG_FILE = "arbor.yaml"
GLOBAL_CONFIG_FILE = "arbor.yaml"
GLOBAL_CONFIG_DIR_NAME = "arbor"
LOCAL_STATE_FILE = ".arbor.local"
BARE_DIR = ".bare"
DEFAULT_ENV_FILE = ".env"

ARBOR_HOME = "~/.arbor"
LOG_FILE_NAME = "arbor.log"

# Used by `link` when the global config has no worktree_base yet
DEFAULT_WORKTREE_BASE = "~/.arbor/worktrees"


# Branch defaults
DEFAULT_BRANCH = "main"
DEFAULT_BRANCH_CANDIDATES: List[str] = ["main", "master", "develop"]
DEFAULT_REMOTE = "origin"


# Condition keys understood by the condition evaluator
CONDITION_FILE_EXISTS = "file_exists"
CONDITION_COMMAND_EXISTS = "command_exists"
CONDITION_ENV_EXISTS = "env_exists"
CONDITION_ENV_FILE_CONTAINS = "env_file_contains"
CONDITION_ENV_FILE_MISSING = "env_file_missing"
CONDITION_OS = "os"
CONDITION_NOT = "not"


# Worktree sort keys
SORT_KEYS: List[str] = ["name", "branch", "created"]


# Database naming
DB_NAME_MAX_LENGTH = 63  # PostgreSQL identifier limit
DB_CREATE_MAX_ATTEMPTS = 5
