"""Shared state threaded through one scaffold run."""

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from arbor.scaffold.conditions import evaluate
from arbor.scaffold.template import expand
from arbor.utils.paths import sanitize_site_name


@dataclass
class StepOptions:
    """How the pipeline should run its steps."""

    dry_run: bool = False
    verbose: bool = False
    quiet: bool = False
    args: List[str] = field(default_factory=list)


class ScaffoldContext:
    """Carrier of a worktree's fixed attributes plus the values steps produce.

    ``db_suffix`` and ``vars`` may be read and written from several threads;
    every access goes through one lock. Template expansion works on a
    snapshot so later writes never change a string mid-expansion.
    """

    def __init__(
        self,
        worktree_path: str,
        branch: str = "",
        repo_name: str = "",
        site_name: str = "",
        preset: str = "",
        db_suffix: str = "",
        env: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize the context.

        Args:
            worktree_path: Absolute path of the worktree being scaffolded
            branch: Branch checked out in the worktree
            repo_name: Project or repository name
            site_name: Site name used for databases and local domains
            preset: Name of the active preset, if any
            db_suffix: Suffix already assigned to this worktree
            env: Extra environment variables for subprocesses
            cancel_event: Set to abort running subprocesses
        """
        self.worktree_path = os.path.abspath(worktree_path)
        self.branch = branch
        self.repo_name = repo_name
        self.site_name = site_name
        self.preset = preset
        self.path = os.path.basename(self.worktree_path)
        self.repo_path = os.path.basename(os.path.dirname(self.worktree_path))
        self.env: Dict[str, str] = dict(env or {})
        self.cancel_event = cancel_event or threading.Event()

        self._lock = threading.Lock()
        self._db_suffix = db_suffix
        self._db_suffix_recorded = False
        self._vars: Dict[str, str] = {}

    def get_db_suffix(self) -> str:
        with self._lock:
            return self._db_suffix

    def set_db_suffix(self, suffix: str, recorded: bool = False) -> None:
        """Set the suffix; ``recorded`` marks one the worktree already owned before this run."""
        with self._lock:
            self._db_suffix = suffix
            self._db_suffix_recorded = recorded

    def is_db_suffix_recorded(self) -> bool:
        with self._lock:
            return self._db_suffix_recorded

    def get_var(self, name: str) -> Optional[str]:
        with self._lock:
            return self._vars.get(name)

    def set_var(self, name: str, value: str) -> None:
        with self._lock:
            self._vars[name] = value

    def vars(self) -> Dict[str, str]:
        """Copy of all variables set by steps."""
        with self._lock:
            return dict(self._vars)

    def snapshot_for_template(self) -> Dict[str, str]:
        """Values available to templates, copied so later writes don't leak in.

        Step variables come first; the built-in names (``Path``,
        ``RepoPath``, ``RepoName``, ``SiteName``, ``Branch``, ``DbSuffix``)
        override a variable of the same name. ``SiteName`` is the
        database-safe form (``My App`` becomes ``my_app``).
        """
        with self._lock:
            snapshot = dict(self._vars)
            snapshot.update(
                {
                    "Path": self.path,
                    "RepoPath": self.repo_path,
                    "RepoName": self.repo_name,
                    "SiteName": sanitize_site_name(self.site_name),
                    "Branch": self.branch,
                    "DbSuffix": self._db_suffix,
                }
            )
        return snapshot

    def expand(self, template: str) -> str:
        """Expand ``template`` against a fresh snapshot."""
        return expand(template, self.snapshot_for_template())

    def process_env(self) -> Dict[str, str]:
        """Environment for subprocesses: the OS environment plus ``env``."""
        merged = dict(os.environ)
        merged.update(self.env)
        return merged

    def evaluate_condition(self, condition: Mapping[str, Any]) -> bool:
        """Evaluate a condition map against this context.

        Raises:
            ConditionError: For unknown predicates or unusable arguments
            OSError: If a file the condition reads cannot be read
        """
        return evaluate(condition, self)
