"""Preset registration and scaffold / cleanup pipeline assembly."""

import threading
from typing import Dict, List, Mapping, Optional

from arbor.config.local_state import LocalState, read_local_state, write_local_state
from arbor.config.migration import migrate_db_suffix_to_local
from arbor.config.project import CleanupStep, ProjectConfig, ScaffoldConfig, StepConfig
from arbor.exceptions import ConfigError, PreflightFailedError
from arbor.logging_config import get_logger
from arbor.scaffold.commander import Commander
from arbor.scaffold.conditions import preflight_failures
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.executor import ExecutionResult, StepExecutor
from arbor.scaffold.registry import StepRegistry, default_registry
from arbor.scaffold.steps.base import Step
from arbor.scaffold.steps.binary import DEFAULT_CLEANUP_ARGS
from arbor.scaffold.words import generate_suffix
from arbor.ui import console

logger = get_logger(__name__)


class ScaffoldManager:
    """Knows the presets and turns configuration into runnable pipelines.

    Presets are consulted in registration order when detecting which one
    applies to a worktree.
    """

    def __init__(self, registry: Optional[StepRegistry] = None, commander: Optional[Commander] = None):
        """Initialize the manager.

        Args:
            registry: Step kinds available to configs; the built-ins by default
            commander: Command runner handed to every step
        """
        self.registry = registry or default_registry()
        self.commander = commander or Commander()
        self._presets: Dict[str, object] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    # Presets

    def register_preset(self, preset) -> None:
        with self._lock:
            if preset.name not in self._presets:
                self._order.append(preset.name)
            self._presets[preset.name] = preset

    def get_preset(self, name: str):
        with self._lock:
            return self._presets.get(name)

    def list_presets(self) -> List[str]:
        with self._lock:
            return list(self._order)

    def detect_preset(self, path: str) -> str:
        """Name of the first registered preset that recognises ``path``, or ""."""
        with self._lock:
            presets = [self._presets[name] for name in self._order]
        for preset in presets:
            if preset.detect(path):
                logger.debug(f"Detected preset {preset.name} for {path}")
                return preset.name
        return ""

    def _preset_for(self, config: ProjectConfig, worktree_path: str, preset: str = ""):
        name = preset or config.preset or self.detect_preset(worktree_path)
        if not name:
            return None
        found = self.get_preset(name)
        if found is None:
            raise ConfigError(f"unknown preset '{name}'")
        return found

    # Pipeline assembly

    def _build(self, configs: List[StepConfig]) -> List[Step]:
        steps = []
        for step_config in configs:
            try:
                steps.append(self.registry.create(step_config, self.commander))
            except ConfigError as e:
                raise ConfigError(f"creating step '{step_config.name}': {e}") from e
        return steps

    def steps_for_worktree(self, config: ProjectConfig, worktree_path: str, preset: str = "") -> List[Step]:
        """Scaffold steps: preset defaults then project steps, or project steps
        alone when ``scaffold.override`` is set."""
        project_steps = list(config.scaffold.steps)
        if config.scaffold.override:
            return self._build(project_steps)

        found = self._preset_for(config, worktree_path, preset)
        preset_steps = list(found.default_steps()) if found is not None else []
        return self._build(preset_steps + project_steps)

    @staticmethod
    def cleanup_to_step_config(cleanup: CleanupStep) -> StepConfig:
        """Turn a cleanup record into a StepConfig.

        ``herd`` gets ``unlink`` as its argument and a ``command`` entry in
        the condition becomes the step's command.
        """
        return StepConfig(
            name=cleanup.name,
            args=list(DEFAULT_CLEANUP_ARGS.get(cleanup.name, [])),
            command=cleanup.condition_string("command"),
        )

    def cleanup_steps(self, config: ProjectConfig, worktree_path: str, preset: str = "") -> List[Step]:
        """Cleanup steps, merged against the preset's list like scaffold steps."""
        project_cleanup = list(config.cleanup_steps)
        if config.scaffold.override:
            records = project_cleanup
        else:
            found = self._preset_for(config, worktree_path, preset)
            records = (list(found.cleanup_steps()) if found is not None else []) + project_cleanup
        return self._build([self.cleanup_to_step_config(record) for record in records])

    # Running

    @staticmethod
    def run_preflight(scaffold: ScaffoldConfig, ctx: ScaffoldContext) -> None:
        """Check ``scaffold.pre_flight``; nothing runs unless every check passes.

        Raises:
            PreflightFailedError: Listing every missing env var, command and file
            ConditionError: If the pre-flight condition is malformed
        """
        if scaffold.pre_flight is None or not scaffold.pre_flight.condition:
            return
        env, commands, files, other = preflight_failures(scaffold.pre_flight.condition, ctx)
        if env or commands or files or other:
            reason = f"conditions not met: {', '.join(other)}" if other else None
            raise PreflightFailedError(env, commands, files, reason)

    def _context(
        self,
        worktree_path: str,
        branch: str,
        repo_name: str,
        site_name: str,
        preset: str,
        env: Optional[Mapping[str, str]],
        cancel_event: Optional[threading.Event],
    ) -> ScaffoldContext:
        return ScaffoldContext(
            worktree_path,
            branch=branch,
            repo_name=repo_name,
            site_name=site_name,
            preset=preset,
            env=env,
            cancel_event=cancel_event,
        )

    def seed_db_suffix(self, ctx: ScaffoldContext, dry_run: bool = False) -> str:
        """Load the worktree's suffix, generating and saving one if it has none.

        Only a suffix read back from ``.arbor.local`` is marked as recorded;
        db.create may replace a freshly generated one on collision.
        """
        suffix = read_local_state(ctx.worktree_path).db_suffix
        recorded = bool(suffix)
        if not suffix:
            suffix = generate_suffix()
            if not dry_run:
                write_local_state(ctx.worktree_path, LocalState(db_suffix=suffix))
        ctx.set_db_suffix(suffix, recorded=recorded)
        return suffix

    def run_scaffold(
        self,
        worktree_path: str,
        branch: str,
        repo_name: str,
        site_name: str,
        preset: str,
        config: ProjectConfig,
        opts: Optional[StepOptions] = None,
        env: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ExecutionResult]:
        """Run the scaffold pipeline for one worktree.

        Order: migrate a legacy ``db_suffix``, seed the context's suffix,
        pre-flight, then the steps. Dry runs touch no files.

        Args:
            worktree_path: Worktree to scaffold
            branch: Branch checked out there
            repo_name: Project name
            site_name: Site name for databases and local domains
            preset: Preset to use; the configured or detected one when empty
            config: Project configuration
            opts: Pipeline options
            env: Extra environment for subprocesses
            cancel_event: Cancels the running subprocess when set

        Returns:
            Per-step results

        Raises:
            PreflightFailedError: If pre-flight checks fail
            StepFailedError: If a step fails
            ConfigError: For unknown steps or presets
        """
        opts = opts or StepOptions()
        found = self._preset_for(config, worktree_path, preset)
        preset_name = found.name if found is not None else ""
        ctx = self._context(worktree_path, branch, repo_name, site_name, preset_name, env, cancel_event)

        if not opts.dry_run and migrate_db_suffix_to_local(worktree_path):
            console.print_info("Moved db_suffix from arbor.yaml to .arbor.local")
        self.seed_db_suffix(ctx, dry_run=opts.dry_run)

        self.run_preflight(config.scaffold, ctx)

        steps = self.steps_for_worktree(config, worktree_path, preset_name)
        logger.debug(f"Scaffolding {worktree_path} with {len(steps)} steps")
        return StepExecutor(steps, ctx, opts).execute()

    def run_cleanup(
        self,
        worktree_path: str,
        branch: str,
        repo_name: str,
        site_name: str,
        preset: str,
        config: ProjectConfig,
        opts: Optional[StepOptions] = None,
        env: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ExecutionResult]:
        """Run the cleanup pipeline for a worktree about to be removed."""
        opts = opts or StepOptions()
        found = self._preset_for(config, worktree_path, preset)
        preset_name = found.name if found is not None else ""
        ctx = self._context(worktree_path, branch, repo_name, site_name, preset_name, env, cancel_event)

        steps = self.cleanup_steps(config, worktree_path, preset_name)
        logger.debug(f"Cleaning up {worktree_path} with {len(steps)} steps")
        return StepExecutor(steps, ctx, opts).execute()
