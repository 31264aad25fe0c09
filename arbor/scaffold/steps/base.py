"""The contract every scaffold step implements."""

import os
from typing import List, Optional

from arbor.config.project import StepConfig
from arbor.exceptions import ArborError, CommandFailedError
from arbor.logging_config import get_logger
from arbor.scaffold.commander import Commander, CommandResult
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.ui import console

logger = get_logger(__name__)


class Step:
    """A unit of scaffold work built from a StepConfig.

    Subclasses implement :meth:`run` and may override
    :meth:`default_condition`, which applies when the config carries no
    structured condition.
    """

    def __init__(self, config: StepConfig, commander: Optional[Commander] = None):
        self.config = config
        self.commander = commander or Commander()

    @property
    def name(self) -> str:
        return self.config.name

    def is_enabled(self) -> bool:
        return self.config.is_enabled()

    def condition(self, ctx: ScaffoldContext) -> bool:
        """Whether the step should run.

        A structured condition that cannot be evaluated counts as false.
        """
        if self.config.condition:
            try:
                return ctx.evaluate_condition(self.config.condition)
            except (ArborError, OSError) as e:
                logger.warning(f"Condition for {self.name} could not be evaluated: {e}")
                return False
        return self.default_condition(ctx)

    def default_condition(self, ctx: ScaffoldContext) -> bool:
        return True

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        """Short human description used for dry runs and progress output."""
        return self.name

    def resolve(self, ctx: ScaffoldContext, relative: str) -> str:
        """A path relative to the worktree (absolute paths pass through)."""
        return os.path.join(ctx.worktree_path, relative)

    def run_command(self, ctx: ScaffoldContext, opts: StepOptions, args: List[str]) -> CommandResult:
        """Run ``args`` in the worktree; non-zero exit raises CommandFailedError."""
        if opts.verbose:
            console.print_step(f"$ {' '.join(args)}")
        result = self.commander.run(
            args,
            cwd=ctx.worktree_path,
            env=ctx.process_env(),
            cancel_event=ctx.cancel_event,
        )
        if opts.verbose and result.output.strip():
            for line in result.output.rstrip().splitlines():
                console.print_step(line)
        if not result.ok:
            raise CommandFailedError(" ".join(args), result.returncode, result.output)
        return result

    def store_output(self, ctx: ScaffoldContext, result: CommandResult) -> None:
        """Put trimmed output into ``vars[store_as]`` when configured."""
        if self.config.store_as:
            ctx.set_var(self.config.store_as, result.output.strip())
