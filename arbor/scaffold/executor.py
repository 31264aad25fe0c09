"""Sequential execution of an assembled step list."""

from dataclasses import dataclass
from typing import List, Optional

from arbor.exceptions import StepFailedError
from arbor.logging_config import get_logger
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step
from arbor.ui import console

logger = get_logger(__name__)

STATUS_EXECUTED = "executed"
STATUS_WOULD_EXECUTE = "would_execute"
STATUS_SKIPPED_DISABLED = "skipped_disabled"
STATUS_SKIPPED_CONDITION = "skipped_condition"
STATUS_FAILED = "failed"


@dataclass
class ExecutionResult:
    """What happened to one step."""

    step: Step
    status: str
    error: Optional[BaseException] = None

    @property
    def skipped(self) -> bool:
        return self.status in (STATUS_SKIPPED_DISABLED, STATUS_SKIPPED_CONDITION)


class StepExecutor:
    """Runs steps one at a time in declaration order.

    The first failing step aborts the run; steps that already ran are not
    rolled back.
    """

    def __init__(self, steps: List[Step], ctx: ScaffoldContext, opts: StepOptions):
        self.steps = list(steps)
        self.ctx = ctx
        self.opts = opts
        self.results: List[ExecutionResult] = []

    def execute(self) -> List[ExecutionResult]:
        """Run every step.

        Returns:
            One ExecutionResult per step that was reached

        Raises:
            StepFailedError: Wrapping the first step error
        """
        self.results = []
        for step in self.steps:
            self._execute_step(step)
        return self.results

    def _execute_step(self, step: Step) -> None:
        if not step.is_enabled():
            logger.debug(f"Step {step.name} disabled")
            if self.opts.verbose:
                console.print_info(f"Skipping step (disabled): {step.name}")
            self.results.append(ExecutionResult(step, STATUS_SKIPPED_DISABLED))
            return

        if not step.condition(self.ctx):
            logger.debug(f"Step {step.name} condition not met")
            if self.opts.verbose:
                console.print_info(f"Skipping step (condition not met): {step.name}")
            self.results.append(ExecutionResult(step, STATUS_SKIPPED_CONDITION))
            return

        if self.opts.dry_run:
            console.print_info(f"[DRY-RUN] Would execute: {step.describe()}")
            self.results.append(ExecutionResult(step, STATUS_WOULD_EXECUTE))
            return

        if not self.opts.quiet:
            console.print_info(f"Running {step.describe()}")
        try:
            step.run(self.ctx, self.opts)
        except Exception as e:
            self.results.append(ExecutionResult(step, STATUS_FAILED, e))
            logger.debug(f"Step {step.name} failed: {e}")
            raise StepFailedError(step.name, e) from e

        self.results.append(ExecutionResult(step, STATUS_EXECUTED))
