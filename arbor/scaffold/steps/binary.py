"""Steps that invoke a tool binary (composer, npm, artisan, herd, ...)."""

import shutil
from typing import List, Optional

from arbor.config.project import StepConfig
from arbor.scaffold.commander import Commander
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step

# Cleanup entries named after these kinds with no args get this default
DEFAULT_CLEANUP_ARGS = {
    "herd": ["unlink"],
}


class BinaryStep(Step):
    """Run ``binary`` followed by the step's template-expanded args.

    ``binary`` may hold several words (``php artisan``). Without a
    structured condition the step only runs when the first word is on PATH.
    """

    def __init__(self, config: StepConfig, binary: str, commander: Optional[Commander] = None):
        super().__init__(config, commander)
        self.binary = binary

    def default_condition(self, ctx: ScaffoldContext) -> bool:
        program = self.binary.split()[0]
        return shutil.which(program, path=ctx.process_env().get("PATH")) is not None

    def command_args(self, ctx: ScaffoldContext, opts: StepOptions) -> List[str]:
        args = self.binary.split()
        args.extend(ctx.expand(arg) for arg in [*self.config.args, *opts.args])
        return args

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        result = self.run_command(ctx, opts, self.command_args(ctx, opts))
        self.store_output(ctx, result)

    def describe(self) -> str:
        return " ".join([self.binary, *self.config.args])
