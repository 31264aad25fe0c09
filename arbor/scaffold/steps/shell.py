"""bash.run and command.run: run a shell command line."""

from typing import Optional

from arbor.config.project import StepConfig
from arbor.exceptions import ConfigError
from arbor.scaffold.commander import Commander
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step


class ShellStep(Step):
    """Run the template-expanded ``command`` through ``shell -c``."""

    def __init__(self, config: StepConfig, shell: str, commander: Optional[Commander] = None):
        super().__init__(config, commander)
        self.shell = shell

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        if not self.config.command:
            raise ConfigError(f"{self.name} requires a command")
        command = ctx.expand(self.config.command)
        result = self.run_command(ctx, opts, [self.shell, "-c", command])
        self.store_output(ctx, result)

    def describe(self) -> str:
        return f"{self.shell} -c {self.config.command!r}"
