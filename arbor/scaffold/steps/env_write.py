"""env.write: set one key in an env file."""

from arbor.constants import DEFAULT_ENV_FILE
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step
from arbor.ui import console
from arbor.utils.env_file import write_env_value


class EnvWriteStep(Step):
    """Write ``key=value`` (value template-expanded) into ``file``.

    Writes to the same file are serialized and atomic, see
    :func:`arbor.utils.env_file.write_env_values`.
    """

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        value = ctx.expand(self.config.value)
        target = self.resolve(ctx, self.config.file or DEFAULT_ENV_FILE)
        write_env_value(target, self.config.key, value)
        if opts.verbose:
            console.print_step(f"{self.config.key}={value}")

    def describe(self) -> str:
        return f"{self.name} {self.config.key}"
