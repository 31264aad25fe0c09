"""env.read: load a value from an env file into a template variable."""

from arbor.constants import DEFAULT_ENV_FILE
from arbor.exceptions import EnvKeyNotFoundError
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step
from arbor.utils.env_file import read_env_file


class EnvReadStep(Step):
    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        file = self.config.file or DEFAULT_ENV_FILE
        values = read_env_file(ctx.worktree_path, file)
        key = self.config.key
        if key not in values:
            raise EnvKeyNotFoundError([key], file)
        ctx.set_var(self.config.store_as or key, values[key])

    def describe(self) -> str:
        return f"{self.name} {self.config.key}"
