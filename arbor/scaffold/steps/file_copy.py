"""file.copy: copy a file inside the worktree."""

import os

from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step


class FileCopyStep(Step):
    """Copy ``from`` to ``to`` (both relative to the worktree) with mode 0644.

    The target is written in place, not atomically.
    """

    def default_condition(self, ctx: ScaffoldContext) -> bool:
        return bool(self.config.from_) and os.path.exists(self.resolve(ctx, self.config.from_))

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        src = self.resolve(ctx, self.config.from_)
        dst = self.resolve(ctx, self.config.to)
        with open(src, "rb") as f:
            data = f.read()
        os.makedirs(os.path.dirname(dst), exist_ok=True)
        with open(dst, "wb") as f:
            f.write(data)
        os.chmod(dst, 0o644)

    def describe(self) -> str:
        return f"{self.name} {self.config.from_} -> {self.config.to}"
