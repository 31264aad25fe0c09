"""env.copy: copy keys from another env file into the worktree's."""

import os
from typing import Dict, List

from arbor.constants import DEFAULT_ENV_FILE
from arbor.exceptions import ConfigError, EnvKeyNotFoundError
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step
from arbor.utils.env_file import read_env_file, write_env_values


class EnvCopyStep(Step):
    """Copy ``key``/``keys`` from ``source/source_file`` into ``file``.

    Either every requested key is copied or, when one is missing from the
    source, nothing is written.
    """

    def _keys(self) -> List[str]:
        keys = list(self.config.keys)
        if self.config.key and self.config.key not in keys:
            keys.insert(0, self.config.key)
        return keys

    def _source_path(self, ctx: ScaffoldContext) -> str:
        source = ctx.expand(self.config.source)
        if not os.path.isabs(source):
            source = os.path.join(ctx.worktree_path, source)
        return os.path.join(source, self.config.source_file or DEFAULT_ENV_FILE)

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        keys = self._keys()
        if not keys:
            raise ConfigError(f"{self.name} requires key or keys")

        source_path = self._source_path(ctx)
        if not os.path.isfile(source_path):
            raise FileNotFoundError(f"source env file not found: {source_path}")

        source = read_env_file(os.path.dirname(source_path), os.path.basename(source_path))
        missing = [k for k in keys if k not in source]
        if missing:
            raise EnvKeyNotFoundError(missing, source_path)

        values: Dict[str, str] = {k: source[k] for k in keys}
        target = self.resolve(ctx, self.config.file or DEFAULT_ENV_FILE)
        write_env_values(target, values)

    def describe(self) -> str:
        return f"{self.name} {', '.join(self._keys())}"
