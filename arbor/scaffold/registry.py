"""Name-to-factory registry for scaffold step kinds."""

import threading
from functools import partial
from typing import Callable, Dict, List, Optional

from arbor.config.project import StepConfig
from arbor.exceptions import ConfigError
from arbor.scaffold.commander import Commander
from arbor.scaffold.steps import (
    BinaryStep,
    DbCreateStep,
    DbDestroyStep,
    EnvCopyStep,
    EnvReadStep,
    EnvWriteStep,
    FileCopyStep,
    ShellStep,
    Step,
)

StepFactory = Callable[[StepConfig, Optional[Commander]], Step]

# Step kind -> program (plus leading words) it invokes
BINARY_STEPS: Dict[str, str] = {
    "php": "php",
    "php.composer": "composer",
    "php.laravel.artisan": "php artisan",
    "node.npm": "npm",
    "node.yarn": "yarn",
    "node.pnpm": "pnpm",
    "node.bun": "bun",
    "herd": "herd",
}

# Step kind -> shell that receives ``-c <command>``
SHELL_STEPS: Dict[str, str] = {
    "bash.run": "bash",
    "command.run": "sh",
}


class StepRegistry:
    """Maps step names to factories building Step objects from StepConfig."""

    def __init__(self):
        self._factories: Dict[str, StepFactory] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: StepFactory) -> None:
        with self._lock:
            self._factories[name] = factory

    def create(self, config: StepConfig, commander: Optional[Commander] = None) -> Step:
        """Build the step named by ``config.name``.

        Raises:
            ConfigError: If no step kind of that name is registered
        """
        with self._lock:
            factory = self._factories.get(config.name)
        if factory is None:
            raise ConfigError(f"unknown step type '{config.name}'")
        return factory(config, commander)

    def list_registered(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)


def default_registry() -> StepRegistry:
    """A registry holding every built-in step kind."""
    registry = StepRegistry()

    registry.register("file.copy", FileCopyStep)
    registry.register("env.read", EnvReadStep)
    registry.register("env.write", EnvWriteStep)
    registry.register("env.copy", EnvCopyStep)
    registry.register("db.create", DbCreateStep)
    registry.register("db.destroy", DbDestroyStep)

    for name, binary in BINARY_STEPS.items():
        registry.register(name, partial(_binary_step, binary=binary))
    for name, shell in SHELL_STEPS.items():
        registry.register(name, partial(_shell_step, shell=shell))

    return registry


def _binary_step(config: StepConfig, commander: Optional[Commander] = None, *, binary: str) -> Step:
    return BinaryStep(config, binary, commander)


def _shell_step(config: StepConfig, commander: Optional[Commander] = None, *, shell: str) -> Step:
    return ShellStep(config, shell, commander)
