"""The scaffold pipeline: steps, conditions, templates and presets glue."""

from .context import ScaffoldContext, StepOptions
from .executor import ExecutionResult, StepExecutor
from .manager import ScaffoldManager
from .registry import StepRegistry, default_registry

__all__ = [
    "ScaffoldContext",
    "StepOptions",
    "ExecutionResult",
    "StepExecutor",
    "ScaffoldManager",
    "StepRegistry",
    "default_registry",
]
