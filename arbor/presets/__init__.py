"""Built-in presets."""

from .base import BasePreset
from .laravel import LaravelPreset, LaravelSharedDbPreset
from .php import PhpPreset

__all__ = ["BasePreset", "LaravelPreset", "LaravelSharedDbPreset", "PhpPreset", "register_all"]


def register_all(manager) -> None:
    """Register the built-in presets, most specific first."""
    manager.register_preset(LaravelPreset())
    manager.register_preset(PhpPreset())
    manager.register_preset(LaravelSharedDbPreset())
