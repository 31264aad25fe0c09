"""Common shape of a preset."""

import json
import os
from typing import Any, Dict, List, Optional

from arbor.config.project import CleanupStep, StepConfig
from arbor.logging_config import get_logger

logger = get_logger(__name__)


class BasePreset:
    """A named bundle of default scaffold and cleanup steps.

    Subclasses set ``name`` and override :meth:`detect` and the two step
    lists. The lists are rebuilt on every call so callers may mutate them.
    """

    name = ""

    def default_steps(self) -> List[StepConfig]:
        return []

    def cleanup_steps(self) -> List[CleanupStep]:
        return []

    def detect(self, path: str) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def read_composer_json(path: str) -> Optional[Dict[str, Any]]:
    """Parsed ``composer.json`` in ``path``, or None if absent or unreadable."""
    composer = os.path.join(path, "composer.json")
    if not os.path.isfile(composer):
        return None
    try:
        with open(composer, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Ignoring unreadable {composer}: {e}")
        return None
    return data if isinstance(data, dict) else None
