"""Plain PHP projects managed with Composer."""

import os
from typing import List

from arbor.config.project import StepConfig
from arbor.presets.base import BasePreset


def composer_steps() -> List[StepConfig]:
    """``composer install`` with a lock file, ``composer update`` without."""
    return [
        StepConfig(name="php.composer", args=["install"], condition={"file_exists": "composer.lock"}),
        StepConfig(name="php.composer", args=["update"], condition={"not": {"file_exists": "composer.lock"}}),
    ]


class PhpPreset(BasePreset):
    name = "php"

    def default_steps(self) -> List[StepConfig]:
        return composer_steps()

    def detect(self, path: str) -> bool:
        return os.path.isfile(os.path.join(path, "composer.json"))
