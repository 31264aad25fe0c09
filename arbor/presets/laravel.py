"""Laravel presets.

``laravel`` gives every worktree its own database; ``laravel-shared-db``
lets all worktrees share the one configured in ``.env`` and is only used
when chosen explicitly.
"""

import os
from typing import Any, Dict, List

from arbor.config.project import CleanupStep, StepConfig
from arbor.presets.base import BasePreset, read_composer_json
from arbor.presets.php import composer_steps

# DB_CONNECTION is set and is not sqlite
SERVER_DATABASE: Dict[str, Any] = {
    "env_file_contains": {"file": ".env", "key": "DB_CONNECTION"},
    "not": {"env_file_contains": {"file": ".env", "key": "DB_CONNECTION", "value": "sqlite"}},
}

HAS_NPM_LOCK: Dict[str, Any] = {"file_exists": "package-lock.json"}


def _env_steps() -> List[StepConfig]:
    return [
        StepConfig(name="file.copy", from_=".env.example", to=".env"),
        StepConfig(
            name="php.laravel.artisan",
            args=["key:generate", "--no-interaction"],
            condition={"env_file_missing": "APP_KEY"},
        ),
    ]


def _asset_steps() -> List[StepConfig]:
    return [
        StepConfig(name="node.npm", args=["ci"], condition=dict(HAS_NPM_LOCK)),
        StepConfig(name="node.npm", args=["run", "build"], condition=dict(HAS_NPM_LOCK)),
    ]


def _site_steps() -> List[StepConfig]:
    return [
        StepConfig(name="php.laravel.artisan", args=["storage:link", "--no-interaction"]),
        StepConfig(name="herd", args=["link", "--secure", "{{ .SiteName }}"]),
    ]


class LaravelPreset(BasePreset):
    name = "laravel"

    def default_steps(self) -> List[StepConfig]:
        return [
            *composer_steps(),
            *_env_steps(),
            StepConfig(name="db.create", condition=dict(SERVER_DATABASE)),
            StepConfig(name="env.write", key="DB_DATABASE", value="{{ .DbName }}", condition=dict(SERVER_DATABASE)),
            *_asset_steps(),
            StepConfig(
                name="php.laravel.artisan",
                args=["migrate:fresh", "--seed", "--no-interaction"],
                condition={"env_file_contains": {"file": ".env", "key": "DB_CONNECTION"}},
            ),
            *_site_steps(),
        ]

    def cleanup_steps(self) -> List[CleanupStep]:
        return [CleanupStep(name="db.destroy"), CleanupStep(name="herd")]

    def detect(self, path: str) -> bool:
        if not os.path.isfile(os.path.join(path, "artisan")):
            return False
        composer = read_composer_json(path)
        if composer is None:
            return False
        require = composer.get("require") or {}
        return isinstance(require, dict) and "laravel/framework" in require


class LaravelSharedDbPreset(BasePreset):
    """Laravel without per-worktree databases or migrations."""

    name = "laravel-shared-db"

    def default_steps(self) -> List[StepConfig]:
        return [*composer_steps(), *_env_steps(), *_asset_steps(), *_site_steps()]

    def cleanup_steps(self) -> List[CleanupStep]:
        return [CleanupStep(name="herd")]
