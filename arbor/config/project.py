"""Per-project configuration (``arbor.yaml``)"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml.comments import CommentedMap

from arbor.config.fields import (
    mapping_field,
    optional_bool_field,
    plain,
    str_field,
    str_list_field,
)
from arbor.config.yaml_io import dump_document, load_document, merge_into
from arbor.constants import PROJECT_CONFIG_FILE
from arbor.exceptions import ConfigError


@dataclass
class StepConfig:
    """Declarative configuration of one scaffold step."""

    name: str
    enabled: Optional[bool] = None  # None means "not set", which counts as enabled
    args: List[str] = field(default_factory=list)
    command: str = ""
    condition: Dict[str, Any] = field(default_factory=dict)
    from_: str = ""
    to: str = ""
    key: str = ""
    keys: List[str] = field(default_factory=list)
    value: str = ""
    store_as: str = ""
    file: str = ""
    source: str = ""
    source_file: str = ""
    type: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ConfigError("step name cannot be empty")

    @classmethod
    def from_dict(cls, data: Any) -> "StepConfig":
        """Create a StepConfig from a YAML mapping, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise ConfigError(f"step must be a mapping, got {type(data).__name__}")
        where = f"step '{data.get('name', '?')}'"
        return cls(
            name=str_field(data, "name", where),
            enabled=optional_bool_field(data, "enabled", where),
            args=str_list_field(data, "args", where),
            command=str_field(data, "command", where),
            condition=mapping_field(data, "condition", where),
            from_=str_field(data, "from", where),
            to=str_field(data, "to", where),
            key=str_field(data, "key", where),
            keys=str_list_field(data, "keys", where),
            value=str_field(data, "value", where),
            store_as=str_field(data, "store_as", where),
            file=str_field(data, "file", where),
            source=str_field(data, "source", where),
            source_file=str_field(data, "source_file", where),
            type=str_field(data, "type", where),
        )

    def is_enabled(self) -> bool:
        return self.enabled is None or self.enabled

    def condition_string(self, key: str) -> str:
        value = self.condition.get(key)
        return value if isinstance(value, str) else ""


@dataclass
class CleanupStep:
    """A cleanup entry: a step name and an optional condition."""

    name: str
    condition: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "CleanupStep":
        if not isinstance(data, dict):
            raise ConfigError(f"cleanup step must be a mapping, got {type(data).__name__}")
        where = f"cleanup step '{data.get('name', '?')}'"
        name = str_field(data, "name", where)
        if not name:
            raise ConfigError("cleanup step name cannot be empty")
        return cls(name=name, condition=mapping_field(data, "condition", where))

    def condition_string(self, key: str) -> str:
        value = self.condition.get(key)
        return value if isinstance(value, str) else ""


@dataclass
class PreFlight:
    """Checks that must all pass before any scaffold step runs."""

    condition: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScaffoldConfig:
    pre_flight: Optional[PreFlight] = None
    steps: List[StepConfig] = field(default_factory=list)
    override: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "ScaffoldConfig":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("scaffold must be a mapping")

        pre_flight = None
        raw_pre_flight = data.get("pre_flight")
        if raw_pre_flight is not None:
            if not isinstance(raw_pre_flight, dict):
                raise ConfigError("scaffold.pre_flight must be a mapping")
            pre_flight = PreFlight(condition=mapping_field(raw_pre_flight, "condition", "scaffold.pre_flight"))

        raw_steps = data.get("steps") or []
        if not isinstance(raw_steps, list):
            raise ConfigError("scaffold.steps must be a list")

        override = data.get("override", False)
        if not isinstance(override, bool):
            raise ConfigError("scaffold.override must be true or false")

        return cls(
            pre_flight=pre_flight,
            steps=[StepConfig.from_dict(s) for s in raw_steps],
            override=override,
        )


@dataclass
class ToolConfig:
    version_file: str = ""


@dataclass
class SyncConfig:
    upstream: str = ""
    strategy: str = ""
    remote: str = ""
    auto_stash: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SyncConfig":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("sync must be a mapping")
        return cls(
            upstream=str_field(data, "upstream", "sync"),
            strategy=str_field(data, "strategy", "sync"),
            remote=str_field(data, "remote", "sync"),
            auto_stash=optional_bool_field(data, "auto_stash", "sync"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Only the keys that are set, in file order."""
        values: Dict[str, Any] = {}
        if self.upstream:
            values["upstream"] = self.upstream
        if self.strategy:
            values["strategy"] = self.strategy
        if self.remote:
            values["remote"] = self.remote
        if self.auto_stash is not None:
            values["auto_stash"] = self.auto_stash
        return values


@dataclass
class ProjectConfig:
    """Configuration loaded from a project's ``arbor.yaml``."""

    site_name: str = ""
    preset: str = ""
    default_branch: str = ""
    scaffold: ScaffoldConfig = field(default_factory=ScaffoldConfig)
    cleanup_steps: List[CleanupStep] = field(default_factory=list)
    tools: Dict[str, ToolConfig] = field(default_factory=dict)
    sync: SyncConfig = field(default_factory=SyncConfig)

    @classmethod
    def from_dict(cls, data: Any) -> "ProjectConfig":
        """Create a ProjectConfig from a parsed YAML mapping."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("project config must be a mapping")

        cleanup = data.get("cleanup") or {}
        if not isinstance(cleanup, dict):
            raise ConfigError("cleanup must be a mapping")
        raw_cleanup_steps = cleanup.get("steps") or []
        if not isinstance(raw_cleanup_steps, list):
            raise ConfigError("cleanup.steps must be a list")

        tools = {}
        for tool_name, tool_data in mapping_field(data, "tools", "config").items():
            if tool_data is None:
                tool_data = {}
            if not isinstance(tool_data, dict):
                raise ConfigError(f"tools.{tool_name} must be a mapping")
            tools[tool_name] = ToolConfig(version_file=str_field(tool_data, "version_file", f"tools.{tool_name}"))

        return cls(
            site_name=str_field(data, "site_name", "config"),
            preset=str_field(data, "preset", "config"),
            default_branch=str_field(data, "default_branch", "config"),
            scaffold=ScaffoldConfig.from_dict(data.get("scaffold")),
            cleanup_steps=[CleanupStep.from_dict(s) for s in raw_cleanup_steps],
            tools=tools,
            sync=SyncConfig.from_dict(data.get("sync")),
        )


def load_project(path: Union[str, Path]) -> ProjectConfig:
    """Load ``arbor.yaml`` from the directory ``path``.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    config_path = Path(path) / PROJECT_CONFIG_FILE
    doc = load_document(config_path)
    if doc is None:
        raise ConfigError(f"{PROJECT_CONFIG_FILE} not found in {path}")
    return ProjectConfig.from_dict(plain(doc))


def project_config_exists(path: Union[str, Path]) -> bool:
    return (Path(path) / PROJECT_CONFIG_FILE).is_file()


def save_project(path: Union[str, Path], config: ProjectConfig) -> None:
    """Write ``config`` into ``path/arbor.yaml``.

    Only the scalar settings and the sync section are written; everything
    else already in the file (comments, ordering, scaffold steps, unknown
    keys) is left as it was. New keys are appended at the end.
    """
    config_path = Path(path) / PROJECT_CONFIG_FILE
    doc = load_document(config_path)
    if doc is None:
        doc = CommentedMap()

    values: Dict[str, Any] = {}
    if config.site_name:
        values["site_name"] = config.site_name
    if config.preset:
        values["preset"] = config.preset
    if config.default_branch:
        values["default_branch"] = config.default_branch
    sync_values = config.sync.to_dict()
    if sync_values:
        values["sync"] = sync_values

    merge_into(doc, values)
    dump_document(config_path, doc)
