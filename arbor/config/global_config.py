"""Global (per-user) configuration holding linked projects."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ruamel.yaml.comments import CommentedMap

from arbor.config.fields import optional_bool_field, plain, str_field
from arbor.config.yaml_io import dump_document, load_document, merge_into
from arbor.constants import DEFAULT_BRANCH, GLOBAL_CONFIG_DIR_NAME, GLOBAL_CONFIG_FILE
from arbor.exceptions import ConfigError
from arbor.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ProjectInfo:
    """A linked project's registration."""

    path: str
    default_branch: str = ""
    preset: str = ""
    site_name: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "ProjectInfo":
        if not isinstance(data, dict):
            raise ConfigError(f"projects.{name} must be a mapping")
        where = f"projects.{name}"
        path = str_field(data, "path", where)
        if not path:
            raise ConfigError(f"{where}.path is required")
        return cls(
            path=path,
            default_branch=str_field(data, "default_branch", where),
            preset=str_field(data, "preset", where),
            site_name=str_field(data, "site_name", where),
        )

    def to_dict(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {"path": self.path}
        if self.default_branch:
            values["default_branch"] = self.default_branch
        if self.preset:
            values["preset"] = self.preset
        if self.site_name:
            values["site_name"] = self.site_name
        return values


@dataclass
class ToolInfo:
    path: str = ""
    version: str = ""


@dataclass
class GlobalScaffoldConfig:
    parallel_dependencies: bool = False
    interactive: bool = False


@dataclass
class GlobalConfig:
    """Contents of ``$XDG_CONFIG_HOME/arbor/arbor.yaml``."""

    default_branch: str = DEFAULT_BRANCH
    detected_tools: Dict[str, bool] = field(default_factory=dict)
    tools: Dict[str, ToolInfo] = field(default_factory=dict)
    scaffold: GlobalScaffoldConfig = field(default_factory=GlobalScaffoldConfig)
    worktree_base: str = ""
    projects: Dict[str, ProjectInfo] = field(default_factory=dict)

    # Directory the config was loaded from; used when saving
    config_dir: Optional[Path] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any, config_dir: Optional[Path] = None) -> "GlobalConfig":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("global config must be a mapping")

        detected = data.get("detected_tools") or {}
        if not isinstance(detected, dict):
            raise ConfigError("detected_tools must be a mapping")

        tools = {}
        raw_tools = data.get("tools") or {}
        if not isinstance(raw_tools, dict):
            raise ConfigError("tools must be a mapping")
        for name, info in raw_tools.items():
            info = info or {}
            if not isinstance(info, dict):
                raise ConfigError(f"tools.{name} must be a mapping")
            tools[str(name)] = ToolInfo(
                path=str_field(info, "path", f"tools.{name}"),
                version=str_field(info, "version", f"tools.{name}"),
            )

        raw_scaffold = data.get("scaffold") or {}
        if not isinstance(raw_scaffold, dict):
            raise ConfigError("scaffold must be a mapping")
        scaffold = GlobalScaffoldConfig(
            parallel_dependencies=bool(optional_bool_field(raw_scaffold, "parallel_dependencies", "scaffold")),
            interactive=bool(optional_bool_field(raw_scaffold, "interactive", "scaffold")),
        )

        raw_projects = data.get("projects") or {}
        if not isinstance(raw_projects, dict):
            raise ConfigError("projects must be a mapping")
        projects = {str(name): ProjectInfo.from_dict(str(name), info) for name, info in raw_projects.items()}

        return cls(
            default_branch=str_field(data, "default_branch", "config") or DEFAULT_BRANCH,
            detected_tools={str(k): bool(v) for k, v in detected.items()},
            tools=tools,
            scaffold=scaffold,
            worktree_base=str_field(data, "worktree_base", "config"),
            projects=projects,
            config_dir=config_dir,
        )

    def get_linked_project_by_name(self, name: str) -> Optional[ProjectInfo]:
        return self.projects.get(name)

    def find_linked_project_from_path(self, path: Union[str, Path]) -> Tuple[str, Optional[ProjectInfo]]:
        """Find the linked project containing ``path``.

        Both sides are compared after resolving symlinks. When registrations
        nest, the deepest project wins.

        Returns:
            Tuple of (name, info), or ("", None) when no project matches
        """
        target = os.path.realpath(os.path.abspath(str(path)))
        best_name, best_info, best_len = "", None, -1
        for name, info in self.projects.items():
            project_path = os.path.realpath(os.path.abspath(os.path.expanduser(info.path)))
            if is_same_or_subpath(project_path, target) and len(project_path) > best_len:
                best_name, best_info, best_len = name, info, len(project_path)
        return best_name, best_info

    def add_project(self, name: str, info: ProjectInfo) -> None:
        self.projects[name] = info

    def remove_project(self, name: str) -> None:
        self.projects.pop(name, None)

    def worktree_base_expanded(self) -> str:
        """The worktree base with a leading ``~`` replaced by the home directory."""
        base = self.worktree_base
        if not base:
            return ""
        if base.startswith("~"):
            base = str(Path.home()) + base[1:]
        return os.path.abspath(base)


def is_same_or_subpath(parent: str, child: str) -> bool:
    """Whether ``child`` equals ``parent`` or lies beneath it."""
    if child == parent:
        return True
    rel = os.path.relpath(child, parent)
    return rel != "." and not rel.startswith("..")


def global_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Directory of the global config: ``$XDG_CONFIG_HOME/arbor`` or ``~/.config/arbor``."""
    env = os.environ if environ is None else environ
    xdg = env.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / GLOBAL_CONFIG_DIR_NAME
    home = env.get("HOME") or str(Path.home())
    return Path(home) / ".config" / GLOBAL_CONFIG_DIR_NAME


def load_global_config(config_dir: Optional[Union[str, Path]] = None) -> Optional[GlobalConfig]:
    """Load the global config.

    Returns:
        The config, or None when the file does not exist

    Raises:
        ConfigError: If the file exists but is malformed
    """
    directory = Path(config_dir) if config_dir is not None else global_config_dir()
    doc = load_document(directory / GLOBAL_CONFIG_FILE)
    if doc is None:
        return None
    return GlobalConfig.from_dict(plain(doc), config_dir=directory)


def load_or_create_global_config(config_dir: Optional[Union[str, Path]] = None) -> GlobalConfig:
    """Load the global config, or return an empty one bound to ``config_dir``."""
    directory = Path(config_dir) if config_dir is not None else global_config_dir()
    config = load_global_config(directory)
    if config is None:
        logger.debug(f"No global config in {directory}, starting empty")
        config = GlobalConfig(config_dir=directory)
    return config


def save_global_config(config: GlobalConfig) -> None:
    """Write ``config`` back, keeping comments, ordering and unknown keys.

    Projects removed from ``config.projects`` are removed from the file.
    """
    directory = config.config_dir if config.config_dir is not None else global_config_dir()
    directory.mkdir(parents=True, exist_ok=True)
    config_path = directory / GLOBAL_CONFIG_FILE

    doc = load_document(config_path)
    if doc is None:
        doc = CommentedMap()

    projects: Dict[str, Any] = {name: info.to_dict() for name, info in config.projects.items()}
    existing_projects = doc.get("projects")
    if isinstance(existing_projects, CommentedMap):
        for name in list(existing_projects.keys()):
            if name not in config.projects:
                projects[name] = None

    values: Dict[str, Any] = {
        "default_branch": config.default_branch,
        "detected_tools": dict(config.detected_tools),
        "scaffold": {
            "parallel_dependencies": config.scaffold.parallel_dependencies,
            "interactive": config.scaffold.interactive,
        },
    }
    if config.tools:
        values["tools"] = {
            name: {"path": tool.path, "version": tool.version} for name, tool in config.tools.items()
        }
    if config.worktree_base:
        values["worktree_base"] = config.worktree_base
    values["projects"] = projects

    merge_into(doc, values)
    dump_document(config_path, doc)
    config.config_dir = directory
