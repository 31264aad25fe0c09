"""Typed accessors for values read out of YAML mappings."""

from typing import Any, Dict, List, Optional

from arbor.exceptions import ConfigError


def plain(value: Any) -> Any:
    """Strip ruamel round-trip types down to plain dicts and lists."""
    if isinstance(value, dict):
        return {str(k): plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [plain(v) for v in value]
    return value


def str_field(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (bool, dict, list)):
        raise ConfigError(f"{where}.{key} must be a string")
    return str(value)


def str_list_field(data: Dict[str, Any], key: str, where: str) -> List[str]:
    """A list of strings; a single scalar is accepted as a one-item list."""
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return [str(value)]
    if not isinstance(value, list):
        raise ConfigError(f"{where}.{key} must be a list")
    return [str(v) for v in value]


def mapping_field(data: Dict[str, Any], key: str, where: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where}.{key} must be a mapping")
    return plain(value)


def optional_bool_field(data: Dict[str, Any], key: str, where: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key} must be true or false")
    return value
