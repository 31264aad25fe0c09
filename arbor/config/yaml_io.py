"""Round-trip YAML helpers for user-edited config files."""

import io
from pathlib import Path
from typing import Any, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError

from arbor.exceptions import ConfigError
from arbor.utils.env_file import atomic_write_text


def _yaml() -> YAML:
    yaml = YAML(typ="rt")
    yaml.preserve_quotes = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def load_document(path: Path) -> Optional[CommentedMap]:
    """Load a YAML mapping in round-trip mode.

    Returns:
        The document, an empty mapping for an empty file, or None when the
        file does not exist

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = _yaml().load(f)
    except YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if data is None:
        return CommentedMap()
    if not isinstance(data, CommentedMap):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def dump_document(path: Path, doc: CommentedMap) -> None:
    """Atomically write a round-trip document back to ``path``."""
    buf = io.StringIO()
    _yaml().dump(doc, buf)
    atomic_write_text(path, buf.getvalue())


def to_commented(value: Any) -> Any:
    """Convert plain dicts and lists into their round-trip equivalents."""
    if isinstance(value, (CommentedMap, CommentedSeq)):
        return value
    if isinstance(value, Mapping):
        result = CommentedMap()
        for k, v in value.items():
            result[k] = to_commented(v)
        return result
    if isinstance(value, (list, tuple)):
        return CommentedSeq([to_commented(v) for v in value])
    return value


def merge_into(doc: CommentedMap, values: Mapping[str, Any]) -> None:
    """Merge plain ``values`` into ``doc`` in place.

    Existing keys keep their position and comments, nested mappings merge
    recursively and new keys are appended at the end in insertion order.
    A value of None removes the key. Keys of ``doc`` not mentioned in
    ``values`` are left alone.
    """
    for key, value in values.items():
        if value is None:
            if key in doc:
                del doc[key]
            continue
        current = doc.get(key)
        if isinstance(value, Mapping) and isinstance(current, CommentedMap):
            merge_into(current, value)
        else:
            doc[key] = to_commented(value)
