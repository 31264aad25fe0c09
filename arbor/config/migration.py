"""One-way migrations of legacy configuration."""

from pathlib import Path
from typing import Union

from arbor.config.local_state import LocalState, write_local_state
from arbor.config.yaml_io import dump_document, load_document
from arbor.constants import PROJECT_CONFIG_FILE
from arbor.logging_config import get_logger

logger = get_logger(__name__)


def migrate_db_suffix_to_local(worktree_path: Union[str, Path]) -> bool:
    """Move ``db_suffix`` from a worktree's ``arbor.yaml`` into ``.arbor.local``.

    Older versions stored the suffix in the committed project file. The rest
    of ``arbor.yaml`` (comments included) is left untouched. Running this a
    second time is a no-op.

    Args:
        worktree_path: Worktree directory holding the two files

    Returns:
        True if a suffix was migrated, False if there was nothing to do
    """
    config_path = Path(worktree_path) / PROJECT_CONFIG_FILE
    doc = load_document(config_path)
    if doc is None:
        return False

    suffix = doc.get("db_suffix")
    if not isinstance(suffix, str) or not suffix:
        return False

    write_local_state(worktree_path, LocalState(db_suffix=str(suffix)))
    del doc["db_suffix"]
    dump_document(config_path, doc)
    logger.info(f"Migrated db_suffix from {config_path} to local state")
    return True
