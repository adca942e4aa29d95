# bucketmirror Utilities
# Path helpers shared by the store, watcher, and sweeper

from bucketmirror.utils.paths import (
    KEY_SEPARATOR,
    atomic_write,
    ensure_dir,
    iter_directories,
    iter_files,
    key_to_path,
    matches_any_pattern,
    matches_pattern,
    relative_key,
)

__all__ = [
    "KEY_SEPARATOR",
    "atomic_write",
    "ensure_dir",
    "iter_directories",
    "iter_files",
    "key_to_path",
    "matches_any_pattern",
    "matches_pattern",
    "relative_key",
]
