# bucketmirror Path Utilities
# Relative key mapping, pattern matching, and tree walking

import fnmatch
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from bucketmirror.errors import PathResolutionFailed

KEY_SEPARATOR = "/"

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.

    Returns:
        The path that was ensured.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write(path: Path, content: str | bytes, *, encoding: str = "utf-8") -> None:
    """
    Atomically write content to file.

    Uses a temporary file and atomic rename.

    Args:
        path: Target file path.
        content: Content to write (str or bytes).
        encoding: Encoding for string content (default utf-8).
    """
    ensure_dir(path.parent)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if isinstance(content, str):
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def relative_key(watch_root: Path, path: str | Path) -> str:
    """
    Map a local path under the watch root to its object key.

    Args:
        watch_root: Absolute watch root.
        path: Absolute local path.

    Returns:
        Key using "/" as separator, e.g. "notes/todo.txt".

    Raises:
        PathResolutionFailed: If path is the watch root itself or lies outside it.
    """
    path = Path(os.path.abspath(path))
    try:
        rel = path.relative_to(watch_root)
    except ValueError:
        raise PathResolutionFailed(f"{path} is outside watch root {watch_root}") from None

    if not rel.parts:
        raise PathResolutionFailed(f"{path} is the watch root and has no key")

    return KEY_SEPARATOR.join(rel.parts)


def key_to_path(watch_root: Path, key: str) -> Path | None:
    """
    Map an object key back to the local path it mirrors.

    Returns None for keys that cannot correspond to a file under the root
    (empty segments, "." or "..", trailing separator).
    """
    parts = key.split(KEY_SEPARATOR)
    if any(part in ("", ".", "..") for part in parts):
        return None
    return watch_root.joinpath(*parts)


def matches_pattern(key: str, pattern: str) -> bool:
    """
    Check if a key matches a glob pattern.

    The pattern is tried against the full key and against its last component,
    so "*.tmp" matches "a/b/c.tmp" and ".git" matches "repo/.git".

    Args:
        key: Relative key.
        pattern: Glob pattern.

    Returns:
        True if key matches pattern.
    """
    if fnmatch.fnmatch(key, pattern):
        return True
    return fnmatch.fnmatch(key.rsplit(KEY_SEPARATOR, 1)[-1], pattern)


def matches_any_pattern(key: str, patterns: list[str]) -> bool:
    """Check if key, or any of its parent segments, matches any of the given patterns."""
    if not patterns:
        return False
    parts = key.split(KEY_SEPARATOR)
    for i in range(len(parts), 0, -1):
        candidate = KEY_SEPARATOR.join(parts[:i])
        if any(matches_pattern(candidate, p) for p in patterns):
            return True
    return False


def iter_directories(root: Path) -> Iterator[Path]:
    """
    Yield root and every directory below it, parents before children.

    Subdirectories that cannot be listed are logged and skipped.

    Raises:
        OSError: If root itself cannot be listed.
    """

    def _on_error(err: OSError) -> None:
        if err.filename is None or Path(err.filename) == Path(root):
            raise err
        logger.warning("Cannot list %s: %s", err.filename, err.strerror)

    for dirpath, dirnames, _filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        yield Path(dirpath)


def iter_files(root: Path) -> Iterator[Path]:
    """
    Yield every regular file below root in sorted traversal order.

    Directories that cannot be listed are logged and skipped.
    """

    def _log(err: OSError) -> None:
        logger.warning("Cannot list %s: %s", err.filename, err.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file():
                yield path
