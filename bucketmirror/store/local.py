# bucketmirror Local Disk Store
# Directory-backed object store for NAS/USB targets and tests

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from bucketmirror.errors import LocalFileUnreadable, StoreUnavailable
from bucketmirror.store.base import ObjectStoreClient, RemoteObjectInfo
from bucketmirror.utils.paths import ensure_dir

logger = logging.getLogger(__name__)

# Suffix of in-progress uploads; such files are never listed as objects
PARTIAL_SUFFIX = ".bucketmirror-part"


class LocalDiskStore(ObjectStoreClient):
    """
    Object store kept in a plain directory.

    The bucket is the directory ``base_path / bucket`` and each key is a file
    below it. Uploads use copy2 so the stored mtime equals the source mtime.
    """

    def __init__(self, base_path: Path, bucket: str):
        super().__init__(bucket)
        self.base_path = Path(base_path).expanduser()

    @property
    def name(self) -> str:
        return "local"

    @property
    def bucket_path(self) -> Path:
        return self.base_path / self.bucket

    def _object_path(self, key: str) -> Path:
        parts = key.split(self.separator)
        if any(part in ("", ".", "..") for part in parts):
            raise StoreUnavailable(f"Invalid key for local store: {key!r}")
        return self.bucket_path.joinpath(*parts)

    def ensure_bucket(self, name: Optional[str] = None) -> None:
        bucket_path = self.base_path / (name or self.bucket)
        if bucket_path.is_dir():
            logger.info("Bucket %s already exists", name or self.bucket)
            return
        try:
            ensure_dir(bucket_path)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create bucket {bucket_path}: {e}") from e
        logger.info("Created bucket %s", bucket_path)

    def put(self, key: str, local_path: Path) -> None:
        if not Path(local_path).is_file():
            raise LocalFileUnreadable(f"Not a readable file: {local_path}")

        dest = self._object_path(key)

        try:
            ensure_dir(dest.parent)
            # Unique per call: watcher and sweeper may put the same key at once
            fd, temp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=PARTIAL_SUFFIX)
            os.close(fd)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {dest}: {e}") from e

        temp_dest = Path(temp_name)
        try:
            shutil.copy2(local_path, temp_dest)
        except OSError as e:
            temp_dest.unlink(missing_ok=True)
            # copy2 reports source and destination errors alike
            if not os.access(local_path, os.R_OK):
                raise LocalFileUnreadable(f"Cannot read {local_path}: {e}") from e
            raise StoreUnavailable(f"Cannot write {dest}: {e}") from e

        try:
            os.replace(temp_dest, dest)
        except OSError as e:
            temp_dest.unlink(missing_ok=True)
            raise StoreUnavailable(f"Cannot write {dest}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._object_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StoreUnavailable(f"Cannot delete {path}: {e}") from e
        self._prune_empty_dirs(path.parent)

    def _prune_empty_dirs(self, directory: Path) -> None:
        """Remove directories left empty by a delete, up to the bucket root."""
        while directory != self.bucket_path and self.bucket_path in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                return
            directory = directory.parent

    def list(self, prefix: str = "") -> Iterator[RemoteObjectInfo]:
        if not self.bucket_path.is_dir():
            raise StoreUnavailable(f"Bucket does not exist: {self.bucket_path}")

        for dirpath, dirnames, filenames in os.walk(self.bucket_path):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                key = self.separator.join(path.relative_to(self.bucket_path).parts)
                if not key.startswith(prefix) or _is_partial_upload(filename):
                    continue
                try:
                    st = path.stat()
                except FileNotFoundError:
                    continue
                yield RemoteObjectInfo(key=key, size=st.st_size, last_modified=st.st_mtime)

    def stat(self, key: str) -> Optional[RemoteObjectInfo]:
        path = self._object_path(key)
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise StoreUnavailable(f"Cannot stat {path}: {e}") from e
        if not path.is_file():
            return None
        return RemoteObjectInfo(key=key, size=st.st_size, last_modified=st.st_mtime)


def _is_partial_upload(filename: str) -> bool:
    """Temp files written by put() before the final rename."""
    return filename.startswith(".") and filename.endswith(PARTIAL_SUFFIX)
