# bucketmirror Object Store Interface
# Abstract client contract shared by the watcher and the sweeper

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bucketmirror.errors import MirrorError
from bucketmirror.utils.paths import KEY_SEPARATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteObjectInfo:
    """Object metadata as reported by the store."""

    key: str
    size: int
    last_modified: float  # epoch seconds


class ObjectStoreClient(ABC):
    """
    Abstract object store client.

    Implementations must be safe to call from the watcher and the sweeper
    threads at the same time.
    """

    separator = KEY_SEPARATOR

    def __init__(self, bucket: str):
        self.bucket = bucket

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @abstractmethod
    def ensure_bucket(self, name: Optional[str] = None) -> None:
        """
        Make sure the bucket exists, creating it if needed.

        Args:
            name: Bucket name. Defaults to the client's bucket.

        Raises:
            StoreUnavailable: If the bucket neither exists nor can be created.
        """

    @abstractmethod
    def put(self, key: str, local_path: Path) -> None:
        """
        Upload local_path under key, overwriting any existing object.

        Raises:
            StoreUnavailable: On backend failure.
            LocalFileUnreadable: If local_path cannot be read.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove the object at key. A missing object counts as success.

        Raises:
            StoreUnavailable: On backend failure.
        """

    @abstractmethod
    def list(self, prefix: str = "") -> Iterator[RemoteObjectInfo]:
        """
        Lazily list objects whose key starts with prefix.

        Each call starts a fresh listing.

        Raises:
            StoreUnavailable: On backend failure (possibly mid-iteration).
        """

    @abstractmethod
    def stat(self, key: str) -> Optional[RemoteObjectInfo]:
        """
        Look up a single object.

        Returns:
            RemoteObjectInfo, or None if the key does not exist.

        Raises:
            StoreUnavailable: On backend failure.
        """

    def delete_by_prefix(self, prefix: str) -> int:
        """
        Delete every object below a directory key.

        Best-effort: a failure on one object is logged and the remaining
        objects are still deleted.

        Args:
            prefix: Directory key without trailing separator.

        Returns:
            Number of objects deleted.

        Raises:
            StoreUnavailable: If the listing itself fails.
        """
        dir_prefix = prefix.rstrip(self.separator) + self.separator
        deleted = 0
        for info in self.list(dir_prefix):
            try:
                self.delete(info.key)
            except MirrorError as e:
                logger.error("Failed to delete %s: %s", info.key, e)
                continue
            deleted += 1
            logger.info("Deleted %s", info.key)
        return deleted
