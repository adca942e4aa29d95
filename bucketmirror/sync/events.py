# bucketmirror Change Events
# Filesystem change notifications and the store operations they map to

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class EventKind(str, Enum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


@dataclass(frozen=True)
class ChangeEvent:
    """
    A single filesystem change under the watch root.

    For RENAMED, path is the old location; the new location arrives as
    its own CREATED event.
    """

    path: Path
    kind: EventKind
    is_directory: bool = False


class OperationType(str, Enum):
    """Store call issued for an event."""

    PUT = "put"
    DELETE = "delete"
    DELETE_PREFIX = "delete_prefix"


@dataclass(frozen=True)
class StoreOperation:
    """One planned ObjectStoreClient call."""

    op: OperationType
    key: str
    local_path: Optional[Path] = None

    def __str__(self) -> str:
        return f"{self.op.value} {self.key}"
