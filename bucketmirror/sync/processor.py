# bucketmirror Change Event Processor
# Maps one filesystem event to at most one object store call

import logging
from pathlib import Path
from typing import Optional

from bucketmirror.errors import MirrorError, PathResolutionFailed
from bucketmirror.store.base import ObjectStoreClient
from bucketmirror.sync.events import ChangeEvent, EventKind, OperationType, StoreOperation
from bucketmirror.utils.paths import matches_any_pattern, relative_key

logger = logging.getLogger(__name__)


class ChangeEventProcessor:
    """
    Translate change events into store calls.

    | Event    | File           | Directory            |
    |----------|----------------|----------------------|
    | CREATED  | PUT key        | nothing (watcher)    |
    | MODIFIED | PUT key        | nothing              |
    | REMOVED  | DELETE key     | DELETE_PREFIX key    |
    | RENAMED  | DELETE old key | DELETE_PREFIX old key|

    A rename deletes the old key only; the new path is uploaded when its
    own CREATED event is processed, so the object is briefly absent remotely.
    """

    def __init__(self, watch_root: Path, store: ObjectStoreClient, exclude: Optional[list[str]] = None):
        """
        Initialize processor.

        Args:
            watch_root: Absolute watch root.
            store: Store client to call.
            exclude: Glob patterns whose matches are ignored.
        """
        self.watch_root = watch_root
        self.store = store
        self.exclude = exclude or []

    def plan(self, event: ChangeEvent) -> Optional[StoreOperation]:
        """
        Decide which store call an event requires.

        Args:
            event: Change event.

        Returns:
            The operation, or None if the event needs no store call.

        Raises:
            PathResolutionFailed: If the event path has no relative key.
        """
        if event.is_directory and event.kind in (EventKind.CREATED, EventKind.MODIFIED):
            return None

        key = relative_key(self.watch_root, event.path)
        if matches_any_pattern(key, self.exclude):
            return None

        if event.kind in (EventKind.CREATED, EventKind.MODIFIED):
            return StoreOperation(OperationType.PUT, key, Path(event.path))

        if event.is_directory:
            return StoreOperation(OperationType.DELETE_PREFIX, key)
        return StoreOperation(OperationType.DELETE, key)

    def apply(self, operation: StoreOperation) -> None:
        """Issue one planned operation against the store."""
        if operation.op == OperationType.PUT:
            self.store.put(operation.key, operation.local_path)
            logger.info("Uploaded %s", operation.key)
        elif operation.op == OperationType.DELETE:
            self.store.delete(operation.key)
            logger.info("Deleted %s", operation.key)
        elif operation.op == OperationType.DELETE_PREFIX:
            count = self.store.delete_by_prefix(operation.key)
            logger.info("Deleted %d object(s) under %s/", count, operation.key)

    def process(self, event: ChangeEvent) -> Optional[StoreOperation]:
        """
        Plan and apply the store call for an event.

        Failures are logged and the event is dropped; the next
        reconciliation sweep repairs whatever was missed.

        Returns:
            The operation that was attempted, or None.
        """
        logger.debug("Event %s %s (dir=%s)", event.kind.value, event.path, event.is_directory)

        try:
            operation = self.plan(event)
        except PathResolutionFailed as e:
            logger.warning("Dropping %s event: %s", event.kind.value, e)
            return None

        if operation is None:
            return None

        try:
            self.apply(operation)
        except MirrorError as e:
            logger.error("Failed to %s: %s", operation, e)
        return operation
