# bucketmirror File System Watcher
# Per-directory change subscriptions feeding the event processor

import logging
import os
import queue
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from bucketmirror.errors import WatchSubscriptionFailed
from bucketmirror.sync.events import ChangeEvent, EventKind
from bucketmirror.sync.processor import ChangeEventProcessor
from bucketmirror.utils.paths import iter_directories

logger = logging.getLogger(__name__)


class NotificationSource(ABC):
    """
    OS change-notification capability.

    Subscriptions are per directory and non-recursive: a directory's
    subscription reports changes to its direct children.
    """

    @abstractmethod
    def start(self) -> None:
        """Begin delivering notifications. Called before any subscribe()."""

    @abstractmethod
    def subscribe(self, directory: Path) -> None:
        """
        Watch one directory.

        Raises:
            WatchSubscriptionFailed: If the directory cannot be watched.
        """

    @abstractmethod
    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Block for the next event; None if timeout elapses first."""

    @abstractmethod
    def close(self) -> None:
        """Release all subscriptions."""


def _fs_path(value: str | bytes) -> Path:
    return Path(os.fsdecode(value))


def translate_event(event: FileSystemEvent, watch_root: Path) -> list[ChangeEvent]:
    """
    Convert a watchdog event into change events.

    A move becomes RENAMED for the source followed by CREATED for the
    destination when the destination is still under the watch root.
    Opened/closed notifications are ignored.
    """
    is_dir = event.is_directory
    src = _fs_path(event.src_path)

    if event.event_type == EVENT_TYPE_CREATED:
        return [ChangeEvent(src, EventKind.CREATED, is_dir)]
    if event.event_type == EVENT_TYPE_MODIFIED:
        return [ChangeEvent(src, EventKind.MODIFIED, is_dir)]
    if event.event_type == EVENT_TYPE_DELETED:
        return [ChangeEvent(src, EventKind.REMOVED, is_dir)]
    if event.event_type == EVENT_TYPE_MOVED:
        changes = [ChangeEvent(src, EventKind.RENAMED, is_dir)]
        dest = _fs_path(event.dest_path)
        if dest == watch_root or watch_root in dest.parents:
            changes.append(ChangeEvent(dest, EventKind.CREATED, is_dir))
        return changes
    return []


class _QueueingHandler(FileSystemEventHandler):
    """Push translated watchdog events onto a queue in arrival order."""

    def __init__(self, events: "queue.Queue[ChangeEvent]", watch_root: Path):
        super().__init__()
        self._events = events
        self._watch_root = watch_root

    def on_any_event(self, event: FileSystemEvent) -> None:
        for change in translate_event(event, self._watch_root):
            self._events.put(change)


class WatchdogSource(NotificationSource):
    """NotificationSource backed by a watchdog Observer (inotify, FSEvents, ReadDirectoryChangesW)."""

    def __init__(self, watch_root: Path):
        self._events: "queue.Queue[ChangeEvent]" = queue.Queue()
        self._handler = _QueueingHandler(self._events, watch_root)
        self._observer = Observer()
        self._watches: dict[Path, object] = {}

    def start(self) -> None:
        self._observer.start()

    def subscribe(self, directory: Path) -> None:
        # A directory removed and recreated under the same path needs a fresh watch
        stale = self._watches.pop(directory, None)
        if stale is not None:
            try:
                self._observer.unschedule(stale)
            except KeyError:
                pass

        try:
            self._watches[directory] = self._observer.schedule(self._handler, str(directory), recursive=False)
        except OSError as e:
            raise WatchSubscriptionFailed(f"Cannot watch {directory}: {e}") from e

    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=5)


class FileSystemWatcher:
    """
    Watch the whole tree under the watch root.

    Every directory gets its own subscription. New directories are
    subscribed as soon as their CREATED event is seen; files written into
    a new directory before that point are only picked up by the next
    reconciliation sweep.
    """

    def __init__(
        self,
        watch_root: Path,
        processor: ChangeEventProcessor,
        source: Optional[NotificationSource] = None,
        *,
        poll_timeout: float = 0.5,
    ):
        """
        Initialize watcher.

        Args:
            watch_root: Absolute watch root.
            processor: Receives every event in arrival order.
            source: Notification source (defaults to WatchdogSource).
            poll_timeout: How often run() wakes to check the stop event.
        """
        self.watch_root = watch_root
        self.processor = processor
        self.source = source or WatchdogSource(watch_root)
        self.poll_timeout = poll_timeout
        self._watch_set: set[Path] = set()
        self._lock = threading.Lock()
        self.events_seen = 0

    @property
    def watch_set(self) -> frozenset[Path]:
        """Directories subscribed so far."""
        with self._lock:
            return frozenset(self._watch_set)

    def start(self) -> None:
        """
        Subscribe the watch root and every existing subdirectory.

        Raises:
            WatchSubscriptionFailed: If the initial subscription cannot be
                established; the watcher must not run in that case.
        """
        self.source.start()
        try:
            for directory in iter_directories(self.watch_root):
                self._subscribe(directory)
        except OSError as e:
            raise WatchSubscriptionFailed(f"Cannot enumerate {self.watch_root}: {e}") from e
        logger.info("Watching %d directories under %s", len(self.watch_set), self.watch_root)

    def _subscribe(self, directory: Path) -> None:
        self.source.subscribe(directory)
        with self._lock:
            self._watch_set.add(directory)

    def subscribe_new_directory(self, directory: Path) -> None:
        """
        Subscribe a newly created directory and any subdirectories it already holds.

        Failures are logged and skipped; each directory is subscribed as
        soon as the walk reaches it.
        """
        try:
            for subdir in iter_directories(directory):
                try:
                    self._subscribe(subdir)
                except WatchSubscriptionFailed as e:
                    logger.warning("%s", e)
                    continue
                logger.debug("Watching new directory %s", subdir)
        except OSError as e:
            logger.warning("Cannot watch new directory %s: %s", directory, e)

    def handle_event(self, event: ChangeEvent) -> None:
        """Extend the watch set if needed, then hand the event to the processor."""
        self.events_seen += 1
        if event.kind == EventKind.CREATED and event.is_directory:
            self.subscribe_new_directory(Path(event.path))
        self.processor.process(event)

    def run(self, stop_event: threading.Event, paused: Optional[threading.Event] = None) -> None:
        """
        Subscribe and deliver events until stop_event is set.

        Args:
            stop_event: Ends the loop when set.
            paused: While set, events are discarded.

        Raises:
            WatchSubscriptionFailed: If the initial subscription fails.
        """
        try:
            self.start()
            while not stop_event.is_set():
                event = self.source.next_event(timeout=self.poll_timeout)
                if event is None:
                    continue
                if paused is not None and paused.is_set():
                    # Keep the watch set complete so resuming misses nothing structural
                    if event.kind == EventKind.CREATED and event.is_directory:
                        self.subscribe_new_directory(Path(event.path))
                    logger.debug("Paused, discarding %s %s", event.kind.value, event.path)
                    continue
                try:
                    self.handle_event(event)
                except Exception:
                    logger.exception("Unexpected error handling %s %s", event.kind.value, event.path)
        finally:
            self.source.close()
