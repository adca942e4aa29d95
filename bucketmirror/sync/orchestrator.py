# bucketmirror Sync Orchestrator
# Runs the watcher and the sweeper side by side against one store

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from bucketmirror.config.schema import MirrorConfig
from bucketmirror.errors import WatchSubscriptionFailed
from bucketmirror.store.base import ObjectStoreClient
from bucketmirror.sync.processor import ChangeEventProcessor
from bucketmirror.sync.sweeper import ReconciliationSweeper, SweepResult, SweepStatus
from bucketmirror.sync.watcher import FileSystemWatcher, NotificationSource

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorStatus:
    """Operational status for external displays."""

    running: bool
    paused: bool
    watcher_active: bool
    watched_directories: int
    events_seen: int
    sweep: SweepStatus
    watcher_error: Optional[str] = None


class SyncOrchestrator:
    """
    Run event-driven sync and periodic reconciliation concurrently.

    Both threads call the shared store directly. Nothing serializes a sweep
    against an in-flight event upload to the same key; both push the same
    end state, so the mirror still converges.
    """

    def __init__(
        self,
        config: MirrorConfig,
        store: ObjectStoreClient,
        *,
        source: Optional[NotificationSource] = None,
        on_sweep: Optional[Callable[[SweepResult], None]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Validated configuration.
            store: Store client shared by both activities.
            source: Notification source override for the watcher.
            on_sweep: Called after each completed sweep.
        """
        self.config = config
        self.store = store
        watch_root = config.watch_root_path

        self.processor = ChangeEventProcessor(watch_root, store, exclude=config.sync.exclude)
        self.watcher = FileSystemWatcher(
            watch_root,
            self.processor,
            source,
            poll_timeout=config.sync.poll_timeout,
        )
        self.sweeper = ReconciliationSweeper(
            watch_root,
            store,
            interval=config.sync.interval_seconds,
            exclude=config.sync.exclude,
            on_complete=on_sweep,
        )

        self._stop_event = threading.Event()
        self._paused = threading.Event()
        self._threads: list[threading.Thread] = []
        self._watcher_active = False
        self._watcher_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        """Check if any activity thread is alive."""
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start the watcher and sweeper threads."""
        if self.is_running:
            raise RuntimeError("Orchestrator already running")

        self._stop_event.clear()
        self._paused.clear()
        self._threads = [
            threading.Thread(target=self._run_watcher, name="bucketmirror-watcher", daemon=True),
            threading.Thread(target=self._run_sweeper, name="bucketmirror-sweeper", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Mirroring %s to %s bucket %s", self.config.watch_root, self.store.name, self.store.bucket)

    def _run_watcher(self) -> None:
        self._watcher_active = True
        try:
            self.watcher.run(self._stop_event, self._paused)
        except WatchSubscriptionFailed as e:
            # Fatal for the event path only; the sweeper keeps converging
            self._watcher_error = str(e)
            logger.error("Watcher disabled: %s", e)
        finally:
            self._watcher_active = False

    def _run_sweeper(self) -> None:
        self.sweeper.run(self._stop_event, self._paused, sweep_on_start=self.config.sync.sweep_on_start)

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """
        Signal both activities to stop and wait for them.

        An in-flight upload is not interrupted; the wait gives up after timeout.
        """
        self._stop_event.set()
        self.sweeper.trigger()
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("%s did not stop within %ss", thread.name, timeout)
        logger.info("Stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called; returns True if stopped."""
        return self._stop_event.wait(timeout)

    def pause(self) -> None:
        """Discard events and skip sweeps until resume()."""
        self._paused.set()
        logger.info("Paused")

    def resume(self) -> None:
        """Resume both activities and sweep immediately to catch up."""
        self._paused.clear()
        self.sweeper.trigger()
        logger.info("Resumed")

    def status(self) -> OrchestratorStatus:
        """Report what both activities are doing."""
        return OrchestratorStatus(
            running=self.is_running,
            paused=self._paused.is_set(),
            watcher_active=self._watcher_active,
            watched_directories=len(self.watcher.watch_set),
            events_seen=self.watcher.events_seen,
            sweep=self.sweeper.status(),
            watcher_error=self._watcher_error,
        )
