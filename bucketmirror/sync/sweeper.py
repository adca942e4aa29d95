# bucketmirror Reconciliation Sweeper
# Periodic full-tree diff between the watch root and the bucket

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from bucketmirror.errors import MirrorError
from bucketmirror.store.base import ObjectStoreClient, RemoteObjectInfo
from bucketmirror.utils.paths import iter_files, key_to_path, matches_any_pattern, relative_key

logger = logging.getLogger(__name__)


class DecisionAction(str, Enum):
    """What a sweep does with one key."""

    UPLOAD = "upload"
    DELETE = "delete"
    SKIP = "skip"


@dataclass
class SyncDecision:
    """Outcome of comparing one local entry with its remote counterpart."""

    key: str
    action: DecisionAction
    local_path: Optional[Path] = None
    reason: str = ""

    @property
    def needs_apply(self) -> bool:
        """Check if this decision requires a store call."""
        return self.action != DecisionAction.SKIP


@dataclass
class SweepResult:
    """Result of one reconciliation pass."""

    started_at: float
    finished_at: Optional[float] = None
    dry_run: bool = False
    decisions: list[SyncDecision] = field(default_factory=list)
    uploaded: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if the pass completed without errors."""
        return not self.errors

    @property
    def duration(self) -> float:
        """Wall-clock duration in seconds."""
        if self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at

    @property
    def pending(self) -> list[SyncDecision]:
        """Decisions that need a store call."""
        return [d for d in self.decisions if d.needs_apply]

    def to_dict(self) -> dict:
        """Summary for status reporting."""
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "dry_run": self.dry_run,
            "uploaded": self.uploaded,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class SweepStatus:
    """Snapshot of the sweeper for status displays."""

    running: bool = False
    passes: int = 0
    last_result: Optional[SweepResult] = None


def decide(key: str, local_path: Path, remote: Optional[RemoteObjectInfo]) -> SyncDecision:
    """
    Compare a local file with its remote object.

    Equality is exact on size and modification time; two files that share
    both are treated as identical even if their content differs.

    Args:
        key: Relative key.
        local_path: Local file.
        remote: Remote metadata, or None if the key does not exist remotely.

    Returns:
        SyncDecision (UPLOAD or SKIP).

    Raises:
        OSError: If the local file cannot be stat'ed.
    """
    if remote is None:
        return SyncDecision(key, DecisionAction.UPLOAD, local_path, "missing remotely")

    st = local_path.stat()
    if st.st_size == remote.size and st.st_mtime == remote.last_modified:
        return SyncDecision(key, DecisionAction.SKIP, local_path, "identical")

    if st.st_size != remote.size:
        reason = f"size {st.st_size} != {remote.size}"
    else:
        reason = "modification time differs"
    return SyncDecision(key, DecisionAction.UPLOAD, local_path, reason)


class ReconciliationSweeper:
    """
    Converge the bucket to the local tree.

    Each pass walks the watch root (stat per file), then lists the whole
    bucket to find keys with no local file, then applies the resulting
    uploads and deletes. A failure on one key never aborts the pass.
    """

    def __init__(
        self,
        watch_root: Path,
        store: ObjectStoreClient,
        *,
        interval: float = 300,
        exclude: Optional[list[str]] = None,
        on_complete: Optional[Callable[[SweepResult], None]] = None,
    ):
        """
        Initialize sweeper.

        Args:
            watch_root: Absolute watch root.
            store: Store client to reconcile against.
            interval: Seconds between passes in run().
            exclude: Glob patterns left alone on both sides.
            on_complete: Called with each finished (non dry-run) result.
        """
        self.watch_root = watch_root
        self.store = store
        self.interval = interval
        self.exclude = exclude or []
        self.on_complete = on_complete
        self._status = SweepStatus()
        self._status_lock = threading.Lock()
        self._wakeup = threading.Event()

    def status(self) -> SweepStatus:
        """Return a snapshot of the sweep status."""
        with self._status_lock:
            return SweepStatus(
                running=self._status.running,
                passes=self._status.passes,
                last_result=self._status.last_result,
            )

    def plan(self, result: Optional[SweepResult] = None) -> list[SyncDecision]:
        """
        Compute decisions for every local file and every remote key.

        Args:
            result: Collects per-key errors when given.

        Returns:
            Decisions in traversal order: local files first, then deletions.
        """
        decisions: list[SyncDecision] = []

        for local_path in iter_files(self.watch_root):
            key = relative_key(self.watch_root, local_path)
            if matches_any_pattern(key, self.exclude):
                continue
            try:
                decision = decide(key, local_path, self.store.stat(key))
            except MirrorError as e:
                self._record_error(result, f"stat {key}: {e}")
                continue
            except OSError as e:
                # Vanished between listing and stat
                logger.warning("Skipping %s: %s", key, e)
                continue
            decisions.append(decision)

        try:
            for remote in self.store.list(""):
                if matches_any_pattern(remote.key, self.exclude):
                    continue
                local_path = key_to_path(self.watch_root, remote.key)
                if local_path is None or not local_path.is_file():
                    decisions.append(SyncDecision(remote.key, DecisionAction.DELETE, local_path, "missing locally"))
        except MirrorError as e:
            self._record_error(result, f"list: {e}")

        return decisions

    def apply(self, decisions: list[SyncDecision], result: SweepResult) -> None:
        """Apply UPLOAD/DELETE decisions, recording outcomes in result."""
        for decision in decisions:
            if decision.action == DecisionAction.SKIP:
                result.skipped += 1
                logger.debug("Skipped %s (%s)", decision.key, decision.reason)
                continue

            try:
                if decision.action == DecisionAction.UPLOAD:
                    self.store.put(decision.key, decision.local_path)
                    result.uploaded += 1
                    logger.info("Uploaded %s (%s)", decision.key, decision.reason)
                else:
                    self.store.delete(decision.key)
                    result.deleted += 1
                    logger.info("Deleted %s (%s)", decision.key, decision.reason)
            except MirrorError as e:
                self._record_error(result, f"{decision.action.value} {decision.key}: {e}")

    def sweep(self, *, dry_run: bool = False) -> SweepResult:
        """
        Run one reconciliation pass.

        Args:
            dry_run: Compute decisions without touching the store.

        Returns:
            SweepResult for the pass.
        """
        result = SweepResult(started_at=time.time(), dry_run=dry_run)
        with self._status_lock:
            self._status.running = True

        logger.info("Starting %ssweep of %s", "dry-run " if dry_run else "", self.watch_root)
        try:
            result.decisions = self.plan(result)
            if dry_run:
                result.skipped = sum(1 for d in result.decisions if not d.needs_apply)
            else:
                self.apply(result.decisions, result)
        finally:
            result.finished_at = time.time()
            with self._status_lock:
                self._status.running = False
                if not dry_run:
                    self._status.passes += 1
                    self._status.last_result = result

        logger.info(
            "Sweep finished in %.1fs: %d uploaded, %d deleted, %d skipped, %d errors",
            result.duration,
            result.uploaded,
            result.deleted,
            result.skipped,
            len(result.errors),
        )

        if not dry_run and self.on_complete is not None:
            self.on_complete(result)
        return result

    def trigger(self) -> None:
        """Start the next pass now instead of waiting for the interval."""
        self._wakeup.set()

    def run(
        self,
        stop_event: threading.Event,
        paused: Optional[threading.Event] = None,
        *,
        sweep_on_start: bool = False,
    ) -> None:
        """
        Sweep every interval until stop_event is set.

        Args:
            stop_event: Ends the loop when set.
            paused: While set, ticks are skipped.
            sweep_on_start: Run a pass immediately instead of after one interval.
        """
        if sweep_on_start:
            self.trigger()

        while not stop_event.is_set():
            self._wakeup.wait(self.interval)
            self._wakeup.clear()
            if stop_event.is_set():
                break
            if paused is not None and paused.is_set():
                logger.debug("Paused, skipping sweep")
                continue
            try:
                self.sweep()
            except Exception:
                logger.exception("Sweep aborted unexpectedly")

    @staticmethod
    def _record_error(result: Optional[SweepResult], message: str) -> None:
        logger.error("Sweep error: %s", message)
        if result is not None:
            result.errors.append(message)
