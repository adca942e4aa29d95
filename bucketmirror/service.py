# bucketmirror Service Control
# Lifecycle state machine and persisted status around the sync orchestrator

import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from bucketmirror.config.schema import MirrorConfig
from bucketmirror.errors import ServiceStateError
from bucketmirror.store import create_store
from bucketmirror.store.base import ObjectStoreClient
from bucketmirror.sync.orchestrator import OrchestratorStatus, SyncOrchestrator
from bucketmirror.sync.sweeper import SweepResult
from bucketmirror.utils.paths import atomic_write

logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    """Lifecycle state of the mirror service."""

    NOT_INSTALLED = "not_installed"
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


# Allowed transitions: command -> (from states, to state)
TRANSITIONS: dict[str, tuple[frozenset[ServiceState], ServiceState]] = {
    "install": (frozenset({ServiceState.NOT_INSTALLED}), ServiceState.STOPPED),
    "start": (frozenset({ServiceState.STOPPED}), ServiceState.RUNNING),
    "pause": (frozenset({ServiceState.RUNNING}), ServiceState.PAUSED),
    "resume": (frozenset({ServiceState.PAUSED}), ServiceState.RUNNING),
    "stop": (frozenset({ServiceState.RUNNING, ServiceState.PAUSED}), ServiceState.STOPPED),
    "uninstall": (frozenset({ServiceState.STOPPED}), ServiceState.NOT_INSTALLED),
}


@dataclass
class ServiceStatus:
    """Status persisted for `bucketmirror status`."""

    state: str = ServiceState.NOT_INSTALLED.value
    updated_at: Optional[str] = None  # ISO format datetime
    watch_root: Optional[str] = None
    bucket: Optional[str] = None
    sweep_running: bool = False
    sweep_passes: int = 0
    last_sweep: Optional[dict[str, Any]] = None
    watcher_error: Optional[str] = None
    pid: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServiceStatus":
        """Create from dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class StatusStore:
    """
    Persists ServiceStatus as YAML.

    Written by the running service, read by other processes.
    """

    def __init__(self, status_path: Optional[Path] = None):
        """
        Initialize status store.

        Args:
            status_path: Path to status file. Defaults to ~/.config/bucketmirror/status.yaml
        """
        if status_path is None:
            status_path = Path.home() / ".config" / "bucketmirror" / "status.yaml"
        self.status_path = status_path

    def load(self) -> ServiceStatus:
        """Load status; a missing or unreadable file yields a default status."""
        if not self.status_path.exists():
            return ServiceStatus()

        try:
            with open(self.status_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Cannot read status file %s: %s", self.status_path, e)
            return ServiceStatus()

        if not isinstance(data, dict):
            return ServiceStatus()
        return ServiceStatus.from_dict(data)

    def save(self, status: ServiceStatus) -> None:
        """Write status atomically."""
        status.updated_at = datetime.now().isoformat()
        content = yaml.dump(status.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True)
        try:
            atomic_write(self.status_path, content)
        except OSError as e:
            logger.warning("Cannot write status file %s: %s", self.status_path, e)


def _default_store_factory(config: MirrorConfig) -> ObjectStoreClient:
    return create_store(config.store)


class ServiceController:
    """
    Explicit lifecycle around a SyncOrchestrator.

    NOT_INSTALLED -> install -> STOPPED -> start -> RUNNING <-> PAUSED,
    stop returns to STOPPED, uninstall returns to NOT_INSTALLED.
    """

    def __init__(
        self,
        config: MirrorConfig,
        *,
        store_factory: Optional[Callable[[MirrorConfig], ObjectStoreClient]] = None,
        status_store: Optional[StatusStore] = None,
        orchestrator_factory: Optional[Callable[..., SyncOrchestrator]] = None,
    ):
        """
        Initialize controller.

        Args:
            config: Validated configuration.
            store_factory: Builds the store client on start().
            status_store: Where status is persisted (None disables persistence).
            orchestrator_factory: Builds the orchestrator; defaults to SyncOrchestrator.
        """
        self.config = config
        self.store_factory = store_factory or _default_store_factory
        self.status_store = status_store
        self.orchestrator_factory = orchestrator_factory or SyncOrchestrator
        self.state = ServiceState.NOT_INSTALLED
        self.orchestrator: Optional[SyncOrchestrator] = None
        self._pid: Optional[int] = None

    def _transition(self, command: str) -> ServiceState:
        allowed, target = TRANSITIONS[command]
        if self.state not in allowed:
            raise ServiceStateError(f"Cannot {command} while {self.state.value}")
        logger.debug("Service %s: %s -> %s", command, self.state.value, target.value)
        return target

    def install(self) -> None:
        """Check the watch root and move to STOPPED."""
        target = self._transition("install")
        if not self.config.watch_root_path.is_dir():
            raise ServiceStateError(f"Watch root is not a directory: {self.config.watch_root}")
        self.state = target
        self._persist()

    def start(self) -> None:
        """Connect to the store, ensure the bucket, and start syncing."""
        target = self._transition("start")
        store = self.store_factory(self.config)
        store.ensure_bucket()
        self.orchestrator = self.orchestrator_factory(self.config, store, on_sweep=self._on_sweep)
        self.orchestrator.start()
        self._pid = os.getpid()
        self.state = target
        self._persist()

    def pause(self) -> None:
        """Pause event handling and sweeps."""
        target = self._transition("pause")
        self.orchestrator.pause()
        self.state = target
        self._persist()

    def resume(self) -> None:
        """Resume after pause()."""
        target = self._transition("resume")
        self.orchestrator.resume()
        self.state = target
        self._persist()

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Stop both activities."""
        target = self._transition("stop")
        self.orchestrator.stop(timeout)
        self.state = target
        self._pid = None
        self._persist()

    def uninstall(self) -> None:
        """Forget the orchestrator and move to NOT_INSTALLED."""
        target = self._transition("uninstall")
        self.orchestrator = None
        self.state = target
        self._persist()

    def status(self) -> Optional[OrchestratorStatus]:
        """Live orchestrator status, if one exists."""
        if self.orchestrator is None:
            return None
        return self.orchestrator.status()

    def _on_sweep(self, result: SweepResult) -> None:
        self._persist(result)

    def _persist(self, last_result: Optional[SweepResult] = None) -> None:
        if self.status_store is None:
            return

        status = ServiceStatus(
            state=self.state.value,
            watch_root=self.config.watch_root,
            bucket=self.config.store.bucket,
            pid=self._pid,
        )
        live = self.status()
        if live is not None:
            status.sweep_running = live.sweep.running
            status.sweep_passes = live.sweep.passes
            status.watcher_error = live.watcher_error
            if last_result is None:
                last_result = live.sweep.last_result
        if last_result is not None:
            status.last_sweep = last_result.to_dict()
        self.status_store.save(status)
