# bucketmirror Sync Module
# Event-driven and periodic synchronization engine

from bucketmirror.sync.events import ChangeEvent, EventKind, OperationType, StoreOperation
from bucketmirror.sync.orchestrator import OrchestratorStatus, SyncOrchestrator
from bucketmirror.sync.processor import ChangeEventProcessor
from bucketmirror.sync.sweeper import (
    DecisionAction,
    ReconciliationSweeper,
    SweepResult,
    SweepStatus,
    SyncDecision,
    decide,
)
from bucketmirror.sync.watcher import FileSystemWatcher, NotificationSource, WatchdogSource, translate_event

__all__ = [
    # Events
    "ChangeEvent",
    "EventKind",
    "OperationType",
    "StoreOperation",
    # Processor
    "ChangeEventProcessor",
    # Watcher
    "FileSystemWatcher",
    "NotificationSource",
    "WatchdogSource",
    "translate_event",
    # Sweeper
    "DecisionAction",
    "ReconciliationSweeper",
    "SweepResult",
    "SweepStatus",
    "SyncDecision",
    "decide",
    # Orchestrator
    "OrchestratorStatus",
    "SyncOrchestrator",
]
