"""bucketmirror - one-way mirror of a local directory into an object store bucket.

Local changes are pushed as they happen through filesystem notifications,
and a periodic reconciliation sweep repairs anything the watcher missed.
"""

__version__ = "1.0.0"
__author__ = "Equitania Software GmbH"
__email__ = "info@equitania.de"

__all__ = [
    "__version__",
    "MirrorConfig",
    "load_config",
    "ObjectStoreClient",
    "create_store",
    "ChangeEventProcessor",
    "FileSystemWatcher",
    "ReconciliationSweeper",
    "SyncOrchestrator",
    "ServiceController",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("MirrorConfig", "load_config"):
        from bucketmirror import config

        return getattr(config, name)
    if name in ("ObjectStoreClient", "create_store"):
        from bucketmirror import store

        return getattr(store, name)
    if name in ("ChangeEventProcessor", "FileSystemWatcher", "ReconciliationSweeper", "SyncOrchestrator"):
        from bucketmirror import sync

        return getattr(sync, name)
    if name == "ServiceController":
        from bucketmirror.service import ServiceController

        return ServiceController
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
