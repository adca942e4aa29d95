# bucketmirror Store Module
# Object store clients and backend factory

from pathlib import Path

from bucketmirror.config.schema import StoreBackend, StoreConfig
from bucketmirror.store.base import ObjectStoreClient, RemoteObjectInfo
from bucketmirror.store.local import LocalDiskStore
from bucketmirror.store.s3 import S3ObjectStore, create_s3_client


def create_store(config: StoreConfig) -> ObjectStoreClient:
    """
    Factory function to create the configured store client.

    Args:
        config: Store configuration.

    Returns:
        Instantiated ObjectStoreClient.

    Raises:
        ValueError: If the backend is not supported or is missing settings.
    """
    if config.backend == StoreBackend.S3:
        return S3ObjectStore.from_config(config)
    if config.backend == StoreBackend.LOCAL:
        if not config.local_path:
            raise ValueError("store.local_path is required for the local backend")
        return LocalDiskStore(Path(config.local_path), config.bucket)
    raise ValueError(f"Unsupported backend: {config.backend}")


__all__ = [
    "ObjectStoreClient",
    "RemoteObjectInfo",
    "LocalDiskStore",
    "S3ObjectStore",
    "create_s3_client",
    "create_store",
]
