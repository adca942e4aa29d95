# bucketmirror S3 Store
# boto3-backed object store for AWS S3 and S3-compatible servers (MinIO, ...)

import logging
import stat as stat_module
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from bucketmirror.config.schema import StoreConfig
from bucketmirror.errors import LocalFileUnreadable, StoreUnavailable
from bucketmirror.store.base import ObjectStoreClient, RemoteObjectInfo

logger = logging.getLogger(__name__)

# User metadata key carrying the source file's mtime (x-amz-meta-mtime)
MTIME_METADATA_KEY = "mtime"

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def create_s3_client(config: StoreConfig) -> Any:
    """
    Create an S3 client with explicit timeouts and retry policy.

    boto3 clients are thread-safe, so one client is shared by the watcher
    and the sweeper.

    Args:
        config: Store configuration.

    Returns:
        botocore S3 client.
    """
    boto_config = BotoConfig(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
    )
    kwargs: dict[str, Any] = {"config": boto_config}
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url
    if config.region:
        kwargs["region_name"] = config.region
    if config.access_key and config.secret_key:
        kwargs["aws_access_key_id"] = config.access_key
        kwargs["aws_secret_access_key"] = config.secret_key
    else:
        logger.info("No explicit access key configured; relying on boto3 credential chain")
    return boto3.client("s3", **kwargs)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStoreClient):
    """
    Object store backed by an S3 bucket.

    S3 reports the upload time as LastModified, so put() stores the local
    mtime as user metadata and stat() reads it back. That keeps the sweeper's
    size+mtime comparison exact.
    """

    def __init__(self, bucket: str, client: Any, *, region: Optional[str] = None):
        """
        Initialize S3 store.

        Args:
            bucket: Bucket name.
            client: botocore S3 client (see create_s3_client).
            region: Region used as LocationConstraint when creating the bucket.
        """
        super().__init__(bucket)
        self.client = client
        self.region = region

    @classmethod
    def from_config(cls, config: StoreConfig) -> "S3ObjectStore":
        """Build a store and its client from configuration."""
        logger.info("Creating S3 client for endpoint %s", config.endpoint_url or "default")
        return cls(config.bucket, create_s3_client(config), region=config.region)

    @property
    def name(self) -> str:
        return "s3"

    def ensure_bucket(self, name: Optional[str] = None) -> None:
        bucket = name or self.bucket
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}

        try:
            self.client.create_bucket(**kwargs)
        except ClientError as create_error:
            # Creation fails when the bucket already exists; confirm we can reach it
            try:
                self.client.head_bucket(Bucket=bucket)
            except (ClientError, BotoCoreError) as e:
                raise StoreUnavailable(f"Cannot create bucket {bucket}: {create_error}") from e
            logger.info("We already own bucket %s", bucket)
            return
        except BotoCoreError as e:
            raise StoreUnavailable(f"Cannot create bucket {bucket}: {e}") from e

        logger.info("Created bucket %s", bucket)

    def put(self, key: str, local_path: Path) -> None:
        local_path = Path(local_path)
        try:
            st = local_path.stat()
        except OSError as e:
            raise LocalFileUnreadable(f"Cannot stat {local_path}: {e}") from e
        if not stat_module.S_ISREG(st.st_mode):
            raise LocalFileUnreadable(f"Not a regular file: {local_path}")

        try:
            self.client.upload_file(
                str(local_path),
                self.bucket,
                key,
                ExtraArgs={"Metadata": {MTIME_METADATA_KEY: repr(st.st_mtime)}},
            )
        except OSError as e:
            raise LocalFileUnreadable(f"Cannot read {local_path}: {e}") from e
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise StoreUnavailable(f"Upload of {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return
            raise StoreUnavailable(f"Delete of {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StoreUnavailable(f"Delete of {key} failed: {e}") from e

    def list(self, prefix: str = "") -> Iterator[RemoteObjectInfo]:
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield RemoteObjectInfo(
                        key=obj["Key"],
                        size=int(obj["Size"]),
                        last_modified=obj["LastModified"].timestamp(),
                    )
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable(f"Listing {self.bucket}/{prefix} failed: {e}") from e

    def stat(self, key: str) -> Optional[RemoteObjectInfo]:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return None
            raise StoreUnavailable(f"Stat of {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StoreUnavailable(f"Stat of {key} failed: {e}") from e

        last_modified = response["LastModified"].timestamp()
        recorded = response.get("Metadata", {}).get(MTIME_METADATA_KEY)
        if recorded is not None:
            try:
                last_modified = float(recorded)
            except ValueError:
                logger.debug("Ignoring malformed mtime metadata on %s: %r", key, recorded)

        return RemoteObjectInfo(key=key, size=int(response["ContentLength"]), last_modified=last_modified)
