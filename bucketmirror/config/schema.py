# bucketmirror Configuration Schema
# Pydantic models for YAML configuration validation

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class StoreBackend(str, Enum):
    """Object store backend type."""

    S3 = "s3"
    LOCAL = "local"


class StoreConfig(BaseModel):
    """Object store connection settings."""

    backend: StoreBackend = Field(default=StoreBackend.S3, description="Store backend type")
    endpoint: str | None = Field(default=None, description="S3-compatible endpoint, e.g. localhost:9000")
    bucket: str = Field(description="Bucket that mirrors the watch root")
    access_key: str | None = Field(default=None, description="Access key (or BUCKETMIRROR_ACCESS_KEY)")
    secret_key: str | None = Field(default=None, description="Secret key (or BUCKETMIRROR_SECRET_KEY)")
    secure: bool = Field(default=False, description="Use HTTPS when endpoint has no scheme")
    region: str | None = Field(default=None, description="Region name for bucket creation")
    local_path: str | None = Field(default=None, description="Base directory for the local backend")
    connect_timeout: float = Field(default=5.0, gt=0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=60.0, gt=0, description="Read timeout in seconds")
    max_attempts: int = Field(default=3, ge=1, description="SDK-level attempts per request")

    @field_validator("bucket")
    @classmethod
    def check_bucket(cls, v: str) -> str:
        """Reject empty bucket names."""
        v = v.strip()
        if not v:
            raise ValueError("bucket must not be empty")
        return v

    @field_validator("local_path")
    @classmethod
    def expand_local_path(cls, v: str | None) -> str | None:
        """Expand ~ in local store path."""
        if v is None:
            return None
        return str(Path(v).expanduser())

    @property
    def endpoint_url(self) -> str | None:
        """Endpoint as a URL, adding a scheme from `secure` when missing."""
        if not self.endpoint:
            return None
        if "://" in self.endpoint:
            return self.endpoint
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"


class SyncConfig(BaseModel):
    """Watcher and reconciliation settings."""

    interval_seconds: int = Field(default=300, ge=1, description="Seconds between reconciliation sweeps")
    sweep_on_start: bool = Field(default=True, description="Run one sweep immediately at startup")
    poll_timeout: float = Field(default=0.5, gt=0, description="Watcher wake-up interval to check for stop")
    exclude: list[str] = Field(default_factory=list, description="Glob patterns never mirrored")


class OutputConfig(BaseModel):
    """Output and logging configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")
    log_file: str | None = Field(default=None, description="Path to log file")
    status_file: str | None = Field(default=None, description="Path to service status file")

    @field_validator("log_file", "status_file")
    @classmethod
    def expand_optional_paths(cls, v: str | None) -> str | None:
        """Expand ~ in optional paths."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class MirrorConfig(BaseModel):
    """Root configuration model for bucketmirror."""

    watch_root: str = Field(description="Local directory mirrored into the bucket")
    store: StoreConfig = Field(description="Object store settings")
    sync: SyncConfig = Field(default_factory=SyncConfig, description="Sync settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")

    @field_validator("watch_root")
    @classmethod
    def expand_watch_root(cls, v: str) -> str:
        """Expand ~ and make the watch root absolute."""
        return str(Path(v).expanduser().resolve())

    @property
    def watch_root_path(self) -> Path:
        """Watch root as a Path."""
        return Path(self.watch_root)
