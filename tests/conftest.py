# bucketmirror Test Fixtures
# Pytest fixtures for bucketmirror tests

from __future__ import annotations

import os
import queue
import tempfile
from collections.abc import Generator, Iterator
from pathlib import Path
from typing import Optional

import pytest
import yaml

from bucketmirror.errors import LocalFileUnreadable, StoreUnavailable, WatchSubscriptionFailed
from bucketmirror.store.base import ObjectStoreClient, RemoteObjectInfo
from bucketmirror.store.local import LocalDiskStore
from bucketmirror.sync.events import ChangeEvent
from bucketmirror.sync.watcher import NotificationSource


class MemoryStore(ObjectStoreClient):
    """In-memory store that records every call."""

    def __init__(self, bucket: str = "mirror"):
        super().__init__(bucket)
        self.objects: dict[str, RemoteObjectInfo] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_keys: set[str] = set()
        self.fail_list = False

    @property
    def name(self) -> str:
        return "memory"

    def _check(self, key: str) -> None:
        if key in self.fail_keys:
            raise StoreUnavailable(f"simulated failure for {key}")

    def ensure_bucket(self, name: Optional[str] = None) -> None:
        self.calls.append(("ensure_bucket", name or self.bucket))

    def put(self, key: str, local_path: Path) -> None:
        self.calls.append(("put", key))
        self._check(key)
        try:
            st = Path(local_path).stat()
        except OSError as e:
            raise LocalFileUnreadable(f"Cannot read {local_path}: {e}") from e
        self.objects[key] = RemoteObjectInfo(key=key, size=st.st_size, last_modified=st.st_mtime)

    def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        self._check(key)
        self.objects.pop(key, None)

    def list(self, prefix: str = "") -> Iterator[RemoteObjectInfo]:
        self.calls.append(("list", prefix))
        if self.fail_list:
            raise StoreUnavailable("simulated listing failure")
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield self.objects[key]

    def stat(self, key: str) -> Optional[RemoteObjectInfo]:
        self.calls.append(("stat", key))
        self._check(key)
        return self.objects.get(key)

    def calls_of(self, method: str) -> list[str]:
        """Keys passed to one method, in call order."""
        return [key for name, key in self.calls if name == method]


class FakeSource(NotificationSource):
    """Scripted notification source."""

    def __init__(self):
        self.events: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.subscribed: list[Path] = []
        self.fail_on: set[Path] = set()
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def subscribe(self, directory: Path) -> None:
        if directory in self.fail_on:
            raise WatchSubscriptionFailed(f"Cannot watch {directory}")
        self.subscribed.append(directory)

    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self.closed = True

    def push(self, *events: ChangeEvent) -> None:
        for event in events:
            self.events.put(event)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("BUCKETMIRROR_CONFIG", raising=False)
    monkeypatch.delenv("BUCKETMIRROR_ACCESS_KEY", raising=False)
    monkeypatch.delenv("BUCKETMIRROR_SECRET_KEY", raising=False)
    return home


@pytest.fixture
def watch_root(temp_dir: Path) -> Path:
    """Create an empty watch root."""
    root = temp_dir / "watched"
    root.mkdir()
    return root


@pytest.fixture
def store_dir(temp_dir: Path) -> Path:
    """Base directory for the local disk store."""
    path = temp_dir / "store"
    path.mkdir()
    return path


@pytest.fixture
def local_store(store_dir: Path) -> LocalDiskStore:
    """Local disk store with its bucket created."""
    store = LocalDiskStore(store_dir, "mirror")
    store.ensure_bucket()
    return store


@pytest.fixture
def memory_store() -> MemoryStore:
    """In-memory recording store."""
    return MemoryStore()


@pytest.fixture
def fake_source() -> FakeSource:
    """Scripted notification source."""
    return FakeSource()


@pytest.fixture
def sample_config(temp_home: Path, watch_root: Path, store_dir: Path) -> dict:
    """Create sample configuration dict using the local backend."""
    return {
        "watch_root": str(watch_root),
        "store": {
            "backend": "local",
            "bucket": "mirror",
            "local_path": str(store_dir),
        },
        "sync": {
            "interval_seconds": 60,
            "sweep_on_start": False,
            "poll_timeout": 0.05,
            "exclude": ["*.tmp"],
        },
        "output": {
            "verbose": False,
            "colored": False,
            "log_file": None,
            "status_file": str(temp_home / ".config" / "bucketmirror" / "status.yaml"),
        },
    }


@pytest.fixture
def config_file(temp_home: Path, sample_config: dict) -> Path:
    """Create a configuration file."""
    config_dir = temp_home / ".config" / "bucketmirror"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(sample_config, f, default_flow_style=False)

    return config_path


def write_file(root: Path, key: str, content: str = "content", mtime: Optional[float] = None) -> Path:
    """Create a file under root at key, optionally with a fixed mtime."""
    path = root.joinpath(*key.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def make_file():
    """Factory for files with optional fixed mtimes."""
    return write_file
