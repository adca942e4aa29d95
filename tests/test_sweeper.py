# bucketmirror Sweeper Tests
# Tests for periodic reconciliation between the watch root and the bucket

import threading
import time
from pathlib import Path

import pytest

from bucketmirror.store.base import RemoteObjectInfo
from bucketmirror.store.local import LocalDiskStore
from bucketmirror.sync.sweeper import DecisionAction, ReconciliationSweeper, SweepResult, decide


class TestDecide:
    """Tests for the per-file comparison."""

    def test_missing_remotely(self, watch_root: Path, make_file):
        """Test upload when the object is missing."""
        path = make_file(watch_root, "a.txt")
        assert decide("a.txt", path, None).action == DecisionAction.UPLOAD

    def test_identical(self, watch_root: Path, make_file):
        """Test skip when size and mtime match."""
        path = make_file(watch_root, "a.txt", "abc", mtime=1_700_000_000.0)
        remote = RemoteObjectInfo("a.txt", 3, 1_700_000_000.0)
        assert decide("a.txt", path, remote).action == DecisionAction.SKIP

    def test_size_differs(self, watch_root: Path, make_file):
        """Test upload when sizes differ."""
        path = make_file(watch_root, "a.txt", "abcd", mtime=1_700_000_000.0)
        decision = decide("a.txt", path, RemoteObjectInfo("a.txt", 3, 1_700_000_000.0))
        assert decision.action == DecisionAction.UPLOAD
        assert "size" in decision.reason

    def test_mtime_differs(self, watch_root: Path, make_file):
        """Test upload when mtimes differ."""
        path = make_file(watch_root, "a.txt", "abc", mtime=1_700_000_001.0)
        decision = decide("a.txt", path, RemoteObjectInfo("a.txt", 3, 1_700_000_000.0))
        assert decision.action == DecisionAction.UPLOAD
        assert "modification time" in decision.reason

    def test_same_size_and_mtime_different_content(self, watch_root: Path, make_file):
        """Equal metadata is treated as equal content."""
        path = make_file(watch_root, "a.txt", "xyz", mtime=1_700_000_000.0)
        assert decide("a.txt", path, RemoteObjectInfo("a.txt", 3, 1_700_000_000.0)).action == DecisionAction.SKIP


class TestSweep:
    """Tests for a full reconciliation pass."""

    def test_converges(self, watch_root: Path, local_store: LocalDiskStore, make_file):
        """Test one sweep makes the bucket match the tree."""
        make_file(watch_root, "notes/todo.txt", "buy milk")
        make_file(watch_root, "photos/2024/a.jpg", "jpeg")
        sweeper = ReconciliationSweeper(watch_root, local_store)

        result = sweeper.sweep()

        assert result.success
        assert result.uploaded == 2
        assert sorted(i.key for i in local_store.list()) == ["notes/todo.txt", "photos/2024/a.jpg"]

    def test_second_pass_is_idle(self, watch_root: Path, local_store: LocalDiskStore, make_file):
        """Test a second sweep changes nothing."""
        make_file(watch_root, "a.txt")
        make_file(watch_root, "b/c.txt")
        sweeper = ReconciliationSweeper(watch_root, local_store)
        sweeper.sweep()

        result = sweeper.sweep()

        assert result.uploaded == 0
        assert result.deleted == 0
        assert result.skipped == 2

    def test_unchanged_file_makes_no_upload(self, watch_root: Path, memory_store, make_file):
        """Test unchanged files are not uploaded again."""
        make_file(watch_root, "a.txt")
        sweeper = ReconciliationSweeper(watch_root, memory_store)
        sweeper.sweep()
        memory_store.calls.clear()

        sweeper.sweep()

        assert memory_store.calls_of("put") == []
        assert memory_store.calls_of("stat") == ["a.txt"]

    def test_deletes_orphans(self, watch_root: Path, local_store: LocalDiskStore, make_file):
        """Test objects without a local file are deleted."""
        keep = make_file(watch_root, "keep.txt")
        gone = make_file(watch_root, "old/gone.txt")
        sweeper = ReconciliationSweeper(watch_root, local_store)
        sweeper.sweep()
        gone.unlink()

        result = sweeper.sweep()

        assert result.deleted == 1
        assert [i.key for i in local_store.list()] == [keep.name]

    def test_remote_key_shadowed_by_directory(self, watch_root: Path, memory_store, make_file):
        """A key whose local path is now a directory is deleted."""
        make_file(watch_root, "thing/inner.txt")
        memory_store.objects["thing"] = RemoteObjectInfo("thing", 1, 0.0)

        ReconciliationSweeper(watch_root, memory_store).sweep()

        assert sorted(memory_store.objects) == ["thing/inner.txt"]

    def test_unmappable_remote_key_deleted(self, watch_root: Path, memory_store):
        """Test keys with no local path are deleted."""
        memory_store.objects["weird//key"] = RemoteObjectInfo("weird//key", 1, 0.0)

        result = ReconciliationSweeper(watch_root, memory_store).sweep()

        assert result.deleted == 1
        assert memory_store.objects == {}

    def test_uploads_before_deletes(self, watch_root: Path, memory_store, make_file):
        """Test uploads are applied before deletes."""
        make_file(watch_root, "new.txt")
        memory_store.objects["orphan.txt"] = RemoteObjectInfo("orphan.txt", 1, 0.0)

        ReconciliationSweeper(watch_root, memory_store).sweep()

        applied = [(name, key) for name, key in memory_store.calls if name in ("put", "delete")]
        assert applied == [("put", "new.txt"), ("delete", "orphan.txt")]

    def test_errors_do_not_abort(self, watch_root: Path, memory_store, make_file):
        """Test per-key errors are recorded and the sweep goes on."""
        for key in ("a.txt", "b.txt", "c.txt"):
            make_file(watch_root, key)
        memory_store.fail_keys.add("b.txt")

        result = ReconciliationSweeper(watch_root, memory_store).sweep()

        assert not result.success
        assert len(result.errors) == 1
        assert sorted(memory_store.objects) == ["a.txt", "c.txt"]

    def test_listing_failure_keeps_uploads(self, watch_root: Path, memory_store, make_file):
        """Test a listing failure keeps finished uploads."""
        make_file(watch_root, "a.txt")
        memory_store.fail_list = True

        result = ReconciliationSweeper(watch_root, memory_store).sweep()

        assert result.uploaded == 1
        assert any(e.startswith("list") for e in result.errors)

    def test_excluded_keys_left_alone(self, watch_root: Path, memory_store, make_file):
        """Test excluded keys are neither uploaded nor deleted."""
        make_file(watch_root, "scratch.tmp")
        memory_store.objects["remote-only.tmp"] = RemoteObjectInfo("remote-only.tmp", 1, 0.0)

        ReconciliationSweeper(watch_root, memory_store, exclude=["*.tmp"]).sweep()

        assert memory_store.calls_of("put") == []
        assert "remote-only.tmp" in memory_store.objects

    def test_dry_run_touches_nothing(self, watch_root: Path, memory_store, make_file):
        """Test dry run plans without writing."""
        make_file(watch_root, "a.txt")
        memory_store.objects["orphan.txt"] = RemoteObjectInfo("orphan.txt", 1, 0.0)
        sweeper = ReconciliationSweeper(watch_root, memory_store)

        result = sweeper.sweep(dry_run=True)

        assert result.dry_run
        assert {(d.key, d.action) for d in result.pending} == {
            ("a.txt", DecisionAction.UPLOAD),
            ("orphan.txt", DecisionAction.DELETE),
        }
        assert memory_store.calls_of("put") == []
        assert memory_store.calls_of("delete") == []
        assert sweeper.status().passes == 0

    def test_on_complete_and_status(self, watch_root: Path, memory_store, make_file):
        """Test completion callback and status counters."""
        make_file(watch_root, "a.txt")
        results: list[SweepResult] = []
        sweeper = ReconciliationSweeper(watch_root, memory_store, on_complete=results.append)

        result = sweeper.sweep()

        assert results == [result]
        status = sweeper.status()
        assert status.passes == 1
        assert status.running is False
        assert status.last_result is result
        assert result.to_dict()["uploaded"] == 1


class TestRun:
    """Tests for the periodic loop."""

    def test_sweep_on_start_and_trigger(self, watch_root: Path, memory_store):
        """Test the startup sweep and manual trigger."""
        sweeper = ReconciliationSweeper(watch_root, memory_store, interval=3600)
        stop = threading.Event()
        thread = threading.Thread(target=sweeper.run, args=(stop,), kwargs={"sweep_on_start": True})
        thread.start()
        try:
            _wait_until(lambda: sweeper.status().passes == 1)
            sweeper.trigger()
            _wait_until(lambda: sweeper.status().passes == 2)
        finally:
            stop.set()
            sweeper.trigger()
            thread.join(timeout=2)

        assert not thread.is_alive()

    def test_paused_skips_sweeps(self, watch_root: Path, memory_store):
        """Test paused ticks are skipped."""
        sweeper = ReconciliationSweeper(watch_root, memory_store, interval=0.01)
        stop, paused = threading.Event(), threading.Event()
        paused.set()
        thread = threading.Thread(target=sweeper.run, args=(stop, paused))
        thread.start()
        time.sleep(0.1)
        stop.set()
        thread.join(timeout=2)

        assert sweeper.status().passes == 0


def _wait_until(condition, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            pytest.fail("condition not reached in time")
        time.sleep(0.01)
