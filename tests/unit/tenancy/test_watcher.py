"""Unit tests for PollingFileWatcher.

Tier 1 tests - polls are driven by hand where possible.
"""

import os
import threading
import time

import pytest
from tenancy.exceptions import WatcherError
from tenancy.watcher import (
    EVENT_CREATED,
    EVENT_DELETED,
    EVENT_MODIFIED,
    FileChangeEvent,
    PollingFileWatcher,
    WatchHandle,
    watch_file,
)


def bump_mtime(path, seconds=5):
    """Move the file's mtime forward so a change is visible regardless of clock resolution."""
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


class TestPoll:
    """Test change detection via poll()."""

    def test_unchanged_file_reports_nothing(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        watcher = PollingFileWatcher(path, lambda e: None)
        # Not started, so the first poll sees the file as new
        assert watcher.poll().kind == EVENT_CREATED
        assert watcher.poll() is None

    def test_modification_detected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        watcher = PollingFileWatcher(path, lambda e: None)
        watcher.poll()

        path.write_text("a: 2\n")
        bump_mtime(path)

        event = watcher.poll()
        assert event == FileChangeEvent(path=str(path), kind=EVENT_MODIFIED)
        assert watcher.poll() is None

    def test_creation_and_deletion_detected(self, tmp_path):
        path = tmp_path / "config.yaml"
        watcher = PollingFileWatcher(path, lambda e: None)
        assert watcher.poll() is None

        path.write_text("a: 1\n")
        assert watcher.poll().kind == EVENT_CREATED

        path.unlink()
        assert watcher.poll().kind == EVENT_DELETED

    def test_event_str(self):
        assert str(FileChangeEvent(path="/x", kind="modified")) == "MODIFIED /x"


class TestLifecycle:
    """Test start/stop."""

    def test_invalid_interval(self, tmp_path):
        with pytest.raises(ValueError):
            PollingFileWatcher(tmp_path / "x", lambda e: None, interval=0)

    def test_missing_parent_raises(self, tmp_path):
        watcher = PollingFileWatcher(tmp_path / "nope" / "config.yaml", lambda e: None)
        with pytest.raises(WatcherError, match="parent directory"):
            watcher.start()

    def test_double_start_raises(self, tmp_path):
        watcher = watch_file(tmp_path / "config.yaml", lambda e: None, interval=0.05)
        try:
            with pytest.raises(WatcherError, match="already started"):
                watcher.start()
        finally:
            watcher.stop()

    def test_stop_joins_thread(self, tmp_path):
        watcher = watch_file(tmp_path / "config.yaml", lambda e: None, interval=0.05)
        assert isinstance(watcher, WatchHandle)
        assert watcher.active is True

        watcher.stop()

        assert watcher.active is False
        assert not watcher._thread.is_alive()

    def test_stop_is_idempotent(self, tmp_path):
        watcher = watch_file(tmp_path / "config.yaml", lambda e: None, interval=0.05)
        watcher.stop()
        watcher.stop()

    def test_delivers_events(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        received = []
        delivered = threading.Event()

        def on_change(event):
            received.append(event)
            delivered.set()

        watcher = watch_file(path, on_change, interval=0.02)
        try:
            path.write_text("a: 2\n")
            bump_mtime(path)
            assert delivered.wait(timeout=2)
        finally:
            watcher.stop()

        assert received[0].kind == EVENT_MODIFIED

    def test_callback_error_does_not_stop_watcher(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        calls = []
        second = threading.Event()

        def on_change(event):
            calls.append(event)
            if len(calls) == 1:
                raise RuntimeError("boom")
            second.set()

        watcher = watch_file(path, on_change, interval=0.02)
        try:
            bump_mtime(path, seconds=5)
            deadline = time.monotonic() + 2
            while not calls and time.monotonic() < deadline:
                time.sleep(0.01)
            bump_mtime(path, seconds=10)
            assert second.wait(timeout=2)
        finally:
            watcher.stop()

        assert watcher.active is False
