"""Tests for the progress monitor."""

from __future__ import annotations

import threading

import pytest

from treefind.models import ProgressSnapshot
from treefind.search.progress import ProgressMonitor

SNAPSHOT = ProgressSnapshot(active_workers=2, queued_directories=5, results=1)


class TestProgressMonitor:
    """Test ProgressMonitor scheduling."""

    def test_ticks_until_stopped(self) -> None:
        """Callback fires repeatedly and not after stop."""
        ticked = threading.Event()
        received = []

        def callback(snapshot: ProgressSnapshot) -> None:
            received.append(snapshot)
            if len(received) >= 3:
                ticked.set()

        monitor = ProgressMonitor(lambda: SNAPSHOT, callback, delay=0.0, interval=0.01)
        monitor.start()
        assert ticked.wait(5)
        monitor.stop()
        count = len(received)
        threading.Event().wait(0.05)

        assert len(received) == count
        assert received[0] == SNAPSHOT
        assert not monitor.running

    def test_no_tick_before_delay(self) -> None:
        """Stopping before the first delay elapses produces no callback."""
        received = []

        monitor = ProgressMonitor(lambda: SNAPSHOT, received.append, delay=10.0, interval=10.0)
        monitor.start()
        monitor.stop()

        assert received == []

    def test_callback_errors_do_not_stop_monitor(self) -> None:
        """A failing callback is logged and ticking continues."""
        ticked = threading.Event()
        calls = []

        def callback(snapshot: ProgressSnapshot) -> None:
            calls.append(snapshot)
            if len(calls) >= 2:
                ticked.set()
            raise ValueError("render failed")

        monitor = ProgressMonitor(lambda: SNAPSHOT, callback, delay=0.0, interval=0.01)
        monitor.start()
        try:
            assert ticked.wait(5)
        finally:
            monitor.stop()

        assert monitor.ticks >= 2

    def test_start_twice_raises(self) -> None:
        """A monitor can only be started once."""
        monitor = ProgressMonitor(lambda: SNAPSHOT, lambda snapshot: None, delay=10.0)
        monitor.start()
        try:
            with pytest.raises(RuntimeError):
                monitor.start()
        finally:
            monitor.stop()

    def test_stop_without_start(self) -> None:
        """Stopping an unstarted monitor is harmless."""
        monitor = ProgressMonitor(lambda: SNAPSHOT, lambda snapshot: None)

        monitor.stop()

        assert not monitor.running
