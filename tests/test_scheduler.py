"""
Tests for the auto refresh timer.
"""
import threading

import pytest

from processors.scheduler import AutoRefresher


class TestAutoRefresher:
    """Tests for AutoRefresher."""

    def test_requires_callback(self):
        with pytest.raises(ValueError):
            AutoRefresher(60)

    def test_requires_positive_interval(self):
        with pytest.raises(ValueError):
            AutoRefresher(0, lambda: None)

    def test_run_once_counts(self):
        calls = []
        refresher = AutoRefresher(60, lambda: calls.append(1))
        refresher.run_once()
        refresher.run_once()
        assert refresher.runs == 2
        assert calls == [1, 1]

    def test_failed_run_does_not_raise(self):
        def boom():
            raise RuntimeError("database locked")

        refresher = AutoRefresher(60, boom)
        refresher.run_once()
        refresher.run_once()
        assert refresher.runs == 2

    def test_start_and_stop_idempotent(self):
        refresher = AutoRefresher(3600, lambda: None)
        assert refresher.start()
        assert not refresher.start()
        assert refresher.is_running

        assert refresher.stop(timeout=5)
        assert not refresher.stop()
        assert not refresher.is_running

    def test_runs_on_interval_and_survives_errors(self):
        done = threading.Event()
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first run fails")
            done.set()

        refresher = AutoRefresher(0.01, flaky)
        refresher.start()
        try:
            assert done.wait(5)
        finally:
            refresher.stop(timeout=5)
        assert refresher.runs >= 2

    def test_restart_after_stop(self):
        refresher = AutoRefresher(3600, lambda: None)
        refresher.start()
        refresher.stop(timeout=5)
        assert refresher.start()
        refresher.stop(timeout=5)
