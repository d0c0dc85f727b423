import threading
from datetime import datetime, timedelta, timezone

import pytest

from logroller.config import RotationConfig


class FakeClock:
    """Deterministic time_func: each call returns the current time, then advances it."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = self.now
            self.now = now + self.step
            return now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_config(tmp_path):
    """Build a RotationConfig whose active file lives in tmp_path."""

    def _make(**overrides):
        defaults = {
            "filename": str(tmp_path / "app.log"),
            "max_size_bytes": 1024,
        }
        defaults.update(overrides)
        return RotationConfig(**defaults)

    return _make


@pytest.fixture
def frozen_clock():
    """Clock that never advances, so every rotation lands in the same millisecond."""
    return FakeClock(step=timedelta(0))
