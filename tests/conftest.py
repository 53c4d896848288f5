# tests/conftest.py
"""
Shared fixtures for successcore tests.

Provides temporary archive roots, a fixed "today" and a deterministic
clock so ordering and future-date checks are reproducible.
"""

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add source to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

TODAY = date(2024, 1, 10)


class TickingClock:
    """Returns strictly increasing UTC datetimes, one second apart."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def archive_root(tmp_path):
    """Path of a not-yet-created archive root."""
    return tmp_path / "archive"


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def tracker(archive_root, clock):
    """A Tracker over a fresh archive with a fixed today (2024-01-10)."""
    from successcore import Tracker

    return Tracker.open(archive_root, today=lambda: TODAY, clock=clock)


@pytest.fixture
def reopen(archive_root, clock):
    """Factory reopening the same archive root, as a new process would."""
    from successcore import Tracker

    def _reopen(**kwargs):
        kwargs.setdefault("today", lambda: TODAY)
        kwargs.setdefault("clock", clock)
        return Tracker.open(archive_root, **kwargs)

    return _reopen
