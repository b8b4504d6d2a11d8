"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from smart_todo.config import Config  # noqa: E402
from smart_todo.services.reminders import Scheduler  # noqa: E402
from smart_todo.storage import SQLiteTaskStore  # noqa: E402


# Wednesday
FIXED_NOW = datetime(2024, 5, 1, 10, 0)


class RecordingScheduler(Scheduler):
    """Scheduler that records requests instead of running them."""

    def __init__(self):
        self.scheduled = {}
        self.cancelled = []

    def schedule_at(self, key, when, payload):
        self.scheduled[key] = (when, payload)

    def cancel(self, key):
        self.cancelled.append(key)
        self.scheduled.pop(key, None)

    def cancel_all(self):
        self.cancelled.extend(self.scheduled)
        self.scheduled.clear()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def store(tmp_path, clock):
    """A file-backed store in a temporary directory."""
    return SQLiteTaskStore(tmp_path / "tasks.db", clock=clock)


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the configuration singleton from leaking between tests."""
    Config._instance = None
    yield
    Config._instance = None
