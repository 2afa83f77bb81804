"""Shared fixtures for task board tests."""

import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Make board_server importable when running from a source checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.persistence import MemoryPersistence
from taskboard.store import TaskBoardStore


@pytest.fixture
def clock():
    """Deterministic clock: every call is one second later than the last."""
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: (start + timedelta(seconds=next(ticks))).isoformat()


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def store(clock, persistence):
    return TaskBoardStore(persistence=persistence, clock=clock)
