# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Project root = parent of tests/, so `import microflake` works without install
ROOT = Path(__file__).resolve().parents[1]

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from microflake.main import app  # noqa: E402
from microflake.utils.snowflake import EPOCH  # noqa: E402


class FakeClock:
    """
    Scripted millisecond clock:
    - returns the values in `readings` one per call
    - once they run out, keeps returning the last one
    """

    def __init__(self, *readings: int):
        self.readings = list(readings)
        self.reads = 0

    def __call__(self) -> int:
        index = min(self.reads, len(self.readings) - 1)
        self.reads += 1
        return self.readings[index]


class TickingClock:
    """Returns `start` for the first `ticks_after` reads, then `start + 1`."""

    def __init__(self, start: int, ticks_after: int):
        self.start = start
        self.ticks_after = ticks_after
        self.reads = 0

    def __call__(self) -> int:
        self.reads += 1
        if self.reads > self.ticks_after:
            return self.start + 1
        return self.start


@pytest.fixture
def now_ms() -> int:
    # Some fixed instant well inside the 41-bit range
    return EPOCH + 123_456_789


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
