"""Shared test configuration."""
import os

# Keep test runs from writing dated log files
os.environ.setdefault("LOG_TO_FILE", "0")

import pytest

from tests.factories import NOW, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def now():
    return NOW
