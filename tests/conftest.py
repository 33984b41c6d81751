# pylint: disable=missing-module-docstring,missing-function-docstring,redefined-outer-name
from datetime import datetime, timedelta, timezone

import pytest

from aquascore.core.logger import Logger
from aquascore.core.storage import MemoryStorage
from aquascore.quality.indices import IndexEngine
from aquascore.quality.thresholds import ThresholdTable
from aquascore.services.store import SampleStore


class TickingClock:
    """Clock returning a fixed start time advanced by ``step`` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture(autouse=True)
def reset_logging():
    """Keep library code from reconfiguring the root logger during tests."""
    Logger._configured = True  # pylint: disable=protected-access
    yield
    Logger._configured = False  # pylint: disable=protected-access


@pytest.fixture
def clock():
    return TickingClock(datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(clock):
    return SampleStore("samples.json", storage=MemoryStorage(), clock=clock)


@pytest.fixture
def lead_only():
    """Threshold table knowing a single metal."""
    return ThresholdTable(metals={"lead": 0.01})


@pytest.fixture
def engine():
    return IndexEngine()


@pytest.fixture
def sample_payload():
    return {
        "sampleId": "GW-001",
        "state": "Punjab",
        "district": "Bathinda",
        "latitude": 30.21,
        "longitude": 74.95,
        "metals": {"lead": 0.004, "iron": 0.15},
        "waterQuality": {"pH": 7.4, "tds": 420, "fluoride": 0.8, "nitrate": 12},
    }
