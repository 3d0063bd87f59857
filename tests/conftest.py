import asyncio
from datetime import datetime, timedelta

import pytest
import pytz

from historical.config import ViewConfig
from historical.controller import HistoricalViewController
from historical.models import Station

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=pytz.utc)


class FakeFetcher:
    """Stand-in for the historical fetch collaborator.

    Records every call; calls for a station listed in `gates` wait until the
    gate is set, calls listed in `failures` raise.
    """

    def __init__(self):
        self.calls = []
        self.values = {}
        self.gates = {}
        self.failures = set()

    async def __call__(self, station_id, pollutant, time_step, start, end):
        self.calls.append((station_id, pollutant, time_step, start, end))
        gate = self.gates.get(station_id)
        if gate is not None:
            await gate.wait()
        if (station_id, pollutant) in self.failures:
            raise RuntimeError(f"upstream error for {station_id}/{pollutant}")
        values = self.values.get((station_id, pollutant), [10, 20, 30])
        return [
            {"timestamp": f"2026-10-18T{i:02d}:00:00+00:00", "value": value, "unit": "µg/m³"}
            for i, value in enumerate(values)
        ]

    def pollutants_called(self):
        return [call[1] for call in self.calls]


class FakeClock:
    """Controller clock that only moves when a test advances it."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


async def wait_until(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def config():
    return ViewConfig(notice_delay=5)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(fetcher, config, clock):
    return HistoricalViewController(fetcher, config, clock=clock)


@pytest.fixture
def station():
    return Station(id="S1", name="Site_1", lat=43.3, lon=5.4,
                   variables={"pm25": True, "pm10": True, "co2": True, "temp": False})


@pytest.fixture
def other_station():
    return Station(id="S2", name="Site_2", lat=43.5, lon=5.5, variables={"pm25": True})
