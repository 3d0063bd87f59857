# file: historical/events.py

"""Messages processed by the historical view controller, one at a time."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from historical.models import FetchRequestKey, HistoricalSeries, Station, TimeRange, TimeStep


@dataclass(frozen=True)
class SelectStation:
    station: Optional[Station]


@dataclass(frozen=True)
class TogglePollutant:
    code: str


@dataclass(frozen=True)
class ChangeTimeRange:
    time_range: TimeRange


@dataclass(frozen=True)
class ChangeTimeStep:
    time_step: TimeStep


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class Close:
    pass


class FetchKind(str, Enum):
    LOAD = "load"
    AUGMENT = "augment"


@dataclass(frozen=True)
class FetchRequest:
    kind: FetchKind
    key: FetchRequestKey
    session: int
    start: str
    end: str

    @property
    def station_id(self) -> str:
        return self.key.station_id

    @property
    def pollutants(self) -> Tuple[str, ...]:
        return self.key.pollutants

    @property
    def context(self) -> Tuple[str, str, TimeStep]:
        """Station, range and step shared by every series of one view."""
        return self.key.station_id, self.key.time_range, self.key.time_step


@dataclass(frozen=True)
class FetchSettled:
    request: FetchRequest
    series: Dict[str, HistoricalSeries] = field(default_factory=dict)
    error: Optional[BaseException] = None
