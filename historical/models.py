# file: historical/models.py

import math
from datetime import date
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TimeStep(str, Enum):
    """Aggregation granularity of historical samples."""
    INSTANT = "instant"
    QUARTER_HOUR = "quarter_hour"
    HOUR = "hour"
    DAY = "day"


ALL_TIME_STEPS: Tuple[TimeStep, ...] = tuple(TimeStep)


class Preset(str, Enum):
    LAST_3_HOURS = "3h"
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"


class ViewStatus(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class PresetRange(BaseModel):
    """Named relative window evaluated against the current moment."""
    model_config = ConfigDict(frozen=True)

    type: Literal["preset"] = "preset"
    preset: Preset = Preset.LAST_24_HOURS


class CustomRange(BaseModel):
    """Explicit pair of calendar dates, both inclusive."""
    model_config = ConfigDict(frozen=True)

    type: Literal["custom"] = "custom"
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_order(self) -> "CustomRange":
        if self.start_date > self.end_date:
            raise ValueError("Invalid date range: start_date must be <= end_date")
        return self


TimeRange = Annotated[Union[PresetRange, CustomRange], Field(discriminator="type")]


class Station(BaseModel):
    """A fixed sensor station and the channels it measures."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier of the station")
    name: str
    lat: float = 0.0
    lon: float = 0.0
    variables: Dict[str, bool] = Field(default_factory=dict, description="Pollutant code -> in service")
    last_seen_sec: Optional[int] = None
    address: Optional[str] = None

    def has_pollutant(self, code: str) -> bool:
        return self.variables.get(code, False)


class Sample(BaseModel):
    """Single historical measurement; value is None when missing."""
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(..., description="Timestamp in ISO format")
    value: Optional[float] = None
    unit: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(number) else number


HistoricalSeries = List[Sample]


class PollutantConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    unit: str = "µg/m³"
    supported_time_steps: Optional[Tuple[TimeStep, ...]] = None


class ChartControls(BaseModel):
    """Mutable session state of the historical chart."""
    selected_pollutants: List[str] = Field(default_factory=list)
    time_range: TimeRange = Field(default_factory=PresetRange)
    time_step: TimeStep = TimeStep.HOUR

    @property
    def primary_pollutant(self) -> Optional[str]:
        return self.selected_pollutants[0] if self.selected_pollutants else None


class Statistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    mean: float
    max: float
    min: float
    unit: str


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ViewStatus = ViewStatus.CLOSED
    station_id: Optional[str] = None
    message: Optional[str] = None


class FetchRequestKey(NamedTuple):
    """Identity of a logical fetch; equal keys are duplicates."""
    station_id: str
    pollutants: Tuple[str, ...]
    time_range: str
    time_step: TimeStep
