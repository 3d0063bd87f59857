# file: historical/policy.py

"""
Range/step policy.

Each time step only keeps a limited history on the vendor side, so a range
that is too long for the active step is shrunk to fit instead of being sent
as an expensive (or rejected) request.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, Mapping, Optional, Tuple

import pytz

from historical.models import (
    ALL_TIME_STEPS,
    CustomRange,
    PollutantConfig,
    Preset,
    PresetRange,
    TimeRange,
    TimeStep,
)

DEFAULT_MAX_HISTORY_DAYS: Dict[TimeStep, Optional[int]] = {
    TimeStep.INSTANT: 1,
    TimeStep.QUARTER_HOUR: 7,
    TimeStep.HOUR: 30,
    TimeStep.DAY: None,
}

PRESET_DAYS: Dict[Preset, float] = {
    Preset.LAST_3_HOURS: 0.125,
    Preset.LAST_24_HOURS: 1,
    Preset.LAST_7_DAYS: 7,
    Preset.LAST_30_DAYS: 30,
}


def utc_today() -> date:
    return datetime.now(pytz.utc).date()


def max_history_days(step: TimeStep, limits: Optional[Mapping[TimeStep, Optional[int]]] = None) -> Optional[int]:
    """Maximum retrievable history for a time step, None when unbounded."""
    limits = DEFAULT_MAX_HISTORY_DAYS if limits is None else limits
    return limits.get(step)


def effective_duration(time_range: TimeRange) -> float:
    """Duration of a time range in days."""
    if isinstance(time_range, PresetRange):
        return PRESET_DAYS[time_range.preset]
    return math.ceil((time_range.end_date - time_range.start_date) / timedelta(days=1))


def reconcile(time_range: TimeRange,
              step: TimeStep,
              today: Optional[date] = None,
              limits: Optional[Mapping[TimeStep, Optional[int]]] = None) -> Tuple[TimeRange, bool]:
    """Shrink a range to the maximum history of a step, keeping its end."""
    max_days = max_history_days(step, limits)
    if max_days is None or effective_duration(time_range) <= max_days:
        return time_range, False

    if isinstance(time_range, PresetRange):
        end_date = today or utc_today()
    else:
        end_date = time_range.end_date
    corrected = CustomRange(start_date=end_date - timedelta(days=max_days), end_date=end_date)
    return corrected, True


def is_step_valid_for_range(step: TimeStep,
                            time_range: TimeRange,
                            limits: Optional[Mapping[TimeStep, Optional[int]]] = None) -> bool:
    max_days = max_history_days(step, limits)
    return max_days is None or effective_duration(time_range) <= max_days


def supported_steps(pollutant_codes: Iterable[str],
                    pollutants: Mapping[str, PollutantConfig]) -> Tuple[TimeStep, ...]:
    """Time steps supported by every selected pollutant, in enumeration order.

    Pollutants that declare no steps do not narrow the set. An empty
    intersection falls back to every step so the step selector never ends up
    with nothing to choose from.
    """
    supported = list(ALL_TIME_STEPS)
    for code in pollutant_codes:
        config = pollutants.get(code)
        if config and config.supported_time_steps:
            supported = [step for step in supported if step in config.supported_time_steps]
    return tuple(supported) if supported else ALL_TIME_STEPS


def initial_step(pollutant_codes: Iterable[str],
                 pollutants: Mapping[str, PollutantConfig],
                 fallback: TimeStep) -> TimeStep:
    supported = supported_steps(pollutant_codes, pollutants)
    return fallback if fallback in supported else supported[0]


def range_descriptor(time_range: TimeRange) -> str:
    if isinstance(time_range, PresetRange):
        return time_range.preset.value
    return f"{time_range.start_date.isoformat()}/{time_range.end_date.isoformat()}"


def fetch_window(time_range: TimeRange, now: Optional[datetime] = None) -> Tuple[str, str]:
    """Resolve a range into ISO start/end timestamps for the fetch collaborator."""
    if isinstance(time_range, CustomRange):
        start = datetime.combine(time_range.start_date, time.min, tzinfo=pytz.utc)
        end = datetime.combine(time_range.end_date, time(23, 59, 59, 999000), tzinfo=pytz.utc)
        return start.isoformat(), end.isoformat()

    now = now or datetime.now(pytz.utc)
    start = now - timedelta(days=PRESET_DAYS[time_range.preset])
    return start.isoformat(), now.isoformat()
