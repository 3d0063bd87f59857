from datetime import date, datetime

import pytest
import pytz
from pydantic import ValidationError

from historical.models import ALL_TIME_STEPS, CustomRange, PollutantConfig, Preset, PresetRange, TimeStep
from historical.pollutants import POLLUTANTS
from historical.policy import (
    effective_duration,
    fetch_window,
    initial_step,
    is_step_valid_for_range,
    max_history_days,
    range_descriptor,
    reconcile,
    supported_steps,
)

TODAY = date(2026, 10, 18)

RANGES = [
    PresetRange(preset=Preset.LAST_3_HOURS),
    PresetRange(preset=Preset.LAST_24_HOURS),
    PresetRange(preset=Preset.LAST_7_DAYS),
    PresetRange(preset=Preset.LAST_30_DAYS),
    CustomRange(start_date=date(2026, 10, 18), end_date=date(2026, 10, 18)),
    CustomRange(start_date=date(2026, 10, 1), end_date=date(2026, 10, 18)),
    CustomRange(start_date=date(2025, 1, 1), end_date=date(2026, 3, 1)),
]


def test_custom_range_rejects_reversed_dates():
    with pytest.raises(ValidationError):
        CustomRange(start_date=date(2026, 10, 2), end_date=date(2026, 10, 1))


def test_effective_duration():
    assert effective_duration(PresetRange(preset=Preset.LAST_3_HOURS)) == 0.125
    assert effective_duration(PresetRange(preset=Preset.LAST_30_DAYS)) == 30
    assert effective_duration(CustomRange(start_date=date(2026, 10, 1), end_date=date(2026, 10, 8))) == 7
    assert effective_duration(CustomRange(start_date=TODAY, end_date=TODAY)) == 0


def test_max_history_days_defaults_and_overrides():
    assert max_history_days(TimeStep.INSTANT) == 1
    assert max_history_days(TimeStep.HOUR) == 30
    assert max_history_days(TimeStep.DAY) is None
    assert max_history_days(TimeStep.HOUR, {TimeStep.HOUR: 3}) == 3


@pytest.mark.parametrize("time_range", RANGES)
@pytest.mark.parametrize("step", list(TimeStep))
def test_reconcile_is_idempotent(time_range, step):
    once = reconcile(time_range, step, TODAY)
    twice = reconcile(once[0], step, TODAY)
    assert twice == (once[0], False)
    assert effective_duration(once[0]) <= (max_history_days(step) or float("inf"))


@pytest.mark.parametrize("time_range", RANGES)
def test_reconcile_never_corrects_unbounded_steps(time_range):
    assert reconcile(time_range, TimeStep.DAY, TODAY) == (time_range, False)


def test_reconcile_preset_ends_today():
    corrected, was_corrected = reconcile(PresetRange(preset=Preset.LAST_7_DAYS), TimeStep.INSTANT, TODAY)
    assert was_corrected
    assert corrected == CustomRange(start_date=date(2026, 10, 17), end_date=TODAY)


def test_reconcile_custom_keeps_its_end():
    time_range = CustomRange(start_date=date(2026, 1, 1), end_date=date(2026, 6, 30))
    corrected, was_corrected = reconcile(time_range, TimeStep.QUARTER_HOUR, TODAY)
    assert was_corrected
    assert corrected == CustomRange(start_date=date(2026, 6, 23), end_date=date(2026, 6, 30))


def test_reconcile_leaves_fitting_range_alone():
    time_range = PresetRange(preset=Preset.LAST_24_HOURS)
    assert reconcile(time_range, TimeStep.INSTANT, TODAY) == (time_range, False)


def test_supported_steps_of_empty_selection_is_full_set():
    assert supported_steps([], POLLUTANTS) == ALL_TIME_STEPS


def test_supported_steps_intersects_declared_steps():
    assert supported_steps(["pm25", "co2"], POLLUTANTS) == (TimeStep.QUARTER_HOUR, TimeStep.HOUR, TimeStep.DAY)
    # temp declares nothing and does not narrow
    assert supported_steps(["co2", "temp"], POLLUTANTS) == supported_steps(["co2"], POLLUTANTS)


def test_supported_steps_falls_back_when_intersection_is_empty():
    pollutants = {
        "a": PollutantConfig(code="a", name="A", supported_time_steps=(TimeStep.INSTANT,)),
        "b": PollutantConfig(code="b", name="B", supported_time_steps=(TimeStep.DAY,)),
    }
    assert supported_steps(["a"], pollutants) == (TimeStep.INSTANT,)
    assert supported_steps(["a", "b"], pollutants) == ALL_TIME_STEPS


def test_initial_step():
    assert initial_step(["pm25"], POLLUTANTS, TimeStep.INSTANT) == TimeStep.INSTANT
    assert initial_step(["co2"], POLLUTANTS, TimeStep.INSTANT) == TimeStep.QUARTER_HOUR


def test_is_step_valid_for_range():
    week = PresetRange(preset=Preset.LAST_7_DAYS)
    assert not is_step_valid_for_range(TimeStep.INSTANT, week)
    assert is_step_valid_for_range(TimeStep.QUARTER_HOUR, week)
    assert is_step_valid_for_range(TimeStep.DAY, week)


def test_fetch_window_for_preset_uses_now():
    now = datetime(2026, 10, 18, 12, 0, tzinfo=pytz.utc)
    start, end = fetch_window(PresetRange(preset=Preset.LAST_3_HOURS), now)
    assert start == "2026-10-18T09:00:00+00:00"
    assert end == "2026-10-18T12:00:00+00:00"


def test_fetch_window_for_custom_covers_whole_days():
    start, end = fetch_window(CustomRange(start_date=date(2026, 10, 1), end_date=date(2026, 10, 2)))
    assert start == "2026-10-01T00:00:00+00:00"
    assert end == "2026-10-02T23:59:59.999000+00:00"


def test_range_descriptor():
    assert range_descriptor(PresetRange(preset=Preset.LAST_7_DAYS)) == "7d"
    assert range_descriptor(CustomRange(start_date=date(2026, 10, 1), end_date=date(2026, 10, 2))) == "2026-10-01/2026-10-02"
