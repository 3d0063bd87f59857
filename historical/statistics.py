# file: historical/statistics.py

from typing import Mapping, Optional, Sequence

import pandas as pd

from historical.models import HistoricalSeries, PollutantConfig, Statistics

DEFAULT_UNIT = "µg/m³"


def compute_statistics(selection: Sequence[str],
                       series: Mapping[str, HistoricalSeries],
                       pollutants: Mapping[str, PollutantConfig]) -> Optional[Statistics]:
    """Mean, max and min of the primary (first selected) pollutant.

    Returns None rather than zeros when there is nothing valid to summarize.
    """
    if not selection:
        return None
    primary = selection[0]
    samples = series.get(primary)
    if not samples:
        return None

    df = pd.DataFrame([sample.model_dump() for sample in samples])
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    valid = df.dropna(subset=["value"])
    if valid.empty:
        return None

    unit = valid["unit"].iloc[0]
    if not isinstance(unit, str) or not unit:
        config = pollutants.get(primary)
        unit = config.unit if config else DEFAULT_UNIT

    return Statistics(
        mean=float(valid["value"].mean()),
        max=float(valid["value"].max()),
        min=float(valid["value"].min()),
        unit=unit,
    )
