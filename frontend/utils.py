#file: frontend/utils.py

from datetime import datetime, timedelta

import pandas as pd
import pytz

from historical.models import CustomRange, Preset, PresetRange

CUSTOM = "custom"


def get_station_names_and_dict(available_stations) :
    """Generate station names and mapping dictionary."""
    station_names = [station.name.replace("_", " ") for station in available_stations.values()]
    station_dict = {station.name.replace("_", " ") : station_id for station_id, station in available_stations.items()}
    return station_names, station_dict


def format_last_seen(last_seen_sec, now = None) :
    """Human readable age of the last transmission of a station."""
    if last_seen_sec is None :
        return None
    minutes = int(last_seen_sec // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1 :
        return "Less than a minute ago"
    if minutes < 60 :
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24 :
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days < 7 :
        return f"{days} day{'s' if days > 1 else ''} ago"

    now = now or datetime.now(pytz.utc)
    last_seen = now - timedelta(seconds = last_seen_sec)
    return f"Last transmission: {last_seen.strftime('%Y-%m-%d')}"


def selected_time_range(choice, dates, from_date_input = False) :
    """Time range picked by the period widgets, None when there is nothing to apply.

    The date input only matters while the custom period is chosen.
    """
    if choice != CUSTOM :
        return None if from_date_input else PresetRange(preset = Preset(choice))
    if not isinstance(dates, (tuple, list)) or len(dates) != 2 :
        return None
    return CustomRange(start_date = dates[0], end_date = dates[1])


def process_historical_data(series, pollutants) :
    """Convert the controller's per-pollutant series into one long DataFrame."""
    rows = [
        {
            "timestamp" : sample.timestamp,
            "value" : sample.value,
            "pollutant" : code,
            "pollutant_name" : pollutants[code].name if code in pollutants else code.upper()
        }
        for code, samples in series.items()
        for sample in samples
    ]
    if not rows :
        return pd.DataFrame(columns = ["timestamp", "value", "pollutant", "pollutant_name"])

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc = True, errors = "coerce")
    df = df.dropna(subset = ["timestamp"]).sort_values(by = "timestamp")

    return df
