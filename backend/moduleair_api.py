# file: backend/moduleair_api.py

import asyncio
import logging
import math
import ssl
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp
import certifi
import pytz

from backend.config import MODULEAIR_API_URL
from backend.models import HistoricalPoint, SensorConfig, StationData
from historical.models import TimeStep
from historical.pollutants import POLLUTANTS

SENSOR_TYPE = "ModuleAir"
CHANNELS = ["pm1", "pm25", "pm10", "co2", "cov", "temp", "hum"]
TIMESTEP_FREQ = {
    TimeStep.INSTANT: "2m",
    TimeStep.QUARTER_HOUR: "15m",
    TimeStep.HOUR: "1h",
    TimeStep.DAY: "1d",
}
MISSING_VALUES = ("", "-1")


def create_session() -> aiohttp.ClientSession:
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    return aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=ssl_context),
                                 timeout=aiohttp.ClientTimeout(total=30))


def relative_offset(timestamp: str, now: datetime | None = None, round_up: bool = True) -> str:
    """Express an ISO timestamp as the vendor's relative offset from now ('-5h', '-7d', 'now').

    Window starts round away from now so the whole window is covered; window
    ends round towards now so no point before the end is cut off.
    """
    now = now or datetime.now(pytz.utc)
    moment = datetime.fromisoformat(timestamp)
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    seconds = (now - moment).total_seconds()
    if seconds <= 0:
        return "now"
    rounding = math.ceil if round_up else math.floor
    hours = rounding(seconds / 3600)
    if hours < 1:
        return "now"
    if hours <= 24:
        return f"-{hours}h"
    return f"-{rounding(seconds / 86400)}d"


def value_keys(pollutant: str) -> List[str]:
    """Spellings the vendor uses for a channel, most specific first."""
    candidates = [
        pollutant.upper(),
        pollutant,
        pollutant.lower(),
        pollutant.replace("pm", "PM"),
        pollutant.replace("pm", "PM").replace("25", "2.5"),
        pollutant.replace("pm", "PM").replace("1", "1.0"),
    ]
    return list(dict.fromkeys(candidates))


def extract_value(point: Dict[str, Any], pollutant: str) -> Optional[float]:
    for key in value_keys(pollutant):
        if point.get(key) is not None:
            raw = point[key]
            break
    else:
        return None
    if raw in MISSING_VALUES:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def map_historical_point(point: Dict[str, Any], pollutant: str) -> HistoricalPoint | None:
    timestamp = point.get("time") or point.get("timestamp") or point.get("date_debut")
    if not timestamp:
        return None
    config = POLLUTANTS.get(pollutant)
    return HistoricalPoint(
        timestamp=str(timestamp),
        value=extract_value(point, pollutant),
        unit=config.unit if config else ""
    )


def map_station(data: Dict[str, Any], sensor: SensorConfig, pollutant: str = "pm25") -> StationData | None:
    """Map vendor metadata to a station, skipping sensors without usable coordinates."""
    try:
        lat = float(data.get("latitude"))
        lon = float(data.get("longitude"))
    except (TypeError, ValueError):
        return None
    if math.isnan(lat) or math.isnan(lon) or lat == 0 or lon == 0:
        return None

    last_seen = data.get("last_seen_sec")
    value = extract_value(data, pollutant)
    postcode = data.get("cp")
    return StationData(
        id=sensor.sensor_id,
        name=data.get("nom_site") or f"{SENSOR_TYPE} {sensor.sensor_id}",
        lat=lat,
        lon=lon,
        variables={channel: True for channel in CHANNELS},
        last_seen_sec=int(last_seen) if last_seen is not None else None,
        address=data.get("nom_site") or data.get("localisation") or data.get("adresse"),
        value=value,
        status="active" if value is not None and data.get("connected") else "inactive",
        department_id=data.get("departement_id") or (str(postcode)[:2] if postcode else None)
    )


def _auth_params(sensor: SensorConfig) -> Dict[str, str]:
    return {"capteurType": SENSOR_TYPE, "capteurID": sensor.sensor_id, "token": sensor.token,
            "campagne": sensor.campaign}


async def fetch_metadata(session: aiohttp.ClientSession, sensor: SensorConfig) -> Dict[str, Any] | None:
    params = {**_auth_params(sensor), "format": "JSON"}
    async with session.get(f"{MODULEAIR_API_URL}/metadata", params=params) as response:
        response.raise_for_status()
        payload = await response.json(content_type=None)
    if isinstance(payload, list) and payload:
        return payload[0]
    return None


async def fetch_station(session: aiohttp.ClientSession,
                        sensor: SensorConfig,
                        pollutant: str = "pm25") -> StationData | None:
    try:
        data = await fetch_metadata(session, sensor)
    except aiohttp.ClientError as e:
        logging.error(f"Error fetching metadata for ModuleAir sensor {sensor.sensor_id}: {e}")
        return None
    return map_station(data, sensor, pollutant) if data else None


async def fetch_stations(session: aiohttp.ClientSession,
                         sensors: List[SensorConfig],
                         pollutant: str = "pm25") -> List[StationData]:
    """Fetch metadata of every configured sensor in parallel, with the latest value of one pollutant."""
    results = await asyncio.gather(*(fetch_station(session, sensor, pollutant) for sensor in sensors))
    return [station for station in results if station is not None]


async def fetch_historical_data(session: aiohttp.ClientSession,
                                sensor: SensorConfig,
                                pollutant: str,
                                time_step: TimeStep,
                                start: str,
                                end: str) -> List[HistoricalPoint]:
    """Fetch one channel's history; raises aiohttp.ClientError on failure."""
    params = {
        **_auth_params(sensor),
        "start": relative_offset(start),
        "stop": relative_offset(end, round_up=False),
        "freq": TIMESTEP_FREQ.get(time_step, "2m"),
    }
    async with session.get(f"{MODULEAIR_API_URL}/dataNebuleAir", params=params) as response:
        response.raise_for_status()
        payload = await response.json(content_type=None)

    if not isinstance(payload, list):
        logging.warning(f"Unexpected historical payload for sensor {sensor.sensor_id}: {type(payload).__name__}")
        return []
    points = [map_historical_point(point, pollutant) for point in payload if isinstance(point, dict)]
    return [point for point in points if point is not None]
