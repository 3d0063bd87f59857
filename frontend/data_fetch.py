#file: frontend/data_fetch.py

import os
import aiohttp
import logging

from historical.models import Station, TimeStep

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")

async def fetch_station_info(station_id):
    """Fetch site information (channels, last seen, address) of a station asynchronously."""
    url = f"{BACKEND_URL}/stations/{station_id}"
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return Station.model_validate(await response.json())
    except aiohttp.ClientError as e:
        logging.error(f"Error fetching station {station_id}: {e}")
        return None

async def fetch_series(station_id, pollutant, time_step, start, end):
    """Fetch one pollutant's historical series from the backend.

    Errors are raised, not swallowed: the view controller turns them into its error state.
    """
    params = {
        "station_id": station_id,
        "pollutant": pollutant,
        "time_step": TimeStep(time_step).value,
        "start": start,
        "end": end
    }

    async with aiohttp.ClientSession() as session:
        try:
            async with session.get(f"{BACKEND_URL}/historical", params=params) as response:
                response.raise_for_status()
                return await response.json()
        except aiohttp.ClientResponseError as e:
            logging.error(f"[ERROR] HTTP {e.status} fetching {pollutant} for {station_id}: {e.message}")
            raise
        except aiohttp.ClientError as e:
            logging.error(f"[ERROR] Network request failed: {e}")
            raise
