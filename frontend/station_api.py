#file: frontend/station_api.py

import logging
import requests

from frontend.data_fetch import BACKEND_URL
from historical.models import Station


def fetch_stations() :
    """Fetch the station list (with coordinates) from the backend."""
    try:
        response = requests.get(f"{BACKEND_URL}/stations", timeout = 30)
        response.raise_for_status()
        stations = response.json()
        return {
            str(station["id"]): Station.model_validate(station)
            for station in stations
        }
    except requests.RequestException as e:
        logging.error(f"Error fetching stations from backend: {e}")
        return {}
