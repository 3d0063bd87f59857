# file: backend/config.py

import json
import os
import logging
from typing import List

from dotenv import load_dotenv
from pydantic import ValidationError

from backend.models import SensorConfig

load_dotenv()

MODULEAIR_API_URL = os.getenv("MODULEAIR_API_URL", "https://api.aircarto.fr/capteurs")
MODULEAIR_SENSORS_FILE = os.getenv("MODULEAIR_SENSORS_FILE", "moduleair_sensors.json")


def load_sensors(path: str | None = None) -> List[SensorConfig]:
    """Load the ModuleAir sensor list (id, token, campaign) from a JSON file."""
    path = path or os.getenv("MODULEAIR_SENSORS_FILE", MODULEAIR_SENSORS_FILE)
    if not os.path.exists(path):
        raise ValueError(f"Missing ModuleAir sensors file: {path}")
    try:
        with open(path, "r") as f:
            raw = json.load(f)
        sensors = [SensorConfig.model_validate(entry) for entry in raw]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise ValueError(f"Invalid ModuleAir sensors file {path}: {e}") from e

    logging.info(f"Loaded {len(sensors)} ModuleAir sensors from {path}")
    return sensors
