# file: historical/pollutants.py

from typing import Dict

from historical.models import PollutantConfig, TimeStep

_ALL = (TimeStep.INSTANT, TimeStep.QUARTER_HOUR, TimeStep.HOUR, TimeStep.DAY)
_AGGREGATED = (TimeStep.QUARTER_HOUR, TimeStep.HOUR, TimeStep.DAY)

# Channels exposed by ModuleAir sensors
POLLUTANTS: Dict[str, PollutantConfig] = {
    "pm1": PollutantConfig(code="pm1", name="Particulate matter PM1", unit="µg/m³", supported_time_steps=_ALL),
    "pm25": PollutantConfig(code="pm25", name="Particulate matter PM2.5", unit="µg/m³", supported_time_steps=_ALL),
    "pm10": PollutantConfig(code="pm10", name="Particulate matter PM10", unit="µg/m³", supported_time_steps=_ALL),
    "co2": PollutantConfig(code="co2", name="Carbon dioxide (CO₂)", unit="ppm", supported_time_steps=_AGGREGATED),
    "cov": PollutantConfig(code="cov", name="Volatile organic compounds", unit="ppb", supported_time_steps=_AGGREGATED),
    "temp": PollutantConfig(code="temp", name="Temperature", unit="°C"),
    "hum": PollutantConfig(code="hum", name="Relative humidity", unit="%"),
}
