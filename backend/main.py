# file : /backend/main.py

import logging
import uvicorn
import aiohttp
from fastapi import FastAPI, Query, HTTPException, Request
from contextlib import asynccontextmanager
from typing import List

from backend.config import load_sensors
from backend.models import HistoricalPoint, SensorConfig, StationData
from backend.moduleair_api import create_session, fetch_historical_data, fetch_metadata, fetch_stations, map_station
from historical.models import TimeStep

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

@asynccontextmanager
async def lifespan(app: FastAPI) :
    """Load sensor configuration and open the shared vendor session."""
    app.state.sensors = {sensor.sensor_id: sensor for sensor in load_sensors()}
    app.state.session = create_session()
    try :
        yield
    finally :
        await app.state.session.close()


app = FastAPI(
    title = "Air Quality Monitoring - ModuleAir",
    description = "Proxy for ModuleAir station metadata and historical measurements.",
    version = "0.2",
    lifespan = lifespan
)


def get_sensor(request: Request, station_id: str) -> SensorConfig :
    sensor = request.app.state.sensors.get(station_id)
    if sensor is None :
        raise HTTPException(status_code = 404, detail = f"Unknown station: {station_id}")
    return sensor


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/stations", response_model=List[StationData])
async def stations(
    request: Request,
    pollutant: str = Query("pm25", description="Pollutant whose latest value is reported (e.g., 'pm25')")
):
    """Fetch every configured station that reports usable coordinates."""
    sensors = list(request.app.state.sensors.values())
    logging.info(f"Fetching metadata for {len(sensors)} stations")
    return await fetch_stations(request.app.state.session, sensors, pollutant)


@app.get("/stations/{station_id}", response_model=StationData)
async def station_info(
    request: Request,
    station_id: str,
    pollutant: str = Query("pm25", description="Pollutant whose latest value is reported (e.g., 'pm25')")
):
    """Fetch site information and available channels of a single station."""
    sensor = get_sensor(request, station_id)
    try:
        data = await fetch_metadata(request.app.state.session, sensor)
    except aiohttp.ClientError as e:
        logging.error(f"Error fetching site info for station {station_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch station information")
    station = map_station(data, sensor, pollutant) if data else None
    if station is None :
        raise HTTPException(status_code = 404, detail = f"No metadata for station: {station_id}")
    return station


@app.get("/historical", response_model=List[HistoricalPoint])
async def historical(
    request: Request,
    station_id: str = Query(..., description="Station (sensor) identifier"),
    pollutant: str = Query(..., description="Pollutant code (e.g., 'pm25')"),
    time_step: TimeStep = Query(TimeStep.HOUR, description="Aggregation granularity"),
    start: str = Query(..., description="Start timestamp in ISO format"),
    end: str = Query(..., description="End timestamp in ISO format")
):
    """Fetch historical measurements of one pollutant for a station."""
    sensor = get_sensor(request, station_id)
    logging.info(f"Fetching {pollutant} history for station {station_id} ({time_step.value}, {start} - {end})")
    try:
        return await fetch_historical_data(request.app.state.session, sensor, pollutant, time_step, start, end)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid timestamp format. Expected ISO 8601")
    except aiohttp.ClientError as e:
        logging.error(f"Error fetching historical data for station {station_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch historical data")

if __name__ == "__main__" :
    uvicorn.run(app, host = "0.0.0.0", port = 8000, log_level="info")
