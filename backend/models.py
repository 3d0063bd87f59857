#file: backend/models.py

from pydantic import BaseModel, Field
from typing import Dict, Optional


class SensorConfig(BaseModel):
    sensor_id: str = Field(..., description="ModuleAir sensor identifier")
    token: str = Field(..., description="API token of the sensor")
    campaign: str = Field(..., description="Measurement campaign the sensor belongs to")


class StationData(BaseModel):
    id: str = Field(..., description="Unique identifier of the station")
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    variables: Dict[str, bool] = Field(default_factory=dict, description="Pollutant code -> in service")
    last_seen_sec: Optional[int] = Field(None, ge=0, description="Seconds since the last transmission")
    address: Optional[str] = None
    value: Optional[float] = Field(None, description="Latest value of the requested pollutant")
    status: str = Field("inactive", description="'active' when connected and reporting a value")
    department_id: Optional[str] = Field(None, description="French department code of the site")


class HistoricalPoint(BaseModel):
    timestamp: str = Field(..., description="Timestamp in ISO format")
    value: Optional[float] = Field(None, description="Measured value, missing when the sensor reported none")
    unit: str = Field("", description="Unit of the value")
