# file: historical/config.py

import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from historical.models import PollutantConfig, PresetRange, TimeStep
from historical.pollutants import POLLUTANTS
from historical.policy import DEFAULT_MAX_HISTORY_DAYS

DEFAULT_NOTICE_DELAY = 5.0


class ViewConfig(BaseModel):
    """Read-only settings injected into the historical view controller."""
    model_config = ConfigDict(frozen=True)

    pollutants: Dict[str, PollutantConfig] = Field(default_factory=lambda: dict(POLLUTANTS))
    max_history_days: Dict[TimeStep, Optional[int]] = Field(default_factory=lambda: dict(DEFAULT_MAX_HISTORY_DAYS))
    default_pollutant: str = "pm25"
    default_time_step: TimeStep = TimeStep.HOUR
    default_time_range: PresetRange = Field(default_factory=PresetRange)
    notice_delay: float = Field(DEFAULT_NOTICE_DELAY, ge=0, description="Seconds before a notice is cleared")

    @model_validator(mode="after")
    def check_limits(self) -> "ViewConfig":
        missing = [step.value for step in TimeStep if step not in self.max_history_days]
        if missing:
            raise ValueError(f"Missing maximum history for time steps: {', '.join(missing)}")
        return self


def load_config() -> ViewConfig:
    """Build the view configuration from environment variables."""
    load_dotenv()

    overrides = {}
    if os.getenv("DEFAULT_POLLUTANT"):
        overrides["default_pollutant"] = os.getenv("DEFAULT_POLLUTANT")
    if os.getenv("DEFAULT_TIME_STEP"):
        overrides["default_time_step"] = os.getenv("DEFAULT_TIME_STEP")
    if os.getenv("NOTICE_DELAY_SECONDS"):
        overrides["notice_delay"] = os.getenv("NOTICE_DELAY_SECONDS")
    return ViewConfig(**overrides)
