"""Environment-driven settings and logging setup."""

import logging
from datetime import time
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from workplan.models.config import PlannerConfig

LOG_FORMAT = "[%(asctime)s] %(name)s %(levelname)s  %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class PlannerSettings(BaseSettings):
    """Planner settings read from WORKPLAN_* environment variables."""

    log_level: str = "INFO"

    upcoming_window_minutes: int = 60
    gps_radius_meters: float = 500.0
    route_match_window_minutes: int = 120
    default_start_time: time = time(9, 0)
    default_duration_minutes: int = 60
    route_fallback_enabled: bool = True
    plan_days: int = 7
    circuit_prefix: str = "circuit:"
    lookahead_hours: int = 2
    defer_precip_prob: float = 0.4
    defer_temp_f: float = 45.0
    defer_wind_mph: float = 25.0
    max_suggestions: int = 3
    suggestion_dedup_top_n: int = 2
    suggestion_precip_hours: int = 24
    suggestion_temp_wind_hours: int = 12

    model_config = SettingsConfigDict(
        env_prefix="WORKPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def to_config(self) -> PlannerConfig:
        """Validated planner configuration from these settings."""
        return PlannerConfig(**self.model_dump(exclude={"log_level"}))


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach one stream handler to the `workplan` logger. Safe to call repeatedly."""
    logger = logging.getLogger("workplan")
    logger.setLevel((level or PlannerSettings().log_level).upper())

    if not any(h.get_name() == "workplan" for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        handler.set_name("workplan")
        logger.addHandler(handler)
    return logger
