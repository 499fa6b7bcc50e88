"""Planner configuration."""

from datetime import time

from pydantic import BaseModel, Field


class PlannerConfig(BaseModel):
    """Tunable constants for every planning component."""

    # Building resolution
    upcoming_window_minutes: int = 60
    gps_radius_meters: float = 500.0

    # Schedule merge
    route_match_window_minutes: int = 120
    default_start_time: time = time(9, 0)
    default_duration_minutes: int = 60
    route_fallback_enabled: bool = True
    plan_days: int = Field(default=7, ge=1)

    # Calendar injection
    circuit_prefix: str = "circuit:"

    # Weather deferral
    lookahead_hours: int = Field(default=2, ge=1)
    defer_precip_prob: float = Field(default=0.4, ge=0, le=1)
    defer_temp_f: float = 45.0
    defer_wind_mph: float = 25.0

    # Suggestions
    max_suggestions: int = 3
    suggestion_dedup_top_n: int = 2
    suggestion_precip_hours: int = 24
    suggestion_temp_wind_hours: int = 12
