"""Weather sensitivity by task category, and the outdoor-work vocabulary."""

import re
from typing import Dict, Optional

from pydantic import BaseModel

from workplan.models.task import TaskCategory


class WeatherProfile(BaseModel):
    is_outdoor: bool
    sensitive_to_precip: bool
    sensitive_to_wind: bool
    ideal_wind_max: Optional[float] = None      # mph
    ideal_precip_max: Optional[float] = None    # 0..1


INDOOR = WeatherProfile(is_outdoor=False, sensitive_to_precip=False, sensitive_to_wind=False)

PROFILES: Dict[TaskCategory, WeatherProfile] = {
    TaskCategory.CLEANING: WeatherProfile(
        is_outdoor=True, sensitive_to_precip=True, sensitive_to_wind=False,
        ideal_wind_max=25, ideal_precip_max=0.3,
    ),
    TaskCategory.SANITATION: WeatherProfile(
        is_outdoor=True, sensitive_to_precip=True, sensitive_to_wind=True,
        ideal_wind_max=30, ideal_precip_max=0.4,
    ),
    TaskCategory.OPERATIONS: WeatherProfile(
        is_outdoor=True, sensitive_to_precip=False, sensitive_to_wind=True,
        ideal_wind_max=35, ideal_precip_max=0.6,
    ),
    TaskCategory.MAINTENANCE: WeatherProfile(
        is_outdoor=True, sensitive_to_precip=True, sensitive_to_wind=False,
        ideal_wind_max=20, ideal_precip_max=0.2,
    ),
    TaskCategory.REPAIR: WeatherProfile(
        is_outdoor=True, sensitive_to_precip=True, sensitive_to_wind=False,
        ideal_wind_max=20, ideal_precip_max=0.2,
    ),
    TaskCategory.INSPECTION: INDOOR,
    TaskCategory.UNKNOWN: INDOOR,
}

# Applied to uncategorized tasks whose title reads as outdoor work
LEXICAL_OUTDOOR = PROFILES[TaskCategory.CLEANING]

OUTDOOR_TERMS = (
    "hose",
    "hosing",
    "sidewalk",
    "exterior",
    "curb",
    "facade",
    "façade",
    "roof",
    "gutter",
    "awning",
    "power wash",
    "pressure wash",
    "squeegee",
)

_OUTDOOR_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(t) for t in OUTDOOR_TERMS) + r")", re.IGNORECASE
)


def profile_for(category: TaskCategory) -> WeatherProfile:
    return PROFILES.get(category, INDOOR)


def is_outdoor_title(title: str) -> bool:
    """Lexical match of a task title against the outdoor-work vocabulary."""
    return bool(_OUTDOOR_PATTERN.search(title or ""))
