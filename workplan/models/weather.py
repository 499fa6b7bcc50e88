"""Weather snapshot shape and the suggestion/scoring outputs derived from it."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from workplan.models.task import Task


class WeatherReading(BaseModel):
    """One observation or hourly forecast block."""

    temp_f: float
    condition: str = ""                     # e.g. "Light rain", "Cloudy"
    precip_prob: float = Field(default=0.0, ge=0, le=1)
    wind_mph: float = Field(default=0.0, ge=0)
    timestamp: datetime
    precip_intensity: Optional[float] = Field(default=None, ge=0)


class WeatherSnapshot(BaseModel):
    """Current conditions plus an hourly forecast ordered by hour offset from now."""

    current: WeatherReading
    hourly: List[WeatherReading] = []

    def window(self, hours: int) -> List[WeatherReading]:
        """The next `hours` forecast blocks; the current reading if no forecast exists."""
        blocks = self.hourly[:hours]
        return blocks if blocks else [self.current]


class WeatherChip(str, Enum):
    GOOD_WINDOW = "good_window"
    WET = "wet"
    HEAVY_RAIN = "heavy_rain"
    WINDY = "windy"
    HOT = "hot"
    COLD = "cold"


class SuggestionKind(str, Enum):
    COLLECTION = "collection"
    POLICY = "policy"
    RAIN = "rain"
    WIND = "wind"
    SNOW = "snow"
    INDOOR = "indoor"
    HEAT = "heat"
    GENERIC = "generic"


class WeatherSuggestion(BaseModel):
    """An actionable, weather-motivated suggestion for a building."""

    id: str
    kind: SuggestionKind
    title: str
    subtitle: str = ""
    rationale: str = ""                     # Current condition string
    checklist: List[str] = []
    template_id: Optional[str] = None
    building_id: Optional[str] = None
    due_by: Optional[datetime] = None


class ScoredTask(BaseModel):
    """A task with its weather-adjusted score. Lower score = do sooner."""

    task: Task
    score: int
    chip: Optional[WeatherChip] = None
    advice: Optional[str] = None
    outdoor: bool = False
    deferred: bool = False


class TaskOrdering(BaseModel):
    """Result of weather-aware ordering."""

    ordered: List[ScoredTask] = []
    deferred: List[ScoredTask] = []
    substitutes: List[WeatherSuggestion] = []
    defer_outdoor_work: bool = False
