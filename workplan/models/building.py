"""Buildings and worker location signals."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BuildingStatus(str, Enum):
    CURRENT = "current"
    ASSIGNED = "assigned"
    AVAILABLE = "available"
    COVERAGE = "coverage"           # On today's schedule but not an assigned building
    UNAVAILABLE = "unavailable"


class Coordinate(BaseModel):
    """A WGS84 position."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class BuildingSummary(BaseModel):
    """A building as seen by one resolution call. `status` is computed, never stored."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str = ""
    coordinate: Optional[Coordinate] = None
    status: BuildingStatus = BuildingStatus.ASSIGNED

    def with_status(self, status: BuildingStatus) -> "BuildingSummary":
        return self.model_copy(update={"status": status})


class CheckIn(BaseModel):
    """An explicit clock-in at a building."""

    building: BuildingSummary
    checked_in_at: datetime
    expires_at: Optional[datetime] = None   # None = valid until clock-out

    def is_active(self, current_time: datetime) -> bool:
        if current_time < self.checked_in_at:
            return False
        return self.expires_at is None or current_time < self.expires_at
