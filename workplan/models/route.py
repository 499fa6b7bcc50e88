"""Route plans — a worker's day-of-week sequence of building visits."""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from workplan.models.task import TaskCategory


class RouteOperation(BaseModel):
    """A single operation performed during a route stop."""

    name: str
    category: TaskCategory = TaskCategory.UNKNOWN
    is_weather_sensitive: bool = False
    requires_photo: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)


class RouteSequence(BaseModel):
    """One stop of a worker's weekday route. Consumed read-only."""

    id: Optional[str] = None
    building_id: str
    building_name: str = ""
    arrival_time: time
    estimated_duration_minutes: int = Field(default=60, ge=0)
    operations: List[RouteOperation] = []

    def window_on(self, day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
        """The stop's [arrival, arrival + duration] window on a calendar day."""
        start = datetime.combine(day, self.arrival_time, tzinfo=tz)
        return start, start + timedelta(minutes=self.estimated_duration_minutes)

    def minutes_from(self, moment: datetime) -> float:
        """Distance in minutes from `moment` to this stop's window; 0 inside it."""
        start, end = self.window_on(moment.date(), moment.tzinfo)
        if start <= moment <= end:
            return 0.0
        if moment < start:
            return (start - moment).total_seconds() / 60.0
        return (moment - end).total_seconds() / 60.0
