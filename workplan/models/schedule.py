"""Schedule entries, routine occurrences and the weekly plan shape."""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workplan.models.task import Task, TaskCategory, TaskUrgency


DEFAULT_DURATION = timedelta(minutes=60)

# DaySchedule has a field named `date`
CalendarDay = date


class EntrySource(str, Enum):
    ROUTINE = "routine"
    AD_HOC = "ad_hoc"
    ROUTE = "route"
    INJECTED = "injected"


DedupKey = Tuple[str, str, datetime]


def dedup_key(building_id: str, title: str, start_time: datetime) -> DedupKey:
    """(building, lowercase title, start truncated to the minute)."""
    return (
        building_id,
        title.strip().lower(),
        start_time.replace(second=0, microsecond=0),
    )


class ScheduleEntry(BaseModel):
    """One unit of planned work at a building in a time window."""

    model_config = ConfigDict(frozen=True)

    id: str
    building_id: str                        # "" = unattributed
    title: str
    start_time: datetime
    end_time: datetime
    task_count: int = Field(default=1, ge=1)
    sources: List[EntrySource] = [EntrySource.ROUTINE]
    category: TaskCategory = TaskCategory.UNKNOWN
    urgency: TaskUrgency = TaskUrgency.NORMAL
    is_completed: bool = False
    circuit_id: Optional[str] = None        # Set on calendar-injected entries

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)

    @model_validator(mode="after")
    def _check_window(self) -> "ScheduleEntry":
        if self.end_time < self.start_time:
            raise ValueError(
                f"entry {self.id}: end_time {self.end_time} precedes start_time {self.start_time}"
            )
        return self

    @property
    def dedup_key(self) -> DedupKey:
        return dedup_key(self.building_id, self.title, self.start_time)

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600.0

    def contains(self, moment: datetime) -> bool:
        return self.start_time <= moment <= self.end_time

    def as_task(self) -> Task:
        """View this entry as a candidate task for weather ordering."""
        return Task(
            id=self.id,
            title=self.title,
            building_id=self.building_id or None,
            due_time=self.start_time,
            urgency=self.urgency,
            is_completed=self.is_completed,
            category=self.category,
            estimated_duration_minutes=int(
                (self.end_time - self.start_time).total_seconds() // 60
            ),
        )


class RoutineInstance(BaseModel):
    """One concrete occurrence of a recurring obligation on a specific date."""

    id: str
    building_id: str
    title: str
    start_time: datetime
    end_time: Optional[datetime] = None     # None = default duration
    category: TaskCategory = TaskCategory.UNKNOWN
    routine_id: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)

    @property
    def day(self) -> date:
        return self.start_time.date()


class RoutineTemplate(BaseModel):
    """A recurring obligation. `schedule` is a cron expression in local time."""

    id: str
    worker_id: str
    building_id: str
    title: str
    schedule: str                           # e.g. "0 9 * * 1-5"
    duration_minutes: int = Field(default=60, ge=0)
    category: TaskCategory = TaskCategory.UNKNOWN
    weather_dependent: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"invalid cron expression: {value!r}")
        return value


class DaySchedule(BaseModel):
    """All merged entries of one calendar day."""

    model_config = ConfigDict(frozen=True)

    date: CalendarDay
    items: List[ScheduleEntry] = []
    total_hours: float = 0.0


class WeeklyPlan(BaseModel):
    """Today plus the following days, one DaySchedule per date."""

    model_config = ConfigDict(frozen=True)

    days: List[DaySchedule] = []

    @model_validator(mode="after")
    def _check_unique_dates(self) -> "WeeklyPlan":
        dates = [d.date for d in self.days]
        if len(set(dates)) != len(dates):
            raise ValueError("a WeeklyPlan may contain each date only once")
        return self

    def day(self, on: date) -> Optional[DaySchedule]:
        return next((d for d in self.days if d.date == on), None)

    @property
    def total_hours(self) -> float:
        return sum(d.total_hours for d in self.days)
