"""Ad-hoc tasks and their classification enums."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


_URGENCY_ORDER = ("low", "normal", "high", "urgent", "critical", "emergency")


class TaskUrgency(str, Enum):
    """Urgency levels. Totally ordered: low < normal < ... < emergency."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _URGENCY_ORDER.index(self.value)

    def __lt__(self, other):
        if not isinstance(other, TaskUrgency):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, TaskUrgency):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, TaskUrgency):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, TaskUrgency):
            return NotImplemented
        return self.rank >= other.rank


class TaskCategory(str, Enum):
    CLEANING = "cleaning"
    SANITATION = "sanitation"
    OPERATIONS = "operations"
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    REPAIR = "repair"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value) -> "TaskCategory":
        """Map free-form category strings onto the enum, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Task(BaseModel):
    """A one-off work item, not generated by a recurrence rule."""

    id: str
    title: str
    building_id: Optional[str] = None       # None = not yet resolved to a location
    due_time: Optional[datetime] = None
    urgency: TaskUrgency = TaskUrgency.NORMAL
    is_completed: bool = False
    category: TaskCategory = TaskCategory.UNKNOWN
    requires_photo: bool = False
    estimated_duration_minutes: Optional[int] = Field(default=None, ge=0)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)
