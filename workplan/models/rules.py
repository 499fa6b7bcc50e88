"""Declarative rule tables — conditional recurring obligations and policies."""

from datetime import date, time
from enum import Enum, IntEnum
from typing import List, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

from workplan.models.task import TaskCategory


class Weekday(IntEnum):
    """Weekdays numbered like `date.weekday()`."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def parse(cls, value) -> "Weekday":
        """Accept an int, a full name ("tuesday") or a two-letter code ("TU")."""
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip().upper()
        if text.isdigit():
            return cls(int(text))
        for day in cls:
            if text == day.name or text == day.name[:2] or text == day.name[:3]:
                return day
        raise ValueError(f"unknown weekday: {value!r}")


class CollectionRule(BaseModel):
    """
    A calendar-conditioned obligation, e.g. municipal bin set-out.

    On every weekday in `collection_days` the rule's worker gets one entry
    per building in `building_group`, inside [window_start, window_end].
    All entries are grouped under `circuit_id`.
    """

    id: str
    applies_to_worker: str
    collection_days: Set[Weekday]
    window_start: time
    window_end: time
    building_group: List[str]
    circuit_id: str
    title: str = "Set out bins"
    category: TaskCategory = TaskCategory.SANITATION
    stagger_minutes: Optional[List[int]] = None     # Cycle of per-building durations
    retrieval_start: Optional[time] = None          # Next-morning retrieval window
    retrieval_end: Optional[time] = None
    retrieval_title: str = "Retrieve bins"

    @field_validator("collection_days", mode="before")
    @classmethod
    def _parse_days(cls, value):
        return {Weekday.parse(v) for v in value}

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return TaskCategory.coerce(value)

    @field_validator("stagger_minutes")
    @classmethod
    def _check_stagger(cls, value):
        if value is not None and (not value or any(m <= 0 for m in value)):
            raise ValueError("stagger_minutes must be a non-empty list of positive durations")
        return value

    @model_validator(mode="after")
    def _check_windows(self) -> "CollectionRule":
        if self.window_end < self.window_start:
            raise ValueError(f"rule {self.id}: window ends before it starts")
        if (self.retrieval_start is None) != (self.retrieval_end is None):
            raise ValueError(f"rule {self.id}: retrieval window needs both start and end")
        if self.retrieval_start is not None and self.retrieval_end < self.retrieval_start:
            raise ValueError(f"rule {self.id}: retrieval window ends before it starts")
        return self

    def fires_on(self, day: date, worker_id: str) -> bool:
        return worker_id == self.applies_to_worker and Weekday.of(day) in self.collection_days

    def retrieves_on(self, day: date, worker_id: str) -> bool:
        """True on the day after a collection day, for rules with a retrieval window."""
        if self.retrieval_start is None or worker_id != self.applies_to_worker:
            return False
        previous = Weekday((day.weekday() - 1) % 7)
        return previous in self.collection_days


class PolicyCondition(str, Enum):
    ALWAYS = "always"
    RAIN_EXPECTED = "rain_expected"
    COLLECTION_DAY = "collection_day"


class PolicyAction(str, Enum):
    WAIVE_PHOTO = "waive_photo"
    ADD_SUGGESTION = "add_suggestion"


class PolicyRule(BaseModel):
    """
    An organization-specific {condition, action} rule.

    Empty `worker_ids` / `building_ids` match every worker / building.
    """

    id: str
    condition: PolicyCondition = PolicyCondition.ALWAYS
    action: PolicyAction
    worker_ids: List[str] = []
    building_ids: List[str] = []
    suggestion_title: Optional[str] = None
    suggestion_subtitle: str = ""
    checklist: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_suggestion(self) -> "PolicyRule":
        if self.action == PolicyAction.ADD_SUGGESTION and not self.suggestion_title:
            raise ValueError(f"policy {self.id}: add_suggestion needs a suggestion_title")
        return self

    def matches(self, worker_id: Optional[str], building_id: Optional[str]) -> bool:
        if self.worker_ids and worker_id not in self.worker_ids:
            return False
        if self.building_ids and building_id not in self.building_ids:
            return False
        return True
