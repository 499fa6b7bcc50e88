"""Daily plan — the orchestrator's input snapshot and its immutable result."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from workplan.models.building import BuildingSummary, CheckIn, Coordinate
from workplan.models.route import RouteSequence
from workplan.models.rules import CollectionRule, PolicyRule, Weekday
from workplan.models.schedule import RoutineInstance, RoutineTemplate, WeeklyPlan
from workplan.models.task import Task
from workplan.models.weather import ScoredTask, WeatherSnapshot, WeatherSuggestion


class IssueKind(str, Enum):
    MISSING_DATA = "missing_data"
    AMBIGUOUS_BUILDING = "ambiguous_building"
    INVALID_TIME_WINDOW = "invalid_time_window"


class PlanIssue(BaseModel):
    """A degraded-but-handled input condition. Reported, never raised."""

    model_config = ConfigDict(frozen=True)

    kind: IssueKind
    detail: str
    entry_id: Optional[str] = None
    day: Optional[date] = None


class Worker(BaseModel):
    id: str
    name: str = ""
    check_in: Optional[CheckIn] = None


class PlanSources(BaseModel):
    """
    Already-resolved snapshots from every external collaborator.

    The core performs no I/O; whatever the caller fetched is passed in here.
    """

    routine_instances: List[RoutineInstance] = []
    routine_templates: List[RoutineTemplate] = []
    ad_hoc_tasks: List[Task] = []
    route_sequences: Dict[Weekday, List[RouteSequence]] = {}
    weather: Optional[WeatherSnapshot] = None
    live_position: Optional[Coordinate] = None
    assigned_buildings: List[BuildingSummary] = []
    collection_rules: List[CollectionRule] = []
    policy_rules: List[PolicyRule] = []

    @field_validator("route_sequences", mode="before")
    @classmethod
    def _parse_weekday_keys(cls, value):
        if isinstance(value, dict):
            return {Weekday.parse(k): v for k, v in value.items()}
        return value

    def routes_for(self, day: date) -> List[RouteSequence]:
        return self.route_sequences.get(Weekday.of(day), [])


class DailyPlan(BaseModel):
    """The authoritative, read-only plan handed to presentation layers."""

    model_config = ConfigDict(frozen=True)

    worker_id: str
    day: date
    generated_at: datetime
    weekly_plan: WeeklyPlan
    current_building: Optional[BuildingSummary] = None
    building_statuses: List[BuildingSummary] = []
    ordered_upcoming: List[ScoredTask] = []
    deferred_outdoor: List[ScoredTask] = []
    suggestions: List[WeatherSuggestion] = []
    defer_outdoor_work: bool = False
    issues: List[PlanIssue] = []
