"""workplan data models."""

from workplan.models.building import BuildingStatus, BuildingSummary, CheckIn, Coordinate
from workplan.models.config import PlannerConfig
from workplan.models.plan import DailyPlan, IssueKind, PlanIssue, PlanSources, Worker
from workplan.models.route import RouteOperation, RouteSequence
from workplan.models.rules import (
    CollectionRule,
    PolicyAction,
    PolicyCondition,
    PolicyRule,
    Weekday,
)
from workplan.models.schedule import (
    DaySchedule,
    EntrySource,
    RoutineInstance,
    RoutineTemplate,
    ScheduleEntry,
    WeeklyPlan,
)
from workplan.models.task import Task, TaskCategory, TaskUrgency
from workplan.models.weather import (
    ScoredTask,
    SuggestionKind,
    TaskOrdering,
    WeatherChip,
    WeatherReading,
    WeatherSnapshot,
    WeatherSuggestion,
)

__all__ = [
    "BuildingStatus",
    "BuildingSummary",
    "CheckIn",
    "CollectionRule",
    "Coordinate",
    "DailyPlan",
    "DaySchedule",
    "EntrySource",
    "IssueKind",
    "PlanIssue",
    "PlanSources",
    "PlannerConfig",
    "PolicyAction",
    "PolicyCondition",
    "PolicyRule",
    "RouteOperation",
    "RouteSequence",
    "RoutineInstance",
    "RoutineTemplate",
    "ScheduleEntry",
    "ScoredTask",
    "SuggestionKind",
    "Task",
    "TaskCategory",
    "TaskOrdering",
    "TaskUrgency",
    "WeatherChip",
    "WeatherReading",
    "WeatherSnapshot",
    "WeatherSuggestion",
    "Weekday",
    "WeeklyPlan",
    "Worker",
]
