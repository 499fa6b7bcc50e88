"""
Schedule Merger — one ordered, de-duplicated day schedule from many sources.

Behavioral Contract:
- Routine instances map 1:1 onto entries (task_count = 1)
- Ad-hoc tasks due on the day become entries; undated tasks start at the
  default start time; unknown durations default to 60 minutes
- Tasks without a building are attributed via the route plan, then the
  caller's fallback building; unresolvable tasks stay with building_id ""
- Entries sharing (building, lowercase title, start minute) collapse into one:
  latest end time, summed task counts
- Output order is (start, title, building, id) regardless of input order
- Never raises on empty or degraded input; problems become PlanIssues
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from workplan.models.config import PlannerConfig
from workplan.models.plan import IssueKind, PlanIssue
from workplan.models.route import RouteSequence
from workplan.models.schedule import (
    DaySchedule,
    DedupKey,
    EntrySource,
    RoutineInstance,
    ScheduleEntry,
)
from workplan.models.task import Task, TaskCategory

logger = logging.getLogger(__name__)


class MergeResult(BaseModel):
    """A merged day plus whatever was degraded along the way."""

    day: date
    entries: List[ScheduleEntry] = []
    total_hours: float = 0.0
    issues: List[PlanIssue] = []

    def to_day_schedule(self) -> DaySchedule:
        return DaySchedule(date=self.day, items=self.entries, total_hours=self.total_hours)


def day_bounds(day: date, tz: Optional[tzinfo] = None):
    """[start, end) of a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


def sort_key(entry: ScheduleEntry):
    return (entry.start_time, entry.title, entry.building_id, entry.id)


class ScheduleMerger:
    """Merges routine, ad-hoc and route sources for a calendar day."""

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    def merge_day(
        self,
        day: date,
        routine_instances: Iterable[RoutineInstance],
        ad_hoc_tasks: Iterable[Task],
        route_sequences: Iterable[RouteSequence] = (),
        fallback_building_id: Optional[str] = None,
        extra_entries: Iterable[ScheduleEntry] = (),
        tz: Optional[tzinfo] = None,
    ) -> MergeResult:
        """
        Merge every source for `day`.

        `route_sequences` are the worker's stops for the day's weekday.
        `extra_entries` (e.g. calendar-injected ones) join the same
        de-duplication pass. `tz` is applied to synthesized times.
        """
        issues: List[PlanIssue] = []
        routes = list(route_sequences)
        entries: List[ScheduleEntry] = []

        day_routines = [r for r in routine_instances if r.day == day]
        for instance in day_routines:
            entries.append(self.routine_entry(instance, issues))

        if not day_routines and routes and self.config.route_fallback_enabled:
            entries.extend(self.route_entries(day, routes, tz))

        for task in ad_hoc_tasks:
            entry = self.task_entry(day, task, routes, fallback_building_id, issues, tz)
            if entry is not None:
                entries.append(entry)

        entries.extend(extra_entries)
        return self.finalize(day, entries, issues)

    def finalize(
        self,
        day: date,
        entries: Iterable[ScheduleEntry],
        issues: Optional[List[PlanIssue]] = None,
    ) -> MergeResult:
        """De-duplicate, order and total a set of entries for one day."""
        raw = list(entries)
        merged = self.deduplicate(raw)
        total_hours = sum(e.duration_hours for e in merged)
        logger.debug(
            "merged %d raw entries into %d for %s (%.2f h)",
            len(raw), len(merged), day.isoformat(), total_hours,
        )
        return MergeResult(
            day=day,
            entries=merged,
            total_hours=round(total_hours, 4),
            issues=list(issues or []),
        )

    # --- Source conversion ---

    def routine_entry(
        self, instance: RoutineInstance, issues: List[PlanIssue]
    ) -> ScheduleEntry:
        end_time = instance.end_time or instance.start_time + self._default_duration()
        end_time = self._clamp(instance.id, instance.start_time, end_time, issues)
        return ScheduleEntry(
            id=instance.id,
            building_id=instance.building_id,
            title=instance.title,
            start_time=instance.start_time,
            end_time=end_time,
            task_count=1,
            sources=[EntrySource.ROUTINE],
            category=instance.category,
        )

    def route_entries(
        self, day: date, sequences: List[RouteSequence], tz: Optional[tzinfo] = None
    ) -> List[ScheduleEntry]:
        """Fallback entries from the day's route plan."""
        entries = []
        for sequence in sequences:
            start, end = sequence.window_on(day, tz)
            entries.append(ScheduleEntry(
                id=sequence.id or f"route:{sequence.building_id}:{start:%Y%m%dT%H%M}",
                building_id=sequence.building_id,
                title=sequence.building_name or sequence.building_id,
                start_time=start,
                end_time=end,
                task_count=max(1, len(sequence.operations)),
                sources=[EntrySource.ROUTE],
                category=_dominant_category(sequence),
            ))
        return entries

    def task_entry(
        self,
        day: date,
        task: Task,
        routes: List[RouteSequence],
        fallback_building_id: Optional[str],
        issues: List[PlanIssue],
        tz: Optional[tzinfo] = None,
    ) -> Optional[ScheduleEntry]:
        """An entry for an ad-hoc task, or None if the task belongs to another day."""
        if task.due_time is not None:
            start_of_day, end_of_day = day_bounds(day, task.due_time.tzinfo)
            if not start_of_day <= task.due_time < end_of_day:
                return None
            start_time = task.due_time
        else:
            start_time = datetime.combine(day, self.config.default_start_time, tzinfo=tz)

        if task.estimated_duration_minutes is not None:
            end_time = start_time + timedelta(minutes=task.estimated_duration_minutes)
        else:
            end_time = start_time + self._default_duration()

        building_id = task.building_id or self.resolve_task_building(
            start_time, routes, fallback_building_id
        )
        if not building_id:
            building_id = ""
            logger.warning("task %s could not be attributed to a building", task.id)
            issues.append(PlanIssue(
                kind=IssueKind.AMBIGUOUS_BUILDING,
                detail=f"Task '{task.title}' has no building and no route or fallback match.",
                entry_id=task.id,
                day=day,
            ))

        return ScheduleEntry(
            id=task.id,
            building_id=building_id,
            title=task.title,
            start_time=start_time,
            end_time=end_time,
            task_count=1,
            sources=[EntrySource.AD_HOC],
            category=task.category,
            urgency=task.urgency,
            is_completed=task.is_completed,
        )

    def resolve_task_building(
        self,
        start_time: datetime,
        routes: List[RouteSequence],
        fallback_building_id: Optional[str],
    ) -> Optional[str]:
        """Route stop active at (or nearest within the match window of) start_time."""
        window = self.config.route_match_window_minutes
        candidates = []
        for sequence in routes:
            distance = sequence.minutes_from(start_time)
            if distance <= window:
                candidates.append((distance, sequence.arrival_time, sequence.building_id))
        if candidates:
            return min(candidates)[2]
        return fallback_building_id or None

    # --- De-duplication ---

    def deduplicate(self, entries: List[ScheduleEntry]) -> List[ScheduleEntry]:
        """Collapse entries with the same dedup key, in deterministic order."""
        groups: Dict[DedupKey, List[ScheduleEntry]] = {}
        for entry in sorted(entries, key=sort_key):
            groups.setdefault(entry.dedup_key, []).append(entry)

        merged = [_collapse(group) for group in groups.values()]
        return sorted(merged, key=sort_key)

    # --- Helpers ---

    def _default_duration(self) -> timedelta:
        return timedelta(minutes=self.config.default_duration_minutes)

    def _clamp(
        self,
        entry_id: str,
        start_time: datetime,
        end_time: datetime,
        issues: List[PlanIssue],
    ) -> datetime:
        if end_time >= start_time:
            return end_time
        logger.warning("entry %s ends before it starts; clamping", entry_id)
        issues.append(PlanIssue(
            kind=IssueKind.INVALID_TIME_WINDOW,
            detail=f"End {end_time.isoformat()} precedes start {start_time.isoformat()}; clamped.",
            entry_id=entry_id,
            day=start_time.date(),
        ))
        return start_time


def _collapse(group: List[ScheduleEntry]) -> ScheduleEntry:
    head = group[0]
    if len(group) == 1:
        return head

    sources = sorted({s for e in group for s in e.sources}, key=lambda s: list(EntrySource).index(s))
    order = list(TaskCategory)
    known = [e.category for e in group if e.category != TaskCategory.UNKNOWN]
    category = min(known, key=order.index) if known else TaskCategory.UNKNOWN
    circuits = [e.circuit_id for e in group if e.circuit_id]
    return head.model_copy(update={
        "end_time": max(e.end_time for e in group),
        "task_count": sum(e.task_count for e in group),
        "sources": sources,
        "category": category,
        "urgency": max(e.urgency for e in group),
        "is_completed": all(e.is_completed for e in group),
        "circuit_id": min(circuits) if circuits else None,
    })


def _dominant_category(sequence: RouteSequence) -> TaskCategory:
    """Most frequent operation category; ties resolved by enum order."""
    counts: Dict[TaskCategory, int] = {}
    for op in sequence.operations:
        counts[op.category] = counts.get(op.category, 0) + 1
    if not counts:
        return TaskCategory.UNKNOWN
    order = list(TaskCategory)
    return min(counts, key=lambda c: (-counts[c], order.index(c)))
