"""
Daily Plan Orchestrator — the single entry point that assembles a DailyPlan.

Pipeline (stateless, one call = one independent result):
  expand routines → merge → inject → dedupe → resolve building → score/order

Behavioral Contract:
- Every call recomputes the whole week from the given snapshots; nothing is cached
- Degraded input produces a complete plan plus PlanIssues
- Only structurally invalid input raises (PlanInputError); a call either
  returns a complete DailyPlan or raises before building anything
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from workplan.injection.injector import CalendarTaskInjector
from workplan.merger.day import MergeResult, ScheduleMerger
from workplan.models.building import BuildingSummary
from workplan.models.config import PlannerConfig
from workplan.models.plan import DailyPlan, IssueKind, PlanIssue, PlanSources, Worker
from workplan.models.schedule import ScheduleEntry, WeeklyPlan
from workplan.models.task import Task
from workplan.models.weather import TaskOrdering, WeatherSuggestion
from workplan.policy.rules import apply_task_policies
from workplan.resolver.cascade import BuildingResolver, WorkerState
from workplan.routines.expander import RoutineExpander
from workplan.weather.engine import WeatherSuggestionEngine

logger = logging.getLogger(__name__)


class PlanInputError(Exception):
    """Raised for input the planner cannot reason about at all."""
    pass


class DailyPlanOrchestrator:
    """Composes merger, injector, resolver and weather engine into one plan."""

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        merger: Optional[ScheduleMerger] = None,
        injector: Optional[CalendarTaskInjector] = None,
        resolver: Optional[BuildingResolver] = None,
        weather_engine: Optional[WeatherSuggestionEngine] = None,
        expander: Optional[RoutineExpander] = None,
    ):
        self.config = config or PlannerConfig()
        self.merger = merger or ScheduleMerger(self.config)
        self.injector = injector or CalendarTaskInjector(self.config)
        self.resolver = resolver or BuildingResolver(self.config)
        self.weather_engine = weather_engine or WeatherSuggestionEngine(self.config)
        self.expander = expander or RoutineExpander()

    def build_plan(
        self,
        worker: Worker,
        day: date,
        sources: PlanSources,
        current_time: Optional[datetime] = None,
    ) -> DailyPlan:
        """Build the worker's plan for `day` and the following days of the week."""
        if current_time is None:
            current_time = datetime.now()
        self._validate(worker, day, sources, current_time)

        issues: List[PlanIssue] = []
        if sources.weather is None:
            logger.warning("no weather snapshot for worker %s; ordering without weather", worker.id)
            issues.append(PlanIssue(
                kind=IssueKind.MISSING_DATA,
                detail="No weather snapshot; deferral and suggestions skipped.",
                day=day,
            ))

        # --- Week ---
        fallback = self.resolver.resolve(WorkerState(
            current_time=current_time,
            check_in=worker.check_in,
            live_position=sources.live_position,
            assigned_buildings=sources.assigned_buildings,
        ))
        days = self._merge_week(worker, day, sources, current_time, fallback)
        for result in days:
            issues.extend(result.issues)
        weekly_plan = WeeklyPlan(days=[r.to_day_schedule() for r in days])
        today = days[0].entries

        # --- Current building ---
        state = WorkerState(
            current_time=current_time,
            check_in=worker.check_in,
            today_schedule=today,
            live_position=sources.live_position,
            assigned_buildings=sources.assigned_buildings,
        )
        current = self.resolver.resolve(state)
        statuses = self.resolver.building_statuses(state, current)
        if current is None:
            issues.append(PlanIssue(
                kind=IssueKind.MISSING_DATA,
                detail="No building information available.",
                day=day,
            ))

        # --- Ordering ---
        candidates = apply_task_policies(
            self._upcoming_tasks(today, sources.ad_hoc_tasks, current_time),
            worker.id,
            sources.policy_rules,
        )
        reference_time = None if sources.weather is not None else current_time
        ordering = self.weather_engine.score_and_order(candidates, sources.weather, reference_time)

        suggestions = self._suggestions(worker, day, sources, current, ordering)

        plan = DailyPlan(
            worker_id=worker.id,
            day=day,
            generated_at=current_time,
            weekly_plan=weekly_plan,
            current_building=current,
            building_statuses=statuses,
            ordered_upcoming=ordering.ordered,
            deferred_outdoor=ordering.deferred,
            suggestions=suggestions,
            defer_outdoor_work=ordering.defer_outdoor_work,
            issues=issues,
        )
        logger.info(
            "plan for worker %s on %s: %d entries today, %.2f h this week, "
            "%d upcoming, %d deferred, current building %s, %d issue(s)",
            worker.id, day.isoformat(), len(today), weekly_plan.total_hours,
            len(plan.ordered_upcoming), len(plan.deferred_outdoor),
            current.id if current else None, len(issues),
        )
        return plan

    # --- Steps ---

    def _merge_week(
        self,
        worker: Worker,
        day: date,
        sources: PlanSources,
        current_time: datetime,
        fallback: Optional[BuildingSummary],
    ) -> List[MergeResult]:
        tz = current_time.tzinfo
        span = self.config.plan_days
        routines = list(sources.routine_instances) + self.expander.expand(
            sources.routine_templates, day, span, worker_id=worker.id, tz=tz
        )
        dated = [t for t in sources.ad_hoc_tasks if t.due_time is not None]

        results = []
        for offset in range(span):
            on = day + timedelta(days=offset)
            merged = self.merger.merge_day(
                on,
                routines,
                sources.ad_hoc_tasks if offset == 0 else dated,
                route_sequences=sources.routes_for(on),
                fallback_building_id=fallback.id if fallback else None,
                tz=tz,
            )
            injected = self.injector.inject(
                on, worker.id, sources.collection_rules, merged.entries, tz
            )
            if injected:
                merged = self.merger.finalize(on, merged.entries + injected, merged.issues)
            results.append(merged)
        return results

    def _upcoming_tasks(
        self,
        today: List[ScheduleEntry],
        ad_hoc_tasks: List[Task],
        current_time: datetime,
    ) -> List[Task]:
        """Open, not-yet-finished entries of today, viewed as tasks."""
        originals: Dict[str, Task] = {t.id: t for t in ad_hoc_tasks}
        tasks = []
        for entry in today:
            if entry.is_completed or entry.end_time < current_time:
                continue
            task = entry.as_task()
            original = originals.get(entry.id)
            if original is not None:
                task = task.model_copy(update={"requires_photo": original.requires_photo})
            tasks.append(task)
        return tasks

    def _suggestions(
        self,
        worker: Worker,
        day: date,
        sources: PlanSources,
        current: Optional[BuildingSummary],
        ordering: TaskOrdering,
    ) -> List[WeatherSuggestion]:
        if sources.weather is None:
            return []
        suggestions = list(ordering.substitutes)
        if current is not None:
            suggestions.extend(self.weather_engine.suggestions(
                current,
                sources.weather,
                day=day,
                upcoming_titles=[s.task.title for s in ordering.ordered],
                collection_rules=sources.collection_rules,
                worker_id=worker.id,
                policy_rules=sources.policy_rules,
            ))
        return suggestions

    def _validate(
        self, worker: Worker, day: date, sources: PlanSources, current_time: datetime
    ) -> None:
        if isinstance(day, datetime) or not isinstance(day, date):
            raise PlanInputError(f"day must be a calendar date, got {type(day).__name__}")
        if not isinstance(current_time, datetime):
            raise PlanInputError(f"current_time must be a datetime, got {type(current_time).__name__}")

        aware = current_time.tzinfo is not None
        moments = [r.start_time for r in sources.routine_instances]
        moments += [r.end_time for r in sources.routine_instances if r.end_time is not None]
        moments += [t.due_time for t in sources.ad_hoc_tasks if t.due_time is not None]
        if worker.check_in is not None:
            moments.append(worker.check_in.checked_in_at)
            if worker.check_in.expires_at is not None:
                moments.append(worker.check_in.expires_at)
        if sources.weather is not None:
            moments.append(sources.weather.current.timestamp)
            moments += [b.timestamp for b in sources.weather.hourly]
        for moment in moments:
            if (moment.tzinfo is not None) != aware:
                raise PlanInputError(
                    "current_time and input times must all be timezone-aware or all naive"
                )

        ids = [b.id for b in sources.assigned_buildings]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise PlanInputError(f"duplicate assigned building ids: {', '.join(duplicates)}")
