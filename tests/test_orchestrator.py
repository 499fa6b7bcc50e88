"""Tests for the Daily Plan Orchestrator."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from workplan.models import (
    BuildingStatus,
    BuildingSummary,
    CheckIn,
    CollectionRule,
    IssueKind,
    PlanSources,
    PlannerConfig,
    PolicyAction,
    PolicyRule,
    RouteSequence,
    RoutineInstance,
    RoutineTemplate,
    SuggestionKind,
    Task,
    WeatherReading,
    WeatherSnapshot,
    Weekday,
    Worker,
)
from workplan.orchestrator.pipeline import DailyPlanOrchestrator, PlanInputError

MONDAY = date(2026, 10, 12)
NOW = datetime(2026, 10, 12, 10, 0)


def _make_buildings():
    return [
        BuildingSummary(id="B1", name="12 Main St"),
        BuildingSummary(id="B2", name="40 Elm St"),
        BuildingSummary(id="B3", name="7 Oak Ave"),
    ]


def _make_weather(precip=0.0, condition="Clear") -> WeatherSnapshot:
    return WeatherSnapshot(
        current=WeatherReading(temp_f=62, condition=condition, timestamp=NOW),
        hourly=[
            WeatherReading(temp_f=62, condition=condition, precip_prob=precip, timestamp=NOW + timedelta(hours=h))
            for h in (1, 2, 3)
        ],
    )


def _make_rule() -> CollectionRule:
    return CollectionRule(
        id="dsny", applies_to_worker="w1", collection_days=["tuesday"],
        window_start=time(20, 0), window_end=time(21, 0),
        building_group=["B1", "B2", "B3"], circuit_id="dsny-east",
    )


def _make_sources(**overrides) -> PlanSources:
    fields = dict(
        routine_instances=[
            RoutineInstance(
                id="r1", building_id="B2", title="Sweep lobby",
                start_time=datetime(2026, 10, 12, 9, 30), end_time=datetime(2026, 10, 12, 10, 30),
            ),
        ],
        ad_hoc_tasks=[],
        weather=_make_weather(),
        assigned_buildings=_make_buildings(),
    )
    fields.update(overrides)
    return PlanSources(**fields)


class TestWeeklyPlan:
    def setup_method(self):
        self.orchestrator = DailyPlanOrchestrator()
        self.worker = Worker(id="w1", name="Ana")

    def test_seven_consecutive_days(self):
        plan = self.orchestrator.build_plan(self.worker, MONDAY, _make_sources(), NOW)
        assert [d.date for d in plan.weekly_plan.days] == [MONDAY + timedelta(days=i) for i in range(7)]
        assert plan.generated_at == NOW

    def test_collection_rule_in_week(self):
        plan = self.orchestrator.build_plan(
            self.worker, MONDAY, _make_sources(collection_rules=[_make_rule()]), NOW
        )
        tuesday = plan.weekly_plan.day(MONDAY + timedelta(days=1))
        assert len([e for e in tuesday.items if e.circuit_id]) == 3
        assert not any(e.circuit_id for e in plan.weekly_plan.day(MONDAY).items)

    def test_templates_expanded(self):
        template = RoutineTemplate(
            id="trash", worker_id="w1", building_id="B3", title="Trash out",
            schedule="0 7 * * *", duration_minutes=30,
        )
        plan = self.orchestrator.build_plan(
            self.worker, MONDAY, _make_sources(routine_templates=[template]), NOW
        )
        assert all(
            any(e.title == "Trash out" for e in d.items) for d in plan.weekly_plan.days
        )

    def test_undated_task_only_today(self):
        task = Task(id="t1", title="Replace bulb", building_id="B1")
        plan = self.orchestrator.build_plan(self.worker, MONDAY, _make_sources(ad_hoc_tasks=[task]), NOW)
        days_with_task = [d.date for d in plan.weekly_plan.days if any(e.id == "t1" for e in d.items)]
        assert days_with_task == [MONDAY]

    def test_route_fallback_on_days_without_routines(self):
        routes = {Weekday.WEDNESDAY: [RouteSequence(building_id="B3", building_name="7 Oak Ave", arrival_time=time(8, 0))]}
        plan = self.orchestrator.build_plan(self.worker, MONDAY, _make_sources(route_sequences=routes), NOW)
        wednesday = plan.weekly_plan.day(MONDAY + timedelta(days=2))
        assert [e.title for e in wednesday.items] == ["7 Oak Ave"]

    def test_unattributed_task_uses_fallback_building(self):
        task = Task(id="t1", title="Replace bulb", due_time=datetime(2026, 10, 12, 15, 0))
        plan = self.orchestrator.build_plan(self.worker, MONDAY, _make_sources(ad_hoc_tasks=[task]), NOW)
        entry = next(e for e in plan.weekly_plan.day(MONDAY).items if e.id == "t1")
        assert entry.building_id == "B1"


class TestCurrentBuilding:
    def setup_method(self):
        self.orchestrator = DailyPlanOrchestrator()

    def test_active_window(self):
        plan = self.orchestrator.build_plan(Worker(id="w1"), MONDAY, _make_sources(), NOW)
        assert plan.current_building.id == "B2"
        statuses = {b.id: b.status for b in plan.building_statuses}
        assert statuses == {
            "B1": BuildingStatus.ASSIGNED,
            "B2": BuildingStatus.CURRENT,
            "B3": BuildingStatus.ASSIGNED,
        }

    def test_check_in_overrides_schedule(self):
        worker = Worker(
            id="w1",
            check_in=CheckIn(building=_make_buildings()[2], checked_in_at=NOW - timedelta(minutes=5)),
        )
        plan = self.orchestrator.build_plan(worker, MONDAY, _make_sources(), NOW)
        assert plan.current_building.id == "B3"

    def test_no_building_information(self):
        plan = self.orchestrator.build_plan(
            Worker(id="w1"), MONDAY,
            _make_sources(routine_instances=[], assigned_buildings=[]), NOW,
        )
        assert plan.current_building is None
        assert IssueKind.MISSING_DATA in {i.kind for i in plan.issues}


class TestOrderingAndSuggestions:
    def setup_method(self):
        self.orchestrator = DailyPlanOrchestrator()
        self.worker = Worker(id="w1")

    def test_rain_defers_outdoor_work(self):
        tasks = [
            Task(id="t1", title="Hose sidewalks", building_id="B1", due_time=NOW),
            Task(id="t2", title="Lobby check", building_id="B1", due_time=NOW + timedelta(hours=1)),
        ]
        sources = _make_sources(
            routine_instances=[], ad_hoc_tasks=tasks, weather=_make_weather(0.5, "Light rain"),
        )
        plan = self.orchestrator.build_plan(self.worker, MONDAY, sources, NOW)
        assert plan.defer_outdoor_work
        assert [s.task.title for s in plan.ordered_upcoming] == ["Lobby check"]
        assert [s.task.title for s in plan.deferred_outdoor] == ["Hose sidewalks"]
        assert plan.suggestions[0].kind == SuggestionKind.INDOOR
        # Deferred work stays on the schedule
        assert {e.id for e in plan.weekly_plan.day(MONDAY).items} == {"t1", "t2"}

    def test_finished_and_completed_entries_not_upcoming(self):
        tasks = [
            Task(id="done", title="Mop", building_id="B1", due_time=NOW + timedelta(hours=2), is_completed=True),
            Task(id="past", title="Dust", building_id="B1", due_time=NOW - timedelta(hours=3)),
            Task(id="next", title="Vacuum", building_id="B1", due_time=NOW + timedelta(hours=1)),
        ]
        plan = self.orchestrator.build_plan(
            self.worker, MONDAY, _make_sources(ad_hoc_tasks=tasks), NOW
        )
        assert [s.task.id for s in plan.ordered_upcoming] == ["r1", "next"]

    def test_suggestions_skip_top_upcoming_titles(self):
        tasks = [Task(id="t1", title="Skip sidewalk hosing", building_id="B2", due_time=NOW)]
        plan = self.orchestrator.build_plan(
            self.worker, MONDAY,
            _make_sources(ad_hoc_tasks=tasks, weather=_make_weather(0.3, "Cloudy")), NOW,
        )
        titles = [s.title for s in plan.suggestions]
        assert "Skip sidewalk hosing" not in titles
        assert "Deploy / clean rain mats" in titles

    def test_photo_waiver_applied(self):
        tasks = [Task(id="t1", title="Trash out", building_id="B1", due_time=NOW + timedelta(hours=1), requires_photo=True)]
        rule = PolicyRule(id="exempt", action=PolicyAction.WAIVE_PHOTO, worker_ids=["w1"])
        plan = self.orchestrator.build_plan(
            self.worker, MONDAY, _make_sources(ad_hoc_tasks=tasks, policy_rules=[rule]), NOW
        )
        scored = next(s for s in plan.ordered_upcoming if s.task.id == "t1")
        assert scored.task.requires_photo is False
        assert tasks[0].requires_photo is True

    def test_missing_weather_degrades(self):
        plan = self.orchestrator.build_plan(self.worker, MONDAY, _make_sources(weather=None), NOW)
        assert plan.suggestions == []
        assert not plan.defer_outdoor_work
        assert [s.task.id for s in plan.ordered_upcoming] == ["r1"]
        assert plan.issues[0].kind == IssueKind.MISSING_DATA

    def test_identical_inputs_identical_plans(self):
        sources = _make_sources(collection_rules=[_make_rule()], weather=_make_weather(0.45))
        first = self.orchestrator.build_plan(self.worker, MONDAY, sources, NOW)
        second = self.orchestrator.build_plan(self.worker, MONDAY, sources, NOW)
        assert first.model_dump_json() == second.model_dump_json()

    def test_plan_days_configurable(self):
        orchestrator = DailyPlanOrchestrator(PlannerConfig(plan_days=3))
        plan = orchestrator.build_plan(self.worker, MONDAY, _make_sources(), NOW)
        assert len(plan.weekly_plan.days) == 3


class TestInputValidation:
    def setup_method(self):
        self.orchestrator = DailyPlanOrchestrator()

    def test_datetime_day_rejected(self):
        with pytest.raises(PlanInputError):
            self.orchestrator.build_plan(Worker(id="w1"), NOW, _make_sources(), NOW)

    def test_mixed_timezone_awareness_rejected(self):
        with pytest.raises(PlanInputError):
            self.orchestrator.build_plan(
                Worker(id="w1"), MONDAY, _make_sources(), NOW.replace(tzinfo=timezone.utc)
            )

    def test_naive_check_in_with_aware_clock_rejected(self):
        worker = Worker(
            id="w1",
            check_in=CheckIn(building=_make_buildings()[0], checked_in_at=NOW - timedelta(minutes=5)),
        )
        sources = _make_sources(routine_instances=[], weather=None)
        with pytest.raises(PlanInputError):
            self.orchestrator.build_plan(worker, MONDAY, sources, NOW.replace(tzinfo=timezone.utc))

    def test_naive_weather_with_aware_tasks_rejected(self):
        utc = timezone.utc
        tasks = [Task(id="t1", title="Lobby check", building_id="B1", due_time=NOW.replace(tzinfo=utc))]
        sources = _make_sources(routine_instances=[], ad_hoc_tasks=tasks, weather=_make_weather())
        with pytest.raises(PlanInputError):
            self.orchestrator.build_plan(Worker(id="w1"), MONDAY, sources, NOW.replace(tzinfo=utc))

    def test_duplicate_assigned_buildings_rejected(self):
        buildings = _make_buildings() + [BuildingSummary(id="B1", name="dup")]
        with pytest.raises(PlanInputError):
            self.orchestrator.build_plan(
                Worker(id="w1"), MONDAY, _make_sources(assigned_buildings=buildings), NOW
            )

    def test_aware_inputs_accepted(self):
        utc = timezone.utc
        sources = _make_sources(
            routine_instances=[RoutineInstance(
                id="r1", building_id="B2", title="Sweep lobby",
                start_time=datetime(2026, 10, 12, 9, 30, tzinfo=utc),
            )],
            weather=None,
        )
        plan = self.orchestrator.build_plan(Worker(id="w1"), MONDAY, sources, NOW.replace(tzinfo=utc))
        assert plan.current_building.id == "B2"
