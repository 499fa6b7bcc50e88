"""Tests for the Calendar Task Injector."""

from datetime import date, datetime, time, timedelta

from workplan.injection.injector import CalendarTaskInjector
from workplan.merger.day import ScheduleMerger
from workplan.models import CollectionRule, EntrySource, RoutineInstance, TaskUrgency

MONDAY = date(2026, 10, 12)
TUESDAY = date(2026, 10, 13)
WEDNESDAY = date(2026, 10, 14)


def _make_rule(**overrides) -> CollectionRule:
    fields = dict(
        id="dsny-tue",
        applies_to_worker="w1",
        collection_days=["tuesday"],
        window_start=time(20, 0),
        window_end=time(21, 0),
        building_group=["B1", "B2", "B3"],
        circuit_id="dsny-east",
    )
    fields.update(overrides)
    return CollectionRule(**fields)


class TestInjection:
    def setup_method(self):
        self.injector = CalendarTaskInjector()
        self.merger = ScheduleMerger()

    def test_tuesday_rule_in_merged_schedule(self):
        """Rule fires Tuesday 20:00–21:00 for 3 buildings → 3 entries Tuesday, none Monday."""
        rule = _make_rule()
        for day, expected in ((MONDAY, 0), (TUESDAY, 3)):
            base = self.merger.merge_day(day, [], [])
            injected = self.injector.inject(day, "w1", [rule], base.entries)
            merged = self.merger.finalize(day, base.entries + injected)
            synthetic = [e for e in merged.entries if EntrySource.INJECTED in e.sources]
            assert len(synthetic) == expected

        tuesday = self.injector.inject(TUESDAY, "w1", [rule])
        assert {e.building_id for e in tuesday} == {"B1", "B2", "B3"}
        assert all(e.start_time == datetime(2026, 10, 13, 20, 0) for e in tuesday)
        assert all(e.end_time == datetime(2026, 10, 13, 21, 0) for e in tuesday)

    def test_other_worker_gets_nothing(self):
        assert self.injector.inject(TUESDAY, "w2", [_make_rule()]) == []

    def test_circuit_id_never_a_building_id(self):
        entries = self.injector.inject(TUESDAY, "w1", [_make_rule(circuit_id="B1")])
        assert {e.circuit_id for e in entries} == {"circuit:B1"}
        assert all(e.circuit_id != e.building_id for e in entries)
        assert all(e.urgency == TaskUrgency.URGENT for e in entries)

    def test_reinjection_is_idempotent(self):
        rule = _make_rule()
        first = self.injector.inject(TUESDAY, "w1", [rule])
        assert self.injector.inject(TUESDAY, "w1", [rule], first) == []

    def test_duplicate_rules_inject_once(self):
        rule = _make_rule()
        assert len(self.injector.inject(TUESDAY, "w1", [rule, rule])) == 3

    def test_collapses_with_matching_organic_entry(self):
        organic = RoutineInstance(
            id="r1", building_id="B1", title="set out bins",
            start_time=datetime(2026, 10, 13, 20, 0), end_time=datetime(2026, 10, 13, 20, 15),
        )
        base = self.merger.merge_day(TUESDAY, [organic], [])
        injected = self.injector.inject(TUESDAY, "w1", [_make_rule()], base.entries)
        merged = self.merger.finalize(TUESDAY, base.entries + injected)
        b1 = [e for e in merged.entries if e.building_id == "B1"]
        assert len(b1) == 1
        assert b1[0].task_count == 2
        assert b1[0].end_time == datetime(2026, 10, 13, 21, 0)
        assert b1[0].circuit_id == "circuit:dsny-east"


class TestStaggerAndRetrieval:
    def setup_method(self):
        self.injector = CalendarTaskInjector()

    def test_staggered_slots(self):
        rule = _make_rule(stagger_minutes=[15, 20])
        entries = sorted(self.injector.inject(TUESDAY, "w1", [rule]), key=lambda e: e.start_time)
        slots = [(e.building_id, e.start_time.time(), e.end_time.time()) for e in entries]
        assert slots == [
            ("B1", time(20, 0), time(20, 15)),
            ("B2", time(20, 15), time(20, 35)),
            ("B3", time(20, 35), time(20, 50)),
        ]

    def test_stagger_clamped_at_window_end(self):
        rule = _make_rule(stagger_minutes=[40], window_end=time(21, 0))
        entries = sorted(self.injector.inject(TUESDAY, "w1", [rule]), key=lambda e: e.building_id)
        assert [(e.start_time.time(), e.end_time.time()) for e in entries] == [
            (time(20, 0), time(20, 40)),
            (time(20, 40), time(21, 0)),
            (time(21, 0), time(21, 0)),
        ]

    def test_retrieval_next_morning(self):
        rule = _make_rule(retrieval_start=time(7, 0), retrieval_end=time(8, 0))
        assert all("Retrieve" not in e.title for e in self.injector.inject(TUESDAY, "w1", [rule]))

        wednesday = self.injector.inject(WEDNESDAY, "w1", [rule])
        assert len(wednesday) == 3
        assert all(e.title == "Retrieve bins" for e in wednesday)
        assert all(e.start_time == datetime(2026, 10, 14, 7, 0) for e in wednesday)
        assert len({e.id for e in wednesday}) == 3

    def test_sunday_collection_retrieves_monday(self):
        rule = _make_rule(
            collection_days=["sunday"],
            retrieval_start=time(6, 0),
            retrieval_end=time(7, 0),
        )
        assert len(self.injector.inject(MONDAY, "w1", [rule])) == 3
        assert self.injector.inject(MONDAY + timedelta(days=1), "w1", [rule]) == []
