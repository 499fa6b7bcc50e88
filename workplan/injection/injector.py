"""
Calendar Task Injector — conditional recurring obligations.

Behavioral Contract:
- Rules are pure data; injection has no side effects
- A rule fires when the day's weekday is a collection day and the worker matches
- One entry per building in the rule's group, grouped under a circuit id
  that can never equal a real building id
- Entries are returned for appending; they join the normal de-duplication pass
- Re-injecting into a schedule that already holds a rule's entries adds nothing
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Set, Tuple

from workplan.models.config import PlannerConfig
from workplan.models.rules import CollectionRule
from workplan.models.schedule import DedupKey, EntrySource, ScheduleEntry
from workplan.models.task import TaskUrgency

logger = logging.getLogger(__name__)


class CalendarTaskInjector:
    """Evaluates collection rules against a calendar day."""

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    def circuit_id(self, rule: CollectionRule) -> str:
        prefix = self.config.circuit_prefix
        if rule.circuit_id.startswith(prefix):
            return rule.circuit_id
        return f"{prefix}{rule.circuit_id}"

    def inject(
        self,
        day: date,
        worker_id: str,
        rules: Iterable[CollectionRule],
        existing_entries: Iterable[ScheduleEntry] = (),
        tz: Optional[tzinfo] = None,
    ) -> List[ScheduleEntry]:
        """Entries to append to `day`'s schedule for `worker_id`."""
        present: Set[Tuple[DedupKey, Optional[str]]] = {
            (e.dedup_key, e.circuit_id) for e in existing_entries
        }

        injected: List[ScheduleEntry] = []
        for rule in rules:
            candidates: List[ScheduleEntry] = []
            if rule.fires_on(day, worker_id):
                candidates.extend(self.set_out_entries(rule, day, tz))
            if rule.retrieves_on(day, worker_id):
                candidates.extend(self.retrieval_entries(rule, day, tz))

            for entry in candidates:
                marker = (entry.dedup_key, entry.circuit_id)
                if marker in present:
                    continue
                present.add(marker)
                injected.append(entry)

        if injected:
            logger.debug(
                "injected %d calendar entries for worker %s on %s",
                len(injected), worker_id, day.isoformat(),
            )
        return injected

    def set_out_entries(
        self, rule: CollectionRule, day: date, tz: Optional[tzinfo] = None
    ) -> List[ScheduleEntry]:
        window_start = datetime.combine(day, rule.window_start, tzinfo=tz)
        window_end = datetime.combine(day, rule.window_end, tzinfo=tz)

        if rule.stagger_minutes:
            slots = _staggered(len(rule.building_group), window_start, window_end, rule.stagger_minutes)
        else:
            slots = [(window_start, window_end)] * len(rule.building_group)

        return [
            self._entry(rule, day, building_id, rule.title, start, end, "setout")
            for building_id, (start, end) in zip(rule.building_group, slots)
        ]

    def retrieval_entries(
        self, rule: CollectionRule, day: date, tz: Optional[tzinfo] = None
    ) -> List[ScheduleEntry]:
        start = datetime.combine(day, rule.retrieval_start, tzinfo=tz)
        end = datetime.combine(day, rule.retrieval_end, tzinfo=tz)
        return [
            self._entry(rule, day, building_id, rule.retrieval_title, start, end, "retrieval")
            for building_id in rule.building_group
        ]

    def _entry(
        self,
        rule: CollectionRule,
        day: date,
        building_id: str,
        title: str,
        start: datetime,
        end: datetime,
        phase: str,
    ) -> ScheduleEntry:
        circuit = self.circuit_id(rule)
        return ScheduleEntry(
            id=f"{circuit}/{building_id}/{day.isoformat()}/{phase}",
            building_id=building_id,
            title=title,
            start_time=start,
            end_time=end,
            task_count=1,
            sources=[EntrySource.INJECTED],
            category=rule.category,
            urgency=TaskUrgency.URGENT,
            circuit_id=circuit,
        )


def _staggered(
    count: int,
    window_start: datetime,
    window_end: datetime,
    durations: List[int],
) -> List[Tuple[datetime, datetime]]:
    """Back-to-back slots cycling through `durations`, clamped into the window."""
    slots = []
    cursor = window_start
    for i in range(count):
        length = timedelta(minutes=durations[i % len(durations)])
        start = min(cursor, window_end)
        end = max(start, min(start + length, window_end))
        slots.append((start, end))
        cursor = cursor + length
    return slots
