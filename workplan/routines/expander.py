"""
Routine Expander — concrete routine instances from recurring templates.

Behavioral Contract:
- One instance per cron fire time that falls inside a calendar day of the range
- Instance ids are "{template_id}@{ISO start}" and therefore stable across runs
- Output is ordered by (start, id)
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional

from croniter import croniter

from workplan.models.schedule import RoutineInstance, RoutineTemplate

logger = logging.getLogger(__name__)


class RoutineExpander:
    """Expands cron-scheduled routine templates over a range of days."""

    def expand(
        self,
        templates: Iterable[RoutineTemplate],
        start_day: date,
        days: int = 1,
        worker_id: Optional[str] = None,
        tz: Optional[tzinfo] = None,
    ) -> List[RoutineInstance]:
        """
        Instances for every template firing in [start_day, start_day + days).

        Templates belonging to a different worker are skipped when
        `worker_id` is given.
        """
        range_start = datetime.combine(start_day, datetime.min.time(), tzinfo=tz)
        range_end = range_start + timedelta(days=days)

        instances: List[RoutineInstance] = []
        for template in templates:
            if worker_id is not None and template.worker_id != worker_id:
                continue
            instances.extend(self._fire_times(template, range_start, range_end))

        instances.sort(key=lambda i: (i.start_time, i.id))
        logger.debug(
            "expanded %d routine instances from %s for %d day(s)",
            len(instances), start_day.isoformat(), days,
        )
        return instances

    def _fire_times(
        self, template: RoutineTemplate, range_start: datetime, range_end: datetime
    ) -> List[RoutineInstance]:
        # Seed one minute early so a fire time at exactly range_start is included
        cron = croniter(template.schedule, range_start - timedelta(minutes=1))
        duration = timedelta(minutes=template.duration_minutes)

        out = []
        fire = cron.get_next(datetime)
        while fire < range_end:
            out.append(RoutineInstance(
                id=f"{template.id}@{fire.isoformat()}",
                building_id=template.building_id,
                title=template.title,
                start_time=fire,
                end_time=fire + duration,
                category=template.category,
                routine_id=template.id,
            ))
            fire = cron.get_next(datetime)
        return out
