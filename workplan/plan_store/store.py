"""
Plan Store — the caller-side holder of the latest published plan per worker.

Planning itself is stateless; this store is where a caller keeps results.
Each recomputation takes a generation number before it starts; a result
is only published if no newer generation has been published meanwhile.
"""

import logging
import threading
from typing import Dict, List, Optional

from workplan.models.building import BuildingSummary
from workplan.models.plan import DailyPlan
from workplan.models.schedule import WeeklyPlan
from workplan.models.weather import ScoredTask

logger = logging.getLogger(__name__)


class PlanStore:
    """
    In-memory latest-plan store.
    Safe to share between a refresh timer and location-update handlers.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generations: Dict[str, int] = {}
        self._published: Dict[str, int] = {}
        self._plans: Dict[str, DailyPlan] = {}

    def next_generation(self, worker_id: str) -> int:
        """Reserve a generation number for a recomputation about to start."""
        with self._lock:
            generation = self._generations.get(worker_id, 0) + 1
            self._generations[worker_id] = generation
            return generation

    def publish(self, worker_id: str, generation: int, plan: DailyPlan) -> bool:
        """Keep `plan` unless a newer generation is already published."""
        with self._lock:
            if generation <= self._published.get(worker_id, 0):
                logger.debug(
                    "discarding stale plan for worker %s (generation %d <= %d)",
                    worker_id, generation, self._published.get(worker_id, 0),
                )
                return False
            self._published[worker_id] = generation
            self._plans[worker_id] = plan
            return True

    def generation(self, worker_id: str) -> int:
        """Generation of the currently published plan (0 = none)."""
        with self._lock:
            return self._published.get(worker_id, 0)

    # --- Read-only accessors ---

    def latest(self, worker_id: str) -> Optional[DailyPlan]:
        with self._lock:
            return self._plans.get(worker_id)

    def weekly_plan(self, worker_id: str) -> Optional[WeeklyPlan]:
        plan = self.latest(worker_id)
        return plan.weekly_plan if plan else None

    def current_building(self, worker_id: str) -> Optional[BuildingSummary]:
        plan = self.latest(worker_id)
        return plan.current_building if plan else None

    def ordered_upcoming(self, worker_id: str) -> List[ScoredTask]:
        plan = self.latest(worker_id)
        return list(plan.ordered_upcoming) if plan else []
