"""
Building Resolver — picks the single building a worker is "at" right now.

Behavioral Contract:
- Tries an ordered chain of strategies; the first non-None answer wins
- Strategy order: explicit check-in → active schedule window →
  upcoming window → GPS proximity → first assigned building
- Never raises on missing data; a missing signal advances the chain
- Returns None only when no building information exists at all
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from workplan.models.building import BuildingStatus, BuildingSummary, CheckIn, Coordinate
from workplan.models.config import PlannerConfig
from workplan.models.schedule import ScheduleEntry

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0

Strategy = Callable[["WorkerState"], Optional[BuildingSummary]]


class WorkerState(BaseModel):
    """Every location signal available for one resolution call."""

    current_time: datetime
    check_in: Optional[CheckIn] = None
    today_schedule: List[ScheduleEntry] = []
    live_position: Optional[Coordinate] = None
    assigned_buildings: List[BuildingSummary] = []

    def building_for(self, building_id: str) -> BuildingSummary:
        """Look up an assigned building, or describe an unassigned one by id."""
        for building in self.assigned_buildings:
            if building.id == building_id:
                return building
        return BuildingSummary(id=building_id, name=building_id, status=BuildingStatus.COVERAGE)


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance between two positions."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


class BuildingResolver:
    """Ordered strategy chain over a WorkerState."""

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()
        self._strategies: List[Strategy] = []
        self._register_default_strategies()

    def _register_default_strategies(self) -> None:
        self._strategies = [
            self.from_check_in,
            self.from_active_window,
            self.from_upcoming_window,
            self.from_gps_proximity,
            self.from_first_assigned,
        ]

    @property
    def strategies(self) -> List[Strategy]:
        return list(self._strategies)

    def resolve(self, state: WorkerState) -> Optional[BuildingSummary]:
        """Run the chain and mark the winner as the current building."""
        for strategy in self._strategies:
            building = strategy(state)
            if building is not None:
                logger.debug("current building %s via %s", building.id, strategy.__name__)
                return building.with_status(BuildingStatus.CURRENT)
        logger.debug("no building information available")
        return None

    def resolve_current_building(
        self,
        explicit_check_in: Optional[CheckIn],
        today_schedule: List[ScheduleEntry],
        live_position: Optional[Coordinate],
        assigned_buildings: List[BuildingSummary],
        current_time: datetime,
    ) -> Optional[BuildingSummary]:
        return self.resolve(WorkerState(
            current_time=current_time,
            check_in=explicit_check_in,
            today_schedule=today_schedule,
            live_position=live_position,
            assigned_buildings=assigned_buildings,
        ))

    def building_statuses(
        self,
        state: WorkerState,
        current: Optional[BuildingSummary] = None,
    ) -> List[BuildingSummary]:
        """
        Status view for every building known to this call.

        Assigned buildings come first in their given order, then buildings
        that only appear on today's schedule (coverage), ordered by id.
        At most one building is `current`.
        """
        if current is None:
            current = self.resolve(state)
        current_id = current.id if current else None

        statuses: List[BuildingSummary] = []
        seen = set()
        for building in state.assigned_buildings:
            if building.id in seen:
                continue
            seen.add(building.id)
            status = BuildingStatus.CURRENT if building.id == current_id else BuildingStatus.ASSIGNED
            statuses.append(building.with_status(status))

        coverage_ids = sorted({
            e.building_id for e in state.today_schedule
            if e.building_id and e.building_id not in seen
        })
        for building_id in coverage_ids:
            status = BuildingStatus.CURRENT if building_id == current_id else BuildingStatus.COVERAGE
            statuses.append(
                BuildingSummary(id=building_id, name=building_id, status=status)
            )
            seen.add(building_id)

        if current is not None and current.id not in seen:
            statuses.append(current)
        return statuses

    # --- Strategies ---

    def from_check_in(self, state: WorkerState) -> Optional[BuildingSummary]:
        """An unexpired explicit check-in is returned as-is."""
        if state.check_in and state.check_in.is_active(state.current_time):
            return state.check_in.building
        return None

    def from_active_window(self, state: WorkerState) -> Optional[BuildingSummary]:
        """First attributed entry whose window contains now."""
        for entry in _chronological(state.today_schedule):
            if entry.contains(state.current_time):
                return state.building_for(entry.building_id)
        return None

    def from_upcoming_window(self, state: WorkerState) -> Optional[BuildingSummary]:
        """Earliest attributed entry starting within the upcoming window."""
        horizon = state.current_time + timedelta(minutes=self.config.upcoming_window_minutes)
        for entry in _chronological(state.today_schedule):
            if state.current_time < entry.start_time <= horizon:
                return state.building_for(entry.building_id)
        return None

    def from_gps_proximity(self, state: WorkerState) -> Optional[BuildingSummary]:
        """Nearest assigned building within the GPS radius; ties go to the lowest id."""
        if state.live_position is None:
            return None

        nearby: Dict[str, tuple] = {}
        for building in state.assigned_buildings:
            if building.coordinate is None:
                continue
            distance = distance_meters(state.live_position, building.coordinate)
            if distance <= self.config.gps_radius_meters:
                nearby[building.id] = (distance, building.id, building)

        if not nearby:
            return None
        _, _, closest = min(nearby.values(), key=lambda t: (t[0], t[1]))
        return closest

    def from_first_assigned(self, state: WorkerState) -> Optional[BuildingSummary]:
        return state.assigned_buildings[0] if state.assigned_buildings else None


def _chronological(entries: List[ScheduleEntry]) -> List[ScheduleEntry]:
    """Attributed entries in (start, title, building, id) order."""
    attributed = [e for e in entries if e.building_id]
    return sorted(attributed, key=lambda e: (e.start_time, e.title, e.building_id, e.id))
