"""
Weather Suggestion Engine — weather-aware ordering, deferral and suggestions.

Behavioral Contract:
- Deferral fires when any of the next hourly blocks in the look-ahead window
  has precipitation ≥ 0.4, temperature ≤ 45°F or wind ≥ 25 mph
- While deferral holds, tasks whose titles read as outdoor work leave the
  "do now" ordering (they are reported, never deleted) and an indoor
  substitute suggestion is produced per affected building
- A task's score is a pure function of (task, snapshot); lower = sooner.
  Ties fall back to due time, then input order
- At most `max_suggestions` suggestions per building, none repeating one of
  the top upcoming titles
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from workplan.models.building import BuildingSummary
from workplan.models.config import PlannerConfig
from workplan.models.rules import CollectionRule, PolicyRule
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
from workplan.policy.rules import policy_suggestions
from workplan.weather.profiles import LEXICAL_OUTDOOR, is_outdoor_title, profile_for

logger = logging.getLogger(__name__)

UNDATED_TIME_SCORE = 48                     # 24h in 30-minute steps

URGENCY_OFFSETS: Dict[TaskUrgency, int] = {
    TaskUrgency.LOW: 1,
    TaskUrgency.NORMAL: 0,
    TaskUrgency.HIGH: -1,
    TaskUrgency.URGENT: -2,
    TaskUrgency.CRITICAL: -3,
    TaskUrgency.EMERGENCY: -4,
}

CATEGORY_OFFSETS: Dict[TaskCategory, int] = {
    TaskCategory.SANITATION: -2,
    TaskCategory.MAINTENANCE: -1,
    TaskCategory.INSPECTION: 1,
}

CHECKLISTS: Dict[str, List[str]] = {
    "skip_hosing": ["Spot clean entrance", "Check for pooling", "Mark slippery areas"],
    "roof_drain_check": ["Clear roof scuppers", "Clear curb drains", "Check basement for seepage"],
    "rain_mats": ["Deploy lobby mats", "Clean existing mats", "Post wet-floor sign"],
    "hose_sidewalks": ["Hose sidewalk", "Squeegee entrance", "Coil hose"],
    "secure_trash": ["Secure bin lids", "Tie bags", "Sweep loose litter"],
    "collection_setout": ["Stage bins", "Set out at curb", "Photo of set-out"],
    "salt_entrances": ["Salt entrances", "Clear walkway", "Check steps for ice"],
    "exterior_sweep": ["Sweep sidewalk", "Clear entrance", "Check exterior lights"],
    "indoor_detail": ["Lobby detail", "Stairwell sweep", "Wipe down entry glass"],
}

KIND_RANK: Dict[SuggestionKind, int] = {
    SuggestionKind.COLLECTION: 0,
    SuggestionKind.POLICY: 1,
    SuggestionKind.RAIN: 2,
    SuggestionKind.WIND: 2,
    SuggestionKind.SNOW: 2,
    SuggestionKind.INDOOR: 2,
    SuggestionKind.HEAT: 3,
    SuggestionKind.GENERIC: 3,
}


class WeatherSuggestionEngine:
    """Scores tasks against a weather snapshot and proposes weather actions."""

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    # --- Deferral ---

    def should_defer_outdoor_work(self, weather: Optional[WeatherSnapshot]) -> bool:
        if weather is None:
            return False
        return any(self._unsafe(block) for block in weather.window(self.config.lookahead_hours))

    def _unsafe(self, block: WeatherReading) -> bool:
        return (
            block.precip_prob >= self.config.defer_precip_prob
            or block.temp_f <= self.config.defer_temp_f
            or block.wind_mph >= self.config.defer_wind_mph
        )

    # --- Scoring ---

    def score(
        self,
        task: Task,
        weather: Optional[WeatherSnapshot],
        reference_time: Optional[datetime] = None,
        defer: Optional[bool] = None,
    ) -> ScoredTask:
        """
        Weather-adjusted score for one task.

        The reference "now" is the snapshot's current timestamp unless given.
        """
        if reference_time is None:
            if weather is None:
                raise ValueError("a reference time is required when no weather snapshot is given")
            reference_time = weather.current.timestamp
        if defer is None:
            defer = self.should_defer_outdoor_work(weather)

        lexical = is_outdoor_title(task.title)
        profile = profile_for(task.category)
        if not profile.is_outdoor and lexical:
            profile = LEXICAL_OUTDOOR
        outdoor = profile.is_outdoor

        penalty = 0
        chip: Optional[WeatherChip] = None
        advice: Optional[str] = None

        if outdoor and weather is not None:
            window = weather.window(self.config.lookahead_hours)
            precip = max(b.precip_prob for b in window)
            wind = max(b.wind_mph for b in window)
            coldest = min(b.temp_f for b in window)
            hottest = max(b.temp_f for b in window)

            if profile.sensitive_to_precip and profile.ideal_precip_max is not None:
                if precip >= 0.6:
                    penalty += 3
                    chip = WeatherChip.HEAVY_RAIN
                    advice = "Do indoor tasks; rain likely."
                elif precip >= profile.ideal_precip_max:
                    penalty += 1
                    chip = WeatherChip.WET
                    advice = "Wet window likely; consider reslotting."

            if (
                profile.sensitive_to_wind
                and profile.ideal_wind_max is not None
                and wind > profile.ideal_wind_max
            ):
                penalty += 1
                chip = chip or WeatherChip.WINDY
                advice = advice or "High wind; bag and tie securely."

            if coldest <= 25:
                penalty += 1
                chip = chip or WeatherChip.COLD
                advice = advice or "Very cold; reduce outdoor exposure."
            elif hottest >= 95:
                penalty += 1
                chip = chip or WeatherChip.HOT
                advice = advice or "Heat; hydrate and pace work."

            if chip is None and precip < 0.2 and wind < 20:
                chip = WeatherChip.GOOD_WINDOW
                penalty -= 1

        return ScoredTask(
            task=task,
            score=self._base_score(task, reference_time) + penalty,
            chip=chip,
            advice=advice,
            outdoor=outdoor,
            deferred=bool(defer and lexical),
        )

    def _base_score(self, task: Task, reference_time: datetime) -> int:
        if task.due_time is None:
            time_score = UNDATED_TIME_SCORE
        else:
            minutes = (task.due_time - reference_time).total_seconds() / 60.0
            time_score = max(0, int(minutes // 30))
        return (
            time_score
            + URGENCY_OFFSETS.get(task.urgency, 0)
            + CATEGORY_OFFSETS.get(task.category, 0)
        )

    def score_and_order(
        self,
        tasks: Iterable[Task],
        weather: Optional[WeatherSnapshot],
        reference_time: Optional[datetime] = None,
    ) -> TaskOrdering:
        """Order open tasks for "do now"; split off deferred outdoor work."""
        defer = self.should_defer_outdoor_work(weather)
        keyed: List[Tuple[tuple, ScoredTask]] = []
        for index, task in enumerate(tasks):
            if task.is_completed:
                continue
            scored = self.score(task, weather, reference_time, defer=defer)
            due = task.due_time
            key = (scored.score, due is None, due.timestamp() if due else 0.0, index)
            keyed.append((key, scored))

        keyed.sort(key=lambda pair: pair[0])
        ordered = [s for _, s in keyed if not s.deferred]
        deferred = [s for _, s in keyed if s.deferred]

        if deferred:
            logger.info(
                "deferring %d outdoor task(s): %s",
                len(deferred), ", ".join(s.task.title for s in deferred),
            )

        return TaskOrdering(
            ordered=ordered,
            deferred=deferred,
            substitutes=self._indoor_substitutes(deferred, weather),
            defer_outdoor_work=defer,
        )

    def _indoor_substitutes(
        self, deferred: List[ScoredTask], weather: Optional[WeatherSnapshot]
    ) -> List[WeatherSuggestion]:
        condition = weather.current.condition if weather else ""
        substitutes: Dict[str, WeatherSuggestion] = {}
        for scored in deferred:
            building_id = scored.task.building_id or ""
            if building_id in substitutes:
                continue
            substitutes[building_id] = WeatherSuggestion(
                id=f"indoor-detail-{building_id or scored.task.id}",
                kind=SuggestionKind.INDOOR,
                title="Indoor detail instead of outdoor work",
                subtitle=f"'{scored.task.title}' deferred until conditions improve",
                rationale=condition,
                checklist=list(CHECKLISTS["indoor_detail"]),
                template_id="indoor_detail",
                building_id=building_id or None,
            )
        return list(substitutes.values())

    # --- Suggestions ---

    def suggestions(
        self,
        building: BuildingSummary,
        weather: WeatherSnapshot,
        day: Optional[date] = None,
        upcoming_titles: Sequence[str] = (),
        collection_rules: Iterable[CollectionRule] = (),
        worker_id: Optional[str] = None,
        policy_rules: Iterable[PolicyRule] = (),
    ) -> List[WeatherSuggestion]:
        """Up to `max_suggestions` ranked suggestions for one building."""
        if day is None:
            day = weather.current.timestamp.date()
        rationale = weather.current.condition
        tag = f"{building.id}-{day.isoformat()}"
        out: List[WeatherSuggestion] = []

        def add(kind, template_id, title, subtitle, due_by=None):
            out.append(WeatherSuggestion(
                id=f"{template_id}-{tag}",
                kind=kind,
                title=title,
                subtitle=subtitle,
                rationale=rationale,
                checklist=list(CHECKLISTS.get(template_id, [])),
                template_id=template_id,
                building_id=building.id,
                due_by=due_by,
            ))

        precip_window = weather.window(self.config.suggestion_precip_hours)
        short_window = weather.window(self.config.suggestion_temp_wind_hours)
        max_precip = max(b.precip_prob for b in precip_window)
        total_rain = sum(b.precip_intensity or 0.0 for b in precip_window)
        max_temp = max(b.temp_f for b in short_window)
        max_wind = max(b.wind_mph for b in short_window)

        if max_precip >= 0.25 or total_rain >= 0.1:
            add(SuggestionKind.RAIN, "skip_hosing", "Skip sidewalk hosing",
                "Rain expected; spot clean and prevent pooling")
        if max_precip >= 0.4 or total_rain >= 0.25:
            add(SuggestionKind.RAIN, "roof_drain_check", "Clear roof & curb drains",
                f"Check scuppers and drains before rain at {building.name}")
        if max_precip >= 0.3:
            add(SuggestionKind.RAIN, "rain_mats", "Deploy / clean rain mats",
                "Reduce slip risk at the lobby entrance")
        if max_temp >= 78 and max_precip < 0.3:
            add(SuggestionKind.HEAT, "hose_sidewalks", f"Warm today ({int(max_temp)}°)",
                f"Hose and squeegee sidewalks at {building.name}")
        if max_wind >= 15:
            add(SuggestionKind.WIND, "secure_trash", f"Windy conditions ({int(max_wind)} mph)",
                "Secure trash lids and tie bags to prevent litter")

        collection_day = False
        for rule in collection_rules:
            if building.id not in rule.building_group:
                continue
            if worker_id is not None and rule.applies_to_worker != worker_id:
                continue
            if rule.fires_on(day, rule.applies_to_worker):
                collection_day = True
                set_out = datetime.combine(day, rule.window_start, tzinfo=weather.current.timestamp.tzinfo)
                add(SuggestionKind.COLLECTION, "collection_setout", "Set-out tonight",
                    f"Set out bins at {rule.window_start:%H:%M}",
                    due_by=set_out - timedelta(minutes=10))
                break

        if "snow" in weather.current.condition.lower() and any(
            b.precip_prob >= 0.5 for b in short_window
        ):
            add(SuggestionKind.SNOW, "salt_entrances", "Snow expected",
                "Salt entrances within 4h after snow")

        out.extend(policy_suggestions(
            building,
            worker_id,
            policy_rules,
            rain_expected=max_precip >= self.config.defer_precip_prob,
            collection_day=collection_day,
            rationale=rationale,
        ))

        if not out:
            add(SuggestionKind.GENERIC, "exterior_sweep", "Routine exterior sweep",
                f"Good conditions for exterior maintenance at {building.name}")

        return self.rank_suggestions(out, upcoming_titles)

    def rank_suggestions(
        self,
        suggestions: Iterable[WeatherSuggestion],
        upcoming_titles: Sequence[str] = (),
    ) -> List[WeatherSuggestion]:
        """Rank, drop titles already among the top upcoming items, cap the count."""
        shown = {
            t.strip().lower() for t in list(upcoming_titles)[: self.config.suggestion_dedup_top_n]
        }
        ranked = sorted(suggestions, key=lambda s: (KIND_RANK.get(s.kind, 9), s.title))
        unique = [s for s in ranked if s.title.strip().lower() not in shown]
        return unique[: self.config.max_suggestions]
