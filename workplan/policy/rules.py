"""
Policy rules — organization-specific {condition, action} table.

Every rule is evaluated the same way: the condition must hold, and the
worker and building must match the rule's (possibly empty) id lists.
"""

import logging
from typing import Iterable, List, Optional

from workplan.models.building import BuildingSummary
from workplan.models.rules import PolicyAction, PolicyCondition, PolicyRule
from workplan.models.task import Task
from workplan.models.weather import SuggestionKind, WeatherSuggestion

logger = logging.getLogger(__name__)


def condition_holds(
    condition: PolicyCondition,
    rain_expected: bool = False,
    collection_day: bool = False,
) -> bool:
    if condition == PolicyCondition.ALWAYS:
        return True
    if condition == PolicyCondition.RAIN_EXPECTED:
        return rain_expected
    if condition == PolicyCondition.COLLECTION_DAY:
        return collection_day
    return False


def apply_task_policies(
    tasks: Iterable[Task],
    worker_id: Optional[str],
    rules: Iterable[PolicyRule],
) -> List[Task]:
    """Return tasks with task-level policy actions applied (inputs untouched)."""
    waivers = [
        r for r in rules
        if r.action == PolicyAction.WAIVE_PHOTO and condition_holds(r.condition)
    ]
    result = []
    for task in tasks:
        if task.requires_photo and any(r.matches(worker_id, task.building_id) for r in waivers):
            logger.debug("photo requirement waived for task %s", task.id)
            task = task.model_copy(update={"requires_photo": False})
        result.append(task)
    return result


def policy_suggestions(
    building: BuildingSummary,
    worker_id: Optional[str],
    rules: Iterable[PolicyRule],
    rain_expected: bool,
    collection_day: bool,
    rationale: str = "",
) -> List[WeatherSuggestion]:
    suggestions = []
    for rule in rules:
        if rule.action != PolicyAction.ADD_SUGGESTION:
            continue
        if not rule.matches(worker_id, building.id):
            continue
        if not condition_holds(rule.condition, rain_expected, collection_day):
            continue
        suggestions.append(WeatherSuggestion(
            id=f"policy-{rule.id}-{building.id}",
            kind=SuggestionKind.POLICY,
            title=rule.suggestion_title,
            subtitle=rule.suggestion_subtitle,
            rationale=rationale,
            checklist=list(rule.checklist),
            template_id=rule.id,
            building_id=building.id,
        ))
    return suggestions
