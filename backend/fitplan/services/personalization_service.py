import logging
from datetime import date, timedelta
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitplan.config import (
    DEFAULT_DAILY_CALORIES, MEAL_SLOTS, MEAL_SLOT_DISTRIBUTION, WORKOUT_DAY_MAPPING,
)
from fitplan.crud import template as template_crud
from fitplan.crud.constraints import get_constraints, get_user_insights
from fitplan.crud.plan import delete_plan_range, get_slots_for_date
from fitplan.exceptions import PlanNotFound, RateLimited
from fitplan.models.personalized_item import PersonalizedItem
from fitplan.models.schedule_slot import ScheduleSlot
from fitplan.models.template import MEAL, WORKOUT, Template
from fitplan.models.user_profile import UserProfile
from fitplan.schemas.plan import DailyPlanResponse, PersonalizationResult, SlotView
from fitplan.services.customization_service import CustomizationClient
from fitplan.services.plan_events import RefreshEvent, plan_refresh_bus
from fitplan.services.rate_limiter import rate_limiter as default_rate_limiter
from fitplan.services.template_selector import select_template
from fitplan.utils.scaling import scale_template, slot_target, totals_from_content
from fitplan.utils.utils import get_user_today
from fitplan.utils.validation import validate_personalization

logger = logging.getLogger(__name__)

"""
Personalization Orchestrator
----------------------------
SELECT_TEMPLATES -> REQUEST_CUSTOMIZATION -> VALIDATE -> PERSIST_CUSTOM | PERSIST_FALLBACK

1. Select one template per slot (deterministic, no repeats within the batch).
2. Send the whole batch to the generative collaborator and wait for it.
   If that call fails the request fails and nothing is written.
3. Validate each returned candidate against its source template's slot.
4. Valid -> persist verbatim. Invalid -> persist the template scaled to the
   slot target, and report its template id as a fallback.
5. Replace the previous plan for the date range in a single commit.
"""


class SlotSelection(NamedTuple):
    slot_label: str
    day: date
    template: Template
    target: float


def load_profile(db: Session, user_id: int) -> UserProfile:
    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    if not profile:
        raise PlanNotFound("User profile not found. Complete onboarding first.")
    return profile


def effective_daily_calories(profile: UserProfile, constraints, day: date) -> float:
    """Daily target minus any dining-out deficit that applies to this exact day."""
    daily = float(profile.daily_calorie_target or DEFAULT_DAILY_CALORIES)
    deficit = constraints.calorie_deficit_today or 0
    if deficit and constraints.calorie_deficit_date == day:
        logger.info(f"[Personalize] Applying {deficit} kcal dining-out deficit on {day}")
        daily = max(0.0, daily - deficit)
    return daily


def _check_rate_limit(limiter, user_id: int):
    verdict = limiter.check(user_id)
    if not verdict.get("allowed", True):
        raise RateLimited(verdict.get("message") or "Rate limit exceeded", verdict.get("wait_seconds") or 0)


def pair_candidates(selections: List[SlotSelection], candidates: List[Any]) -> List[Optional[Any]]:
    """
    Match each selection with the collaborator's output for its template id.
    A candidate without a template id is paired by position instead.
    """
    by_id: Dict[str, List[Any]] = {}
    for cand in candidates:
        if isinstance(cand, dict) and cand.get("template_id"):
            by_id.setdefault(str(cand["template_id"]), []).append(cand)

    paired = []
    for i, selection in enumerate(selections):
        matches = by_id.get(str(selection.template.id))
        if matches:
            paired.append(matches.pop(0))
            continue
        positional = candidates[i] if i < len(candidates) else None
        if isinstance(positional, dict) and not positional.get("template_id"):
            paired.append(positional)
        else:
            paired.append(None)
    return paired


def _candidate_totals(kind: str, candidate: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, float]:
    computed = totals_from_content(kind, data)
    if kind == WORKOUT:
        return computed
    supplied = {
        "calories": candidate.get("total_calories"),
        "protein": candidate.get("total_protein"),
        "carbs": candidate.get("total_carbs"),
        "fats": candidate.get("total_fats"),
    }
    return {
        key: value if isinstance(value, (int, float)) and not isinstance(value, bool) else computed[key]
        for key, value in supplied.items()
    }


def _build_item(user_id: int, kind: str, selection: SlotSelection, data: Dict[str, Any],
                totals: Dict[str, float], is_fallback: bool) -> PersonalizedItem:
    item = PersonalizedItem(
        user_id=user_id,
        base_template_id=selection.template.id,
        kind=kind,
        slot_label=selection.slot_label,
        date_assigned=selection.day,
        personalized_data=data,
        total_servings=1,
        remaining_servings=0,
        is_fallback=is_fallback,
        is_completed=False,
    )
    if kind == MEAL:
        item.total_calories = totals.get("calories")
        item.total_protein = totals.get("protein")
        item.total_carbs = totals.get("carbs")
        item.total_fats = totals.get("fats")
    item.slots.append(ScheduleSlot(
        user_id=user_id,
        date=selection.day,
        slot_label=selection.slot_label,
        kind=kind,
        servings_used=1,
    ))
    return item


def resolve_items(user_id: int, kind: str, selections: List[SlotSelection], candidates: List[Any],
                  profile: UserProfile):
    """
    Validate each paired candidate and fall back per slot.
    Returns (items, fallback_template_ids).
    """
    items = []
    fallback_used = []

    for selection, candidate in zip(selections, pair_candidates(selections, candidates)):
        template = selection.template
        if candidate is None:
            logger.info(f"[Personalize] No candidate returned for {selection.slot_label} ({template.id})")
            result = None
        else:
            result = validate_personalization(kind, candidate, profile)

        if result is not None and result.valid:
            data = candidate["personalized_data"]
            items.append(_build_item(user_id, kind, selection, data,
                                     _candidate_totals(kind, candidate, data), is_fallback=False))
            continue

        if result is not None and result.safety_errors:
            logger.warning(
                f"[Personalize] Safety violation in {selection.slot_label} ({template.id}): {result.safety_errors}"
            )
        if result is not None:
            structural = [e for e in result.errors if e not in result.safety_errors]
            if structural:
                logger.info(f"[Personalize] Structural errors in {selection.slot_label} ({template.id}): {structural}")

        scaled = scale_template(template, selection.target)
        items.append(_build_item(user_id, kind, selection, scaled,
                                 totals_from_content(kind, scaled), is_fallback=True))
        fallback_used.append(template.id)

    return items, fallback_used


def persist_batch(db: Session, user_id: int, kind: str, start: date, end: date, items: List[PersonalizedItem]):
    """Delete the old plan for the range and insert the new one in one commit."""
    try:
        removed = delete_plan_range(db, user_id, kind, start, end)
        db.add_all(items)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Personalize] Failed to save {kind} plan for user {user_id}: {e}")
        raise
    logger.info(f"[Personalize] Replaced {removed} {kind} items with {len(items)} for user {user_id} ({start}..{end})")


def _request_payload(selections: List[SlotSelection]) -> List[Dict[str, Any]]:
    return [
        {
            "template_id": s.template.id,
            "slot": s.slot_label,
            "content": s.template.data,
            "metadata": {
                "date": s.day.isoformat(),
                "target": s.target,
                "servings": s.template.servings,
                "tags": s.template.tags or [],
            },
        }
        for s in selections
    ]


def personalize_for_date(
    db: Session,
    user_id: int,
    target_date: Optional[date] = None,
    client: Optional[CustomizationClient] = None,
    limiter=None,
    refresh_bus=plan_refresh_bus,
) -> PersonalizationResult:
    """Personalize one day's meals (one per slot) for the user."""
    client = client or CustomizationClient()

    profile = load_profile(db, user_id)
    target_date = target_date or get_user_today(profile)
    constraints = get_constraints(db, user_id)
    insights = get_user_insights(db, user_id)

    grouped = template_crud.group_by_meal_type(
        template_crud.get_active_templates(db, MEAL, profile.fitness_goal)
    )
    if not grouped:
        raise ValueError("No meal templates available for your goal. Please add templates first.")

    daily = effective_daily_calories(profile, constraints, target_date)

    # 1. SELECT_TEMPLATES
    used_ids = set()
    selections: List[SlotSelection] = []
    for slot in MEAL_SLOTS:
        template = select_template(
            template_crud.templates_for_slot(grouped, slot),
            used_ids,
            insights,
            seed=f"{target_date.isoformat()}:{slot}",
        )
        if template is None:
            continue
        used_ids.add(template.id)
        selections.append(SlotSelection(slot, target_date, template, slot_target(daily, MEAL_SLOT_DISTRIBUTION[slot])))

    if not selections:
        raise ValueError(f"No meal templates could be selected for {target_date}.")
    logger.info(f"[Personalize] Selected {[s.template.id for s in selections]} for user {user_id} on {target_date}")
    _check_rate_limit(limiter or default_rate_limiter, user_id)

    # 2. REQUEST_CUSTOMIZATION (CollaboratorFailure propagates, nothing written yet)
    context = {
        "daily_calories": daily,
        "dietary_preference": profile.dietary_preference,
        "allergies": profile.allergies or [],
        "disliked_foods": profile.disliked_foods or [],
        "prefer_simple_meals": constraints.prefer_simple_meals,
        "max_cooking_time_minutes": constraints.max_cooking_time_minutes,
        "prefer_cheap_proteins": constraints.prefer_cheap_proteins,
    }
    candidates = client.customize(MEAL, _request_payload(selections), context)

    # 3. VALIDATE -> PERSIST_CUSTOM | PERSIST_FALLBACK
    items, fallback_used = resolve_items(user_id, MEAL, selections, candidates, profile)
    persist_batch(db, user_id, MEAL, target_date, target_date, items)

    if fallback_used:
        logger.warning(f"[Personalize] Used scaled fallback for templates {fallback_used}")
    refresh_bus.emit(RefreshEvent.MEALS)

    return PersonalizationResult(success=True, count=len(items), fallback_used=fallback_used, plan_type=MEAL)


def workout_days(start_date: date, count: int) -> List[date]:
    """Dates of the training days for `count` workouts, starting at start_date."""
    count = max(0, min(count, max(WORKOUT_DAY_MAPPING)))
    if count == 0:
        return []
    weekdays = WORKOUT_DAY_MAPPING.get(count, WORKOUT_DAY_MAPPING[3])
    return sorted(
        start_date + timedelta(days=(weekday - start_date.isoweekday()) % 7)
        for weekday in weekdays
    )


def personalize_workouts(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    client: Optional[CustomizationClient] = None,
    limiter=None,
    refresh_bus=plan_refresh_bus,
) -> PersonalizationResult:
    """Personalize a week of workouts, one per training day from the constraint set."""
    client = client or CustomizationClient()

    profile = load_profile(db, user_id)
    start_date = start_date or get_user_today(profile)
    end_date = start_date + timedelta(days=6)
    constraints = get_constraints(db, user_id)
    insights = get_user_insights(db, user_id)

    pool = [
        t for t in template_crud.get_active_templates(db, WORKOUT, profile.fitness_goal)
        if not t.is_active_recovery
    ]
    if not pool:
        raise ValueError("No workout templates available for your goal. Please add templates first.")

    count = min(constraints.workouts_per_week or 3, len(pool))
    duration = constraints.workout_duration_minutes or 45

    used_ids = set()
    selections: List[SlotSelection] = []
    for i, day in enumerate(workout_days(start_date, count)):
        template = select_template(pool, used_ids, insights, seed=f"{start_date.isoformat()}:workout:{i}")
        if template is None:
            continue
        used_ids.add(template.id)
        selections.append(SlotSelection(str(day.isoweekday()), day, template, float(duration)))

    if not selections:
        raise ValueError("No workout templates could be selected for this week.")
    logger.info(f"[Personalize] Selected workouts {[s.template.id for s in selections]} for user {user_id}")
    _check_rate_limit(limiter or default_rate_limiter, user_id)

    context = {
        "experience_level": profile.experience_level,
        "fitness_goal": profile.fitness_goal,
        "duration_minutes": duration,
    }
    candidates = client.customize(WORKOUT, _request_payload(selections), context)

    items, fallback_used = resolve_items(user_id, WORKOUT, selections, candidates, profile)
    persist_batch(db, user_id, WORKOUT, start_date, end_date, items)

    if fallback_used:
        logger.warning(f"[Personalize] Used scaled fallback for workout templates {fallback_used}")
    refresh_bus.emit(RefreshEvent.WORKOUTS)

    return PersonalizationResult(success=True, count=len(items), fallback_used=fallback_used, plan_type=WORKOUT)


def get_plan_for_date(db: Session, user_id: int, day: date) -> DailyPlanResponse:
    slots = get_slots_for_date(db, user_id, day)
    if not slots:
        raise PlanNotFound(f"No plan found for {day}. Generate one first.")

    views = []
    for slot in slots:
        item = slot.item
        views.append(SlotView(
            slot_id=slot.id,
            slot_label=slot.slot_label,
            kind=slot.kind,
            item_id=item.id,
            base_template_id=item.base_template_id,
            personalized_data=item.personalized_data or {},
            total_calories=item.total_calories,
            total_protein=item.total_protein,
            total_carbs=item.total_carbs,
            total_fats=item.total_fats,
            remaining_servings=item.remaining_servings,
            is_fallback=bool(item.is_fallback),
            is_completed=bool(slot.is_completed),
        ))

    # item content and totals describe a single serving
    total = sum(
        (slot.item.total_calories or 0) * (slot.servings_used or 1)
        for slot in slots if slot.kind == MEAL
    )
    return DailyPlanResponse(date=day, slots=views, total_calories=round(total, 1))
