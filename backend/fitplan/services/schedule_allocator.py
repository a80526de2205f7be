import logging
from datetime import date, timedelta
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitplan.config import DEFAULT_DAILY_CALORIES, MEAL_SLOTS, MEAL_SLOT_DISTRIBUTION
from fitplan.crud import template as template_crud
from fitplan.crud.constraints import get_constraints, get_user_insights
from fitplan.crud.plan import delete_plan_range
from fitplan.models.personalized_item import PersonalizedItem
from fitplan.models.schedule_slot import ScheduleSlot
from fitplan.models.template import MEAL
from fitplan.schemas.plan import WeeklyAllocationResult
from fitplan.services.personalization_service import effective_daily_calories, load_profile
from fitplan.services.plan_events import RefreshEvent, plan_refresh_bus
from fitplan.services.template_selector import select_template
from fitplan.utils.scaling import scale_template, slot_target, totals_from_content
from fitplan.utils.utils import get_user_today

logger = logging.getLogger(__name__)

"""
Weekly Schedule Allocator
-------------------------
Lays a 7-day meal plan over breakfast/lunch/dinner. A template cooked for N
servings is bound to N consecutive days of the same slot before a new
template is drawn for that slot. No collaborator call: every item is the
template scaled to its slot target.
"""

PLAN_DAYS = 7


class Carryover:
    __slots__ = ("item", "remaining")

    def __init__(self, item: PersonalizedItem, remaining: int):
        self.item = item
        self.remaining = remaining


def _new_item(user_id: int, slot: str, day: date, template, target: float) -> PersonalizedItem:
    scaled = scale_template(template, target)
    totals = totals_from_content(MEAL, scaled)
    servings = max(1, template.servings or 1)
    return PersonalizedItem(
        user_id=user_id,
        base_template_id=template.id,
        kind=MEAL,
        slot_label=slot,
        date_assigned=day,
        personalized_data=scaled,
        total_calories=totals["calories"],
        total_protein=totals["protein"],
        total_carbs=totals["carbs"],
        total_fats=totals["fats"],
        total_servings=servings,
        remaining_servings=servings - 1,
        is_fallback=False,
        is_completed=False,
    )


def allocate_week(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    refresh_bus=plan_refresh_bus,
) -> WeeklyAllocationResult:
    profile = load_profile(db, user_id)
    start_date = start_date or get_user_today(profile)
    end_date = start_date + timedelta(days=PLAN_DAYS - 1)
    constraints = get_constraints(db, user_id)
    insights = get_user_insights(db, user_id)

    grouped = template_crud.group_by_meal_type(
        template_crud.get_active_templates(db, MEAL, profile.fitness_goal)
    )
    if not grouped:
        raise ValueError("No meal templates available for your goal. Please add templates first.")

    base_daily = float(profile.daily_calorie_target or DEFAULT_DAILY_CALORIES)
    logger.info(f"[Allocator] Planning {start_date}..{end_date} for user {user_id} at {base_daily} kcal/day")

    carryover: Dict[str, Carryover] = {}
    used_ids: Dict[str, set] = {slot: set() for slot in MEAL_SLOTS}
    items = []
    slots_filled = 0
    days_planned = 0

    for offset in range(PLAN_DAYS):
        day = start_date + timedelta(days=offset)
        daily = effective_daily_calories(profile, constraints, day)
        day_filled = 0

        for slot in MEAL_SLOTS:
            active = carryover.get(slot)
            if active and active.remaining > 0:
                item = active.item
                active.remaining -= 1
                item.remaining_servings = active.remaining
                if active.remaining <= 0:
                    carryover.pop(slot)
                logger.debug(f"[Allocator] {day} {slot}: carryover of {item.base_template_id}")
            else:
                template = select_template(
                    template_crud.templates_for_slot(grouped, slot),
                    used_ids[slot],
                    insights,
                    seed=f"{day.isoformat()}:{slot}",
                )
                if template is None:
                    logger.info(f"[Allocator] No templates for {slot}, leaving {day} {slot} empty")
                    continue
                used_ids[slot].add(template.id)

                item = _new_item(user_id, slot, day, template, slot_target(daily, MEAL_SLOT_DISTRIBUTION[slot]))
                items.append(item)
                if item.remaining_servings > 0:
                    carryover[slot] = Carryover(item, item.remaining_servings)
                else:
                    carryover.pop(slot, None)

            item.slots.append(ScheduleSlot(
                user_id=user_id,
                date=day,
                slot_label=slot,
                kind=MEAL,
                servings_used=1,
            ))
            day_filled += 1

        slots_filled += day_filled
        if day_filled:
            days_planned += 1

    try:
        removed = delete_plan_range(db, user_id, MEAL, start_date, end_date)
        db.add_all(items)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Allocator] Failed to save weekly plan for user {user_id}: {e}")
        raise

    logger.info(
        f"[Allocator] Replaced {removed} items: {len(items)} items over {slots_filled} slots "
        f"for user {user_id}"
    )
    refresh_bus.emit(RefreshEvent.MEALS)

    return WeeklyAllocationResult(
        success=True,
        daily_calories=base_daily,
        days_planned=days_planned,
        items_created=len(items),
        slots_filled=slots_filled,
        start_date=start_date,
        end_date=end_date,
    )
