import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from fitplan.config import STREAK_MAX_DAYS
from fitplan.models.schedule_slot import ScheduleSlot
from fitplan.models.template import MEAL, WORKOUT
from fitplan.models.user_profile import UserProfile
from fitplan.schemas.streak import StreakResponse
from fitplan.utils.utils import get_user_today

logger = logging.getLogger(__name__)


def day_status(slots: List[ScheduleSlot]) -> Dict[str, bool]:
    """
    A day counts when its workout is done (or none was scheduled) and it has
    meals that are all done.
    """
    workouts = [s for s in slots if s.kind == WORKOUT]
    meals = [s for s in slots if s.kind == MEAL]
    workout_done = all(s.is_completed for s in workouts)
    meals_done = bool(meals) and all(s.is_completed for s in meals)
    return {"workout_done": workout_done, "meals_done": meals_done}


def _slots_by_date(db: Session, user_id: int, start: date, end: date) -> Dict[date, List[ScheduleSlot]]:
    rows = db.query(ScheduleSlot).filter(
        ScheduleSlot.user_id == user_id,
        ScheduleSlot.date >= start,
        ScheduleSlot.date <= end,
    ).all()
    by_date: Dict[date, List[ScheduleSlot]] = {}
    for slot in rows:
        by_date.setdefault(slot.date, []).append(slot)
    return by_date


def compute_streak(db: Session, user_id: int, today: Optional[date] = None) -> StreakResponse:
    if today is None:
        profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        today = get_user_today(profile)

    by_date = _slots_by_date(db, user_id, today - timedelta(days=STREAK_MAX_DAYS), today)

    today_status = day_status(by_date.get(today, []))
    today_complete = today_status["workout_done"] and today_status["meals_done"]

    streak = 1 if today_complete else 0
    day = today - timedelta(days=1)
    for _ in range(STREAK_MAX_DAYS):
        status = day_status(by_date.get(day, []))
        if not (status["workout_done"] and status["meals_done"]):
            break
        streak += 1
        day -= timedelta(days=1)

    logger.debug(f"[Streak] User {user_id}: {streak} days (today complete: {today_complete})")

    return StreakResponse(
        current_streak=streak,
        longest_streak=streak,
        today_complete=today_complete,
        workout_done=today_status["workout_done"],
        meals_done=today_status["meals_done"],
    )
