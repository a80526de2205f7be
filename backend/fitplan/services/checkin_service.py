import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitplan.models.user_profile import UserProfile
from fitplan.models.weekly_checkin import WeeklyCheckin
from fitplan.schemas.adjustment import CheckinRequest, CheckinResponse
from fitplan.services.adjustment_engine import apply_adjustments
from fitplan.services.entitlement_service import AUTO_ADJUST, check_entitlement
from fitplan.utils.utils import get_user_today, week_start_sunday

logger = logging.getLogger(__name__)


def submit_checkin(
    db: Session,
    user_id: int,
    request: CheckinRequest,
    today: Optional[date] = None,
    entitlement_check=check_entitlement,
    **engine_kwargs,
) -> CheckinResponse:
    """One check-in per week (starting Sunday); resubmitting overwrites it."""
    if today is None:
        profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        today = get_user_today(profile)
    week_start = week_start_sunday(today)

    checkin = db.query(WeeklyCheckin).filter(
        WeeklyCheckin.user_id == user_id,
        WeeklyCheckin.week_start == week_start,
    ).first()
    if not checkin:
        checkin = WeeklyCheckin(user_id=user_id, week_start=week_start)
        db.add(checkin)

    checkin.workout_adherence = request.workout_adherence
    checkin.meal_adherence = request.meal_adherence
    checkin.budget_adherence = request.budget_adherence
    checkin.primary_reason = request.primary_reason
    checkin.notes = request.notes

    try:
        db.commit()
        db.refresh(checkin)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Checkin] Failed to save check-in for user {user_id}: {e}")
        raise

    logger.info(f"[Checkin] Saved check-in for user {user_id}, week of {week_start}")

    entitlement = entitlement_check(db, user_id, AUTO_ADJUST)
    if not entitlement.get("allowed"):
        return CheckinResponse(
            checkin_id=checkin.id,
            week_start=week_start,
            tier=entitlement.get("tier") or "free",
            message="Check-in saved. Upgrade to have your plan adjusted automatically.",
        )

    outcome = apply_adjustments(
        db, user_id, triggered_by="weekly_checkin", entitlement_check=entitlement_check, **engine_kwargs
    )

    if outcome.adjustments_applied > 0:
        checkin.adjustment_applied = True
        checkin.adjustment_details = outcome.model_dump(mode="json")
        try:
            db.commit()
            db.refresh(checkin)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Checkin] Failed to record adjustment on check-in {checkin.id}: {e}")
            raise

    return CheckinResponse(
        checkin_id=checkin.id,
        week_start=week_start,
        tier=entitlement.get("tier") or "free",
        adjustment_result=outcome,
        message=outcome.message or "Check-in saved",
    )
