from typing import List
from sqlalchemy.orm import Session
from fitplan.config import DEVIATION_LOOKBACK_LIMIT, CHECKIN_LOOKBACK_LIMIT
from fitplan.models.deviation_event import DeviationEvent
from fitplan.models.weekly_checkin import WeeklyCheckin


def get_recent_deviations(db: Session, user_id: int, limit: int = DEVIATION_LOOKBACK_LIMIT) -> List[DeviationEvent]:
    return (
        db.query(DeviationEvent)
        .filter(DeviationEvent.user_id == user_id)
        .order_by(DeviationEvent.created_at.desc(), DeviationEvent.id.desc())
        .limit(limit)
        .all()
    )


def get_recent_checkins(db: Session, user_id: int, limit: int = CHECKIN_LOOKBACK_LIMIT) -> List[WeeklyCheckin]:
    return (
        db.query(WeeklyCheckin)
        .filter(WeeklyCheckin.user_id == user_id)
        .order_by(WeeklyCheckin.week_start.desc())
        .limit(limit)
        .all()
    )
