from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
from fitplan.database import Base, JSONType


class WeeklyCheckin(Base):
    __tablename__ = "weekly_checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_weekly_checkin_user_week"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    week_start = Column(Date, nullable=False)  # Sunday

    # Self-reported adherence, e.g. "all", "most", "some", "none"
    workout_adherence = Column(String(20))
    meal_adherence = Column(String(20))
    budget_adherence = Column(String(20))
    primary_reason = Column(String(50))
    notes = Column(String(500))

    adjustment_applied = Column(Boolean, default=False)
    adjustment_details = Column(JSONType, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
