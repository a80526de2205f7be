from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, ForeignKey
from datetime import datetime
from fitplan.database import Base

DEVIATION_TYPES = (
    "skipped_workout",
    "shortened_workout",
    "missed_meal",
    "substituted_meal",
    "dining_out",
    "budget_exceeded",
)

DEVIATION_REASONS = ("time", "budget", "energy", "preference", "dining_out", "illness", "other")


class DeviationEvent(Base):
    __tablename__ = "deviation_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    deviation_type = Column(String(50), nullable=False)
    reason = Column(String(50), nullable=False)
    notes = Column(String(500), nullable=True)

    related_item_id = Column(Integer, ForeignKey("personalized_items.id", ondelete="SET NULL"), nullable=True)

    # Estimates supplied by the user
    impact_calories = Column(Float, nullable=True)
    impact_protein = Column(Float, nullable=True)
    impact_budget = Column(Float, nullable=True)

    # Flipped by the adjustment engine once the event has been compensated
    auto_adjusted = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
