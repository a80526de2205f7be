from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from fitplan.database import Base


class ScheduleSlot(Base):
    __tablename__ = "schedule_slots"
    __table_args__ = (
        UniqueConstraint("user_id", "date", "slot_label", name="uq_schedule_slot_user_date_label"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # "breakfast" / "lunch" / "dinner", or the ISO weekday ("1".."7") for workouts
    slot_label = Column(String(50), nullable=False)
    kind = Column(String(20), nullable=False)

    # Several consecutive slots may share one item (serving carryover)
    item_id = Column(Integer, ForeignKey("personalized_items.id", ondelete="CASCADE"), nullable=False)
    servings_used = Column(Integer, default=1)

    is_completed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    item = relationship("PersonalizedItem", back_populates="slots")
