from sqlalchemy import Column, Integer, Float, String, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from fitplan.database import Base, JSONType


class PersonalizedItem(Base):
    __tablename__ = "personalized_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Nullable for hand-authored items
    base_template_id = Column(String(64), ForeignKey("templates.id", ondelete="SET NULL"), nullable=True)

    kind = Column(String(20), nullable=False)  # "meal" | "workout"
    slot_label = Column(String(50), nullable=False)
    date_assigned = Column(Date, nullable=False, index=True)

    personalized_data = Column(JSONType, nullable=False)

    # Meals
    total_calories = Column(Float)
    total_protein = Column(Float)
    total_carbs = Column(Float)
    total_fats = Column(Float)
    total_servings = Column(Integer, default=1)
    remaining_servings = Column(Integer, default=0)

    # Set when the scaled template replaced a rejected AI customization
    is_fallback = Column(Boolean, default=False)

    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    slots = relationship("ScheduleSlot", back_populates="item", cascade="all, delete-orphan")
