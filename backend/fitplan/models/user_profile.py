from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from fitplan.database import Base, JSONType


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    fitness_goal = Column(String(50))        # "weight_loss", "muscle_gain", "maintenance"
    experience_level = Column(String(50))    # "beginner", "intermediate", "advanced"
    dietary_preference = Column(String(50))  # "omnivore", "vegetarian", ...
    daily_calorie_target = Column(Float)

    # Safety lists checked by the validator, never bypassed
    allergies = Column(JSONType, default=list)
    disliked_foods = Column(JSONType, default=list)

    subscription_tier = Column(String(20), default="free")  # "free", "paid", "pro"
    timezone = Column(String(50), default="UTC")            # e.g. "Asia/Kolkata"

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="profile")
