from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey
from datetime import datetime
from fitplan.database import Base

# Columns the adjustment rules are allowed to read and write
CONSTRAINT_FIELDS = (
    "workouts_per_week",
    "workout_duration_minutes",
    "budget_tier",
    "prefer_cheap_proteins",
    "max_cooking_time_minutes",
    "prefer_simple_meals",
    "simplify_after_deviations",
    "calorie_deficit_today",
    "calorie_deficit_date",
)


class ConstraintSet(Base):
    __tablename__ = "user_constraints"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    workouts_per_week = Column(Integer, default=3)
    workout_duration_minutes = Column(Integer, default=45)

    budget_tier = Column(String(20), default="medium")  # "low", "medium", "high"
    prefer_cheap_proteins = Column(Boolean, default=False)

    max_cooking_time_minutes = Column(Integer, default=30)
    prefer_simple_meals = Column(Boolean, default=False)
    simplify_after_deviations = Column(Integer, default=3)

    # Daily-reset: only meaningful on calorie_deficit_date
    calorie_deficit_today = Column(Integer, default=0)
    calorie_deficit_date = Column(Date, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {field: getattr(self, field) for field in CONSTRAINT_FIELDS}

    def apply_dict(self, values: dict):
        for field in CONSTRAINT_FIELDS:
            if field in values:
                setattr(self, field, values[field])


DEFAULT_CONSTRAINTS = {
    "workouts_per_week": 3,
    "workout_duration_minutes": 45,
    "budget_tier": "medium",
    "prefer_cheap_proteins": False,
    "max_cooking_time_minutes": 30,
    "prefer_simple_meals": False,
    "simplify_after_deviations": 3,
    "calorie_deficit_today": 0,
    "calorie_deficit_date": None,
}
