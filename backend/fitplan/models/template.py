from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime
from datetime import datetime
from fitplan.database import Base, JSONType
from fitplan.config import DEFAULT_MEAL_PER_UNIT_CALORIES

MEAL = "meal"
WORKOUT = "workout"


class Template(Base):
    """
    Read-only catalog entry. `kind` tags the row as a meal or a workout; both
    share name/content/tags, and the numeric columns that don't apply to a
    kind stay NULL.
    """
    __tablename__ = "templates"

    id = Column(String(64), primary_key=True)
    kind = Column(String(20), nullable=False, index=True)  # "meal" | "workout"
    name = Column(String(200), nullable=False)

    # Classification: goal ("cut", "bulk", "maintain") and meal slot
    goal_type = Column(String(50), index=True)
    meal_type = Column(String(50))
    difficulty = Column(String(50))

    # {"meal_name", "servings", "ingredients": [...]} or {"workout_name", "exercises": [...]}
    data = Column(JSONType, nullable=False)
    tags = Column(JSONType, default=list)

    # Meals: per-serving nutrition
    servings = Column(Integer, default=1)
    per_serving_calories = Column(Float)
    per_serving_protein = Column(Float)
    per_serving_carbs = Column(Float)
    per_serving_fats = Column(Float)

    # Workouts: training-stress budget is expressed in minutes
    duration_minutes = Column(Integer)
    is_active_recovery = Column(Boolean, default=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def per_unit_value(self) -> float:
        if self.kind == WORKOUT:
            return float(self.duration_minutes or 0)
        if self.per_serving_calories is None:
            return float(DEFAULT_MEAL_PER_UNIT_CALORIES)
        return float(self.per_serving_calories)
