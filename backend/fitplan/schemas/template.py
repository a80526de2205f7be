from pydantic import BaseModel
from typing import List, Optional


class MealIngredient(BaseModel):
    ingredient_name: str
    grams: float
    calories: float
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fats_g: float = 0.0


class MealStructure(BaseModel):
    meal_name: str
    servings: int = 1
    ingredients: List[MealIngredient]
    recipe_steps: Optional[List[str]] = None


class WorkoutExercise(BaseModel):
    exercise_name: str
    sets: int
    reps: int
    rest_seconds: int = 60
    muscle_group: Optional[str] = None
    how_to: Optional[str] = None


class WorkoutStructure(BaseModel):
    workout_name: str
    exercises: List[WorkoutExercise]
