from pydantic import BaseModel


class StreakResponse(BaseModel):
    current_streak: int
    # Always equal to current_streak; no historical maximum is kept
    longest_streak: int
    today_complete: bool
    workout_done: bool
    meals_done: bool
