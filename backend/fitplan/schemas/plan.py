from pydantic import BaseModel
from typing import List, Optional, Dict, Any
import datetime as dt


class PersonalizeRequest(BaseModel):
    date: Optional[dt.date] = None


class WeekRequest(BaseModel):
    start_date: Optional[dt.date] = None


class PersonalizationResult(BaseModel):
    success: bool
    count: int
    # Template ids that were persisted as scaled fallbacks
    fallback_used: List[str] = []
    plan_type: str = "meal"


class WeeklyAllocationResult(BaseModel):
    success: bool = True
    daily_calories: float
    days_planned: int
    items_created: int
    slots_filled: int
    start_date: dt.date
    end_date: dt.date


class SlotView(BaseModel):
    slot_id: int
    slot_label: str
    kind: str
    item_id: int
    base_template_id: Optional[str] = None
    personalized_data: Dict[str, Any]
    total_calories: Optional[float] = None
    total_protein: Optional[float] = None
    total_carbs: Optional[float] = None
    total_fats: Optional[float] = None
    remaining_servings: Optional[int] = None
    is_fallback: bool = False
    is_completed: bool = False


class DailyPlanResponse(BaseModel):
    date: dt.date
    slots: List[SlotView]
    total_calories: float
