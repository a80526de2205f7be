from pydantic import BaseModel
from typing import List, Optional, Dict, Any
import datetime as dt


class AdjustmentRequest(BaseModel):
    triggered_by: str = "auto"


class AdjustmentItem(BaseModel):
    rule_name: str
    adjustment_type: str
    reason: str


class AdjustmentOutcome(BaseModel):
    adjustments_applied: int = 0
    adjustments: List[AdjustmentItem] = []
    new_constraints: Optional[Dict[str, Any]] = None
    requires_regeneration: bool = False
    # Entitlement gate closed: nothing applied, user must regenerate by hand
    requires_manual: bool = False
    tier: Optional[str] = None
    message: Optional[str] = None


class DeviationRequest(BaseModel):
    deviation_type: str
    reason: str
    related_item_id: Optional[int] = None
    notes: Optional[str] = None
    impact_calories: Optional[float] = None
    impact_protein: Optional[float] = None
    impact_budget: Optional[float] = None


class DeviationResponse(BaseModel):
    deviation_id: int
    tier: str
    adjustment_result: Optional[AdjustmentOutcome] = None
    message: str


class CheckinRequest(BaseModel):
    workout_adherence: Optional[str] = None
    meal_adherence: Optional[str] = None
    budget_adherence: Optional[str] = None
    primary_reason: Optional[str] = None
    notes: Optional[str] = None


class CheckinResponse(BaseModel):
    checkin_id: int
    week_start: dt.date
    tier: str
    adjustment_result: Optional[AdjustmentOutcome] = None
    message: str
