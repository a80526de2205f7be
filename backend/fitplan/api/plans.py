import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fitplan.api.auth import get_current_user
from fitplan.crud.plan import get_slot, mark_slot_complete
from fitplan.database import get_db
from fitplan.models.template import MEAL
from fitplan.models.user import User
from fitplan.schemas.plan import (
    DailyPlanResponse, PersonalizationResult, PersonalizeRequest, WeekRequest, WeeklyAllocationResult,
)
from fitplan.services.personalization_service import (
    get_plan_for_date, personalize_for_date, personalize_workouts,
)
from fitplan.services.plan_events import RefreshEvent, plan_refresh_bus
from fitplan.services.schedule_allocator import allocate_week

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/plans",
    tags=["Plans"]
)


@router.post("/personalize", response_model=PersonalizationResult)
def personalize_day_endpoint(
    request: PersonalizeRequest = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    target_date = request.date if request else None
    logger.info(f"[API] Personalizing meals for {current_user.email} on {target_date or 'today'}")
    try:
        return personalize_for_date(db, current_user.id, target_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/workouts/personalize", response_model=PersonalizationResult)
def personalize_workouts_endpoint(
    request: WeekRequest = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    start_date = request.start_date if request else None
    try:
        return personalize_workouts(db, current_user.id, start_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/week", response_model=WeeklyAllocationResult)
def allocate_week_endpoint(
    request: WeekRequest = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    start_date = request.start_date if request else None
    try:
        return allocate_week(db, current_user.id, start_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{plan_date}", response_model=DailyPlanResponse)
def get_plan_endpoint(
    plan_date: date,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_plan_for_date(db, current_user.id, plan_date)


@router.post("/slots/{slot_id}/complete")
def complete_slot_endpoint(
    slot_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    slot = get_slot(db, current_user.id, slot_id)
    if not slot:
        raise HTTPException(status_code=404, detail="Scheduled item not found")

    slot = mark_slot_complete(db, slot)
    plan_refresh_bus.emit(RefreshEvent.MEALS if slot.kind == MEAL else RefreshEvent.WORKOUTS)
    return {
        "slot_id": slot.id,
        "is_completed": slot.is_completed,
        "item_completed": bool(slot.item.is_completed),
    }
