from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fitplan.api.auth import get_current_user
from fitplan.database import get_db
from fitplan.models.user import User
from fitplan.schemas.adjustment import (
    AdjustmentOutcome, AdjustmentRequest, CheckinRequest, CheckinResponse, DeviationRequest, DeviationResponse,
)
from fitplan.services.adjustment_engine import apply_adjustments
from fitplan.services.checkin_service import submit_checkin
from fitplan.services.deviation_service import log_deviation

router = APIRouter(tags=["Adjustments"])


@router.post("/deviations", response_model=DeviationResponse, status_code=201)
def log_deviation_endpoint(
    request: DeviationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return log_deviation(db, current_user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/adjustments/apply", response_model=AdjustmentOutcome)
def apply_adjustments_endpoint(
    request: AdjustmentRequest = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    triggered_by = request.triggered_by if request else "auto"
    outcome = apply_adjustments(db, current_user.id, triggered_by=triggered_by)
    if outcome.requires_manual:
        raise HTTPException(status_code=403, detail={
            "error": outcome.message,
            "requires_manual": True,
            "tier": outcome.tier,
        })
    return outcome


@router.post("/checkins", response_model=CheckinResponse)
def submit_checkin_endpoint(
    request: CheckinRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return submit_checkin(db, current_user.id, request)
