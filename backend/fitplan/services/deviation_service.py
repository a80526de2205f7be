import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitplan.models.deviation_event import DEVIATION_REASONS, DEVIATION_TYPES, DeviationEvent
from fitplan.schemas.adjustment import AdjustmentOutcome, DeviationRequest, DeviationResponse
from fitplan.services.adjustment_engine import apply_adjustments
from fitplan.services.entitlement_service import AUTO_ADJUST, check_entitlement

logger = logging.getLogger(__name__)


def log_deviation(
    db: Session,
    user_id: int,
    request: DeviationRequest,
    entitlement_check=check_entitlement,
    **engine_kwargs,
) -> DeviationResponse:
    """
    Record a deviation. Dining out is compensated straight away for entitled
    users; everything else waits for the next adjustment pass.
    """
    if request.deviation_type not in DEVIATION_TYPES:
        raise ValueError(f"Invalid deviation_type '{request.deviation_type}'. Expected one of {list(DEVIATION_TYPES)}")
    if request.reason not in DEVIATION_REASONS:
        raise ValueError(f"Invalid reason '{request.reason}'. Expected one of {list(DEVIATION_REASONS)}")

    event = DeviationEvent(
        user_id=user_id,
        deviation_type=request.deviation_type,
        reason=request.reason,
        notes=request.notes,
        related_item_id=request.related_item_id,
        impact_calories=request.impact_calories,
        impact_protein=request.impact_protein,
        impact_budget=request.impact_budget,
        auto_adjusted=False,
    )
    try:
        db.add(event)
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Deviation] Failed to log {request.deviation_type} for user {user_id}: {e}")
        raise

    logger.info(f"[Deviation] Logged {event.deviation_type} ({event.reason}) for user {user_id}")

    entitlement = entitlement_check(db, user_id, AUTO_ADJUST)
    adjustment_result: Optional[AdjustmentOutcome] = None
    message = "Deviation logged"

    if event.deviation_type == "dining_out" and entitlement.get("allowed"):
        adjustment_result = apply_adjustments(
            db, user_id, triggered_by="dining_out", entitlement_check=entitlement_check, **engine_kwargs
        )
        message = "Deviation logged. Today's remaining meals have been adjusted."
    elif not entitlement.get("allowed"):
        message = "Deviation logged. Upgrade to get automatic plan adjustments."

    return DeviationResponse(
        deviation_id=event.id,
        tier=entitlement.get("tier") or "free",
        adjustment_result=adjustment_result,
        message=message,
    )
