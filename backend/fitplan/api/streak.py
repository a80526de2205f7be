from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fitplan.api.auth import get_current_user
from fitplan.database import get_db
from fitplan.models.user import User
from fitplan.schemas.streak import StreakResponse
from fitplan.services.streak_service import compute_streak

router = APIRouter(tags=["Streak"])


@router.get("/streak", response_model=StreakResponse)
def get_streak(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return compute_streak(db, current_user.id)
