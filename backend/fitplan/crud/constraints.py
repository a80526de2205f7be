from typing import Optional
from sqlalchemy.orm import Session
from fitplan.models.constraint_set import ConstraintSet, DEFAULT_CONSTRAINTS
from fitplan.models.user_insights import UserInsights


def get_constraints(db: Session, user_id: int) -> ConstraintSet:
    """
    The user's ConstraintSet, or an unsaved one holding the defaults.
    The caller decides whether to add it to the session.
    """
    constraints = db.query(ConstraintSet).filter(ConstraintSet.user_id == user_id).first()
    if constraints:
        return constraints
    return ConstraintSet(user_id=user_id, **DEFAULT_CONSTRAINTS)


def get_user_insights(db: Session, user_id: int) -> Optional[UserInsights]:
    return db.query(UserInsights).filter(UserInsights.user_id == user_id).first()
