from typing import Dict
from sqlalchemy.orm import Session

from fitplan.config import PAID_TIERS
from fitplan.models.user_profile import UserProfile

AUTO_ADJUST = "auto_adjust"


def check_entitlement(db: Session, user_id: int, feature: str = AUTO_ADJUST) -> Dict:
    """
    Resolve whether the user's subscription unlocks a feature.
    Returns {"allowed": bool, "tier": str}.
    """
    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    tier = (profile.subscription_tier if profile else None) or "free"

    if feature == AUTO_ADJUST:
        return {"allowed": tier in PAID_TIERS, "tier": tier}

    return {"allowed": True, "tier": tier}
