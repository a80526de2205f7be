from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey
from datetime import datetime
from fitplan.database import Base, JSONType


class UserInsights(Base):
    """
    Affinity/avoidance signals. Recomputed by the analytics job; this engine
    only reads them.
    """
    __tablename__ = "user_insights"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    avoided_foods = Column(JSONType, default=list)
    favorite_cuisines = Column(JSONType, default=list)
    template_affinity = Column(JSONType, default=dict)  # {template_id: score}
    most_skipped_slot = Column(String(50), nullable=True)
    consistency_score = Column(Float, default=0.0)      # 0..1

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
