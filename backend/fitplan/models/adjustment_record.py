from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from datetime import datetime
from fitplan.database import Base, JSONType


class AdjustmentRecord(Base):
    """Audit entry written by the adjustment engine. Never updated."""
    __tablename__ = "adjustment_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    rule_applied = Column(String(100), nullable=False)
    adjustment_type = Column(String(100), nullable=False)
    reason = Column(String(300))

    before_state = Column(JSONType, nullable=False)
    after_state = Column(JSONType, nullable=False)
    triggered_by = Column(String(50), default="auto")

    created_at = Column(DateTime, default=datetime.utcnow)
