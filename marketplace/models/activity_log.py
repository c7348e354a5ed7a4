# marketplace/models/activity_log.py
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from marketplace.database import Base


class ActivityLog(Base):
    """
    Records all significant order-core activities for auditing.

    This includes:
    - Checkouts
    - Status transitions
    - Delivery claims and availability changes
    """
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True)
    action = Column(String(50), nullable=False, index=True)  # 'checkout', 'transition', 'claim', 'availability'
    entity_type = Column(String(50), nullable=False, index=True)  # 'order', 'delivery_agent'
    entity_id = Column(String(100), nullable=False, index=True)

    actor_role = Column(String(50), nullable=True)
    actor_id = Column(Integer, nullable=True)

    details = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type} {self.entity_id}>"
