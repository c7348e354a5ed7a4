# marketplace/models/delivery_agent.py
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from sqlalchemy.orm import relationship

from marketplace.core.utils import utcnow
from marketplace.database import Base


class DeliveryAgent(Base):
    __tablename__ = "delivery_agents"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    service_state = Column(String(100), nullable=True)  # None serves every region

    is_available = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    max_deliveries = Column(Integer, nullable=False, default=5)

    created_at = Column(TIMESTAMP(timezone=False), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    orders = relationship("Order", back_populates="assigned_agent")

    def __repr__(self) -> str:
        return f"<DeliveryAgent id={self.id} available={self.is_available} active={self.is_active}>"
