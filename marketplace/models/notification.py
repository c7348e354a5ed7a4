# marketplace/models/notification.py
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, TIMESTAMP, Enum, Index, func

from marketplace.core.enums import ActorRole, NotificationType
from marketplace.core.utils import utcnow
from marketplace.database import Base


class Notification(Base):
    """
    A message for one recipient, produced by the notification fan-out.

    Rows are never edited after creation apart from the read flag.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_role", "recipient_id", "is_read"),
    )

    id = Column(Integer, primary_key=True)
    recipient_role = Column(Enum(ActorRole, name="actorrole"), nullable=False)
    recipient_id = Column(Integer, nullable=False)
    type = Column(Enum(NotificationType, name="notificationtype"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(TIMESTAMP(timezone=False), nullable=True)
    created_at = Column(TIMESTAMP(timezone=False), default=utcnow, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Notification {self.type} -> {self.recipient_role}:{self.recipient_id} order={self.order_id}>"
