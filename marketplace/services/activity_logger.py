# marketplace/services/activity_logger.py
import logging
from typing import Dict, Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import OrderStatus
from marketplace.core.utils import utcnow
from marketplace.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityLogger:
    """
    Service for logging order-core activities.

    Writes are committed on their own, after the business change has
    committed, so an audit failure never undoes the operation it describes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_activity(
        self,
        action: str,
        entity_type: str,
        entity_id: Any,
        actor_role: Optional[str] = None,
        actor_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        """
        Log an activity in the system.

        Args:
            action: The action performed (checkout, transition, claim, availability)
            entity_type: The type of entity affected (order, delivery_agent)
            entity_id: The ID of the affected entity
            actor_role: Role of the caller, if any
            actor_id: ID of the caller, if any
            details: Optional additional details as a dictionary

        Returns:
            The created ActivityLog instance, or None if the write failed
        """
        log_entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_role=actor_role,
            actor_id=actor_id,
            details=details,
            created_at=utcnow()
        )

        # Don't raise, as logging should not interrupt the main flow
        try:
            async with self.db.begin_nested():
                self.db.add(log_entry)
        except SQLAlchemyError as e:
            logger.error(f"Error logging activity {action} for {entity_type} {entity_id}: {str(e)}")
            return None

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error logging activity {action} for {entity_type} {entity_id}: {str(e)}")
            return None

        logger.debug(f"Activity logged: {action} {entity_type} {entity_id} (actor: {actor_role or 'system'})")
        return log_entry

    async def log_transition(
        self,
        order_id: int,
        from_status: Optional[OrderStatus],
        to_status: OrderStatus,
        actor_role: Optional[str],
        actor_id: Optional[int],
    ) -> Optional[ActivityLog]:
        return await self.log_activity(
            action="checkout" if from_status is None else "transition",
            entity_type="order",
            entity_id=order_id,
            actor_role=actor_role,
            actor_id=actor_id,
            details={
                "from": from_status.value if from_status else None,
                "to": to_status.value,
                "timestamp": utcnow().isoformat()
            }
        )
