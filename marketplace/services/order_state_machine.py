"""
Order lifecycle rules.

    PENDING -> PROCESSING -> SHIPPED -> DELIVERED
    PENDING | PROCESSING -> CANCELLED

DELIVERED and CANCELLED are terminal. Which role may take which edge is
decided by ``ROLE_TRANSITIONS``; whether a given actor may touch a given
order at all is decided by ``can_act_on``. Both are pure so that the policy
can be tested without a database.
"""

from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.exceptions import InvalidTransitionError

Edge = Tuple[OrderStatus, OrderStatus]

VALID_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

ALL_EDGES: FrozenSet[Edge] = frozenset(
    (source, target) for source, targets in VALID_TRANSITIONS.items() for target in targets
)

ROLE_TRANSITIONS: Dict[ActorRole, FrozenSet[Edge]] = {
    ActorRole.SELLER: frozenset({
        (OrderStatus.PENDING, OrderStatus.PROCESSING),
    }),
    ActorRole.DELIVERY_AGENT: frozenset({
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
    }),
    ActorRole.BUYER: frozenset({
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
    }),
    ActorRole.ADMIN: ALL_EDGES,
}

# Column stamped when an order enters each status
STATUS_TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

# Progress order used by tracking and analytics
PROGRESSION = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]


def is_valid_edge(current: OrderStatus, target: OrderStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def allowed_targets(role: ActorRole, current: OrderStatus) -> Set[OrderStatus]:
    """Statuses ``role`` may move an order to from ``current``."""
    return {target for source, target in ROLE_TRANSITIONS.get(role, ()) if source == current}


def check_transition(role: ActorRole, current: OrderStatus, target: OrderStatus) -> None:
    """
    Validate an edge for a role.

    Raises:
        InvalidTransitionError: the edge is outside the graph or not granted to the role
    """
    if (current, target) not in ROLE_TRANSITIONS.get(role, ()):
        if not is_valid_edge(current, target):
            reason = f"Cannot change status from {current.value} to {target.value}"
        else:
            reason = f"{role.value} cannot change status from {current.value} to {target.value}"
        raise InvalidTransitionError(reason, current_status=current, target_status=target)


def can_act_on(
    role: ActorRole,
    actor_id: int,
    *,
    buyer_id: int,
    seller_ids: Iterable[int],
    assigned_agent_id: Optional[int],
    status: OrderStatus,
) -> bool:
    """
    Ownership check for an order, independent of the requested edge.

    - buyer: placed the order
    - seller: owns at least one line item
    - delivery agent: assigned to it, or it is unassigned and PROCESSING (claimable)
    - admin: always
    """
    if role == ActorRole.ADMIN:
        return True
    if role == ActorRole.BUYER:
        return buyer_id == actor_id
    if role == ActorRole.SELLER:
        return actor_id in set(seller_ids)
    if role == ActorRole.DELIVERY_AGENT:
        if assigned_agent_id is not None:
            return assigned_agent_id == actor_id
        return status == OrderStatus.PROCESSING
    return False
