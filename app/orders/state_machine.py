"""Order lifecycle state machine"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.errors import InvalidInput, InvalidTransition, NotFound, TransitionConflict
from app.models.order import Order

logger = structlog.get_logger()


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
    ),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REJECTED}
)

# Statuses that still accept additional items
OPEN_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.PREPARING}
)

ACTIVE_STATUSES = frozenset(set(OrderStatus) - TERMINAL_STATUSES)

TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PREPARING: "preparing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.SERVED: "served_at",
    OrderStatus.COMPLETED: "completed_at",
}

REASON_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})


@dataclass(frozen=True)
class TransitionResult:
    order_id: uuid.UUID
    previous: OrderStatus
    current: OrderStatus


def coerce_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown order status: {value}")


def can_transition(current: Union[str, OrderStatus], requested: Union[str, OrderStatus]) -> bool:
    """True if the transition table allows current -> requested"""
    try:
        current, requested = OrderStatus(current), OrderStatus(requested)
    except ValueError:
        return False
    return requested in ALLOWED_TRANSITIONS[current]


def validate_transition(current: Union[str, OrderStatus], requested: Union[str, OrderStatus]) -> None:
    if not can_transition(current, requested):
        raise InvalidTransition(_value(current), _value(requested))


def timestamp_field_for(status: Union[str, OrderStatus]) -> Optional[str]:
    """Lifecycle column stamped on entering status, if any"""
    return TIMESTAMP_FIELDS.get(OrderStatus(status))


def transition_values(
    new_status: OrderStatus,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Column values written together with a status change"""
    now = now or datetime.utcnow()
    values = {"status": new_status.value, "updated_at": now}

    field = timestamp_field_for(new_status)
    if field:
        values[field] = now

    if new_status in REASON_STATUSES and reason:
        values["cancellation_reason"] = reason

    return values


async def apply_transition(
    db: AsyncSession,
    order_id: uuid.UUID,
    new_status: Union[str, OrderStatus],
    reason: Optional[str] = None,
) -> TransitionResult:
    """
    Move an order to new_status.

    The write is conditional on the status that was read, so two staff
    members racing on the same order cannot both win; the loser gets
    TransitionConflict and nothing is written.
    """
    requested = coerce_status(new_status)

    result = await db.execute(select(Order.status).where(Order.id == order_id))
    current = result.scalar_one_or_none()
    if current is None:
        raise NotFound(f"Order with ID {order_id} not found")

    validate_transition(current, requested)

    result = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == current)
        .values(**transition_values(requested, reason))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning(
            "Order status transition lost a race",
            order_id=str(order_id),
            expected=current,
            requested=requested.value,
        )
        raise TransitionConflict(str(order_id), current, requested.value)

    await db.commit()

    logger.info(
        "Order status changed",
        order_id=str(order_id),
        old_status=current,
        new_status=requested.value,
    )
    return TransitionResult(
        order_id=order_id,
        previous=OrderStatus(current),
        current=requested,
    )


async def force_complete_orders(
    db: AsyncSession,
    order_ids: Iterable[Union[str, uuid.UUID]],
    now: Optional[datetime] = None,
) -> int:
    """
    Mark every listed order completed regardless of its current status.

    Reserved for the payment path: a settled bill closes all of its merged
    orders. Runs inside the caller's transaction and does not commit.
    """
    ids = [_as_uuid(order_id) for order_id in order_ids]
    if not ids:
        return 0

    now = now or datetime.utcnow()
    result = await db.execute(
        update(Order)
        .where(Order.id.in_(ids))
        .values(status=OrderStatus.COMPLETED.value, completed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _value(status: Union[str, OrderStatus]) -> str:
    return status.value if isinstance(status, OrderStatus) else str(status)
