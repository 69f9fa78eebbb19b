"""Waiter and kitchen operations on orders"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.errors import Forbidden, NotFound
from app.models.order import Order
from app.orders.service import get_order_details, order_details_query
from app.orders.state_machine import OrderStatus, apply_transition

logger = structlog.get_logger()

KITCHEN_STATUSES = (
    OrderStatus.ACCEPTED.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
)


def to_queue_order(order: Order, include_items: bool = True) -> dict:
    """Flatten an order into the card shown on staff boards"""
    card = {
        "id": order.id,
        "order_number": order.order_number,
        "table": order.table,
        "status": order.status,
        "total": order.total,
        "items_count": sum(item.quantity for item in order.items),
        "special_requests": order.special_requests,
        "created_at": order.created_at,
        "accepted_at": order.accepted_at,
        "preparing_at": order.preparing_at,
        "ready_at": order.ready_at,
        "served_at": order.served_at,
        "items": [],
    }
    if include_items:
        card["items"] = [
            {
                "id": item.id,
                "name": item.menu_item.name if item.menu_item else "",
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "subtotal": item.subtotal,
                "prep_time_minutes": item.menu_item.prep_time_minutes if item.menu_item else None,
                "modifiers": [
                    {
                        "name": mod.modifier_option.name if mod.modifier_option else None,
                        "price_adjustment": mod.price_adjustment,
                    }
                    for mod in item.modifiers
                ],
                "special_requests": item.special_requests,
            }
            for item in order.items
        ]
    return card


async def _check_order_owner(db: AsyncSession, order_id: UUID, restaurant_id: UUID) -> None:
    result = await db.execute(
        select(Order.restaurant_id).where(Order.id == order_id)
    )
    owner = result.scalar_one_or_none()
    if owner is None:
        raise NotFound(f"Order with ID {order_id} not found")
    if owner != restaurant_id:
        raise Forbidden("You can only manage orders from your restaurant")


async def _staff_transition(
    db: AsyncSession,
    order_id: UUID,
    restaurant_id: UUID,
    new_status: OrderStatus,
    reason: Optional[str] = None,
) -> Order:
    await _check_order_owner(db, order_id, restaurant_id)
    await apply_transition(db, order_id, new_status, reason)
    return await get_order_details(db, order_id)


async def get_pending_orders(
    db: AsyncSession,
    restaurant_id: UUID,
    table_id: Optional[UUID] = None,
) -> List[Order]:
    """Orders awaiting waiter confirmation, oldest first"""
    query = order_details_query().where(
        Order.restaurant_id == restaurant_id,
        Order.status == OrderStatus.PENDING.value,
    )
    if table_id:
        query = query.where(Order.table_id == table_id)

    result = await db.execute(query.order_by(Order.created_at.asc()))
    return list(result.scalars().all())


async def get_restaurant_orders(
    db: AsyncSession,
    restaurant_id: UUID,
    status: Optional[str] = None,
    table_id: Optional[UUID] = None,
    limit: int = 50,
) -> List[Order]:
    """Most recent orders of a restaurant for the waiter dashboard"""
    query = order_details_query().where(Order.restaurant_id == restaurant_id)
    if status:
        query = query.where(Order.status == status)
    if table_id:
        query = query.where(Order.table_id == table_id)

    result = await db.execute(query.order_by(Order.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def get_kitchen_orders(db: AsyncSession, restaurant_id: UUID) -> List[Order]:
    """Accepted, preparing and ready orders, oldest first"""
    result = await db.execute(
        order_details_query()
        .where(
            Order.restaurant_id == restaurant_id,
            Order.status.in_(KITCHEN_STATUSES),
        )
        .order_by(Order.created_at.asc())
    )
    return list(result.scalars().all())


async def accept_order(db: AsyncSession, order_id: UUID, restaurant_id: UUID) -> Order:
    return await _staff_transition(db, order_id, restaurant_id, OrderStatus.ACCEPTED)


async def reject_order(
    db: AsyncSession,
    order_id: UUID,
    restaurant_id: UUID,
    reason: str,
) -> Order:
    order = await _staff_transition(
        db, order_id, restaurant_id, OrderStatus.REJECTED, reason
    )
    logger.info("Order rejected", order_id=str(order_id), reason=reason)
    return order


async def serve_order(db: AsyncSession, order_id: UUID, restaurant_id: UUID) -> Order:
    return await _staff_transition(db, order_id, restaurant_id, OrderStatus.SERVED)


async def start_preparing(db: AsyncSession, order_id: UUID, restaurant_id: UUID) -> Order:
    return await _staff_transition(db, order_id, restaurant_id, OrderStatus.PREPARING)


async def mark_ready(db: AsyncSession, order_id: UUID, restaurant_id: UUID) -> Order:
    return await _staff_transition(db, order_id, restaurant_id, OrderStatus.READY)
