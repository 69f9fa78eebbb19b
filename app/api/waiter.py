"""Waiter API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole
from app.orders import staff
from app.orders.state_machine import OrderStatus
from app.schemas.order import OrderResponse, QueueResponse, RejectOrderRequest
from app.api.auth import require_roles, staff_restaurant_id

router = APIRouter()

waiter_only = require_roles(UserRole.WAITER, UserRole.ADMIN)


@router.get("/orders/pending", response_model=QueueResponse)
async def pending_orders(
    table_id: Optional[UUID] = None,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    """Orders waiting for a waiter to confirm"""
    orders = await staff.get_pending_orders(db, staff_restaurant_id(current_user), table_id)
    cards = [staff.to_queue_order(order) for order in orders]
    return {"data": cards, "total": len(cards)}


@router.get("/orders", response_model=QueueResponse)
async def restaurant_orders(
    status: Optional[OrderStatus] = None,
    table_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    """Latest orders of the waiter's restaurant"""
    orders = await staff.get_restaurant_orders(
        db,
        staff_restaurant_id(current_user),
        status=status.value if status else None,
        table_id=table_id,
        limit=limit,
    )
    cards = [staff.to_queue_order(order, include_items=False) for order in orders]
    return {"data": cards, "total": len(cards)}


@router.post("/orders/{order_id}/accept", response_model=OrderResponse)
async def accept_order(
    order_id: UUID,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    return await staff.accept_order(db, order_id, staff_restaurant_id(current_user))


@router.post("/orders/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
    order_id: UUID,
    request: RejectOrderRequest,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending order with a reason shown to the customer"""
    return await staff.reject_order(
        db, order_id, staff_restaurant_id(current_user), request.reason
    )


@router.post("/orders/{order_id}/serve", response_model=OrderResponse)
async def serve_order(
    order_id: UUID,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    return await staff.serve_order(db, order_id, staff_restaurant_id(current_user))
