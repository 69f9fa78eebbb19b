"""Kitchen display API endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole
from app.orders import staff
from app.schemas.order import OrderResponse, QueueResponse
from app.api.auth import require_roles, staff_restaurant_id

router = APIRouter()

kitchen_only = require_roles(UserRole.KITCHEN_STAFF, UserRole.ADMIN)


@router.get("/orders", response_model=QueueResponse)
async def kitchen_orders(
    current_user: User = Depends(kitchen_only),
    db: AsyncSession = Depends(get_db),
):
    """Accepted, preparing and ready orders"""
    orders = await staff.get_kitchen_orders(db, staff_restaurant_id(current_user))
    cards = [staff.to_queue_order(order) for order in orders]
    return {"data": cards, "total": len(cards)}


@router.post("/orders/{order_id}/start", response_model=OrderResponse)
async def start_preparing(
    order_id: UUID,
    current_user: User = Depends(kitchen_only),
    db: AsyncSession = Depends(get_db),
):
    return await staff.start_preparing(db, order_id, staff_restaurant_id(current_user))


@router.post("/orders/{order_id}/ready", response_model=OrderResponse)
async def mark_ready(
    order_id: UUID,
    current_user: User = Depends(kitchen_only),
    db: AsyncSession = Depends(get_db),
):
    return await staff.mark_ready(db, order_id, staff_restaurant_id(current_user))
