"""Order API endpoints"""

from typing import Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole, STAFF_ROLES
from app.orders import service
from app.orders.state_machine import OrderStatus
from app.schemas.order import (
    AddItemsRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusChangeResponse,
    OrderStatusUpdate,
)
from app.api.auth import get_current_active_user, get_optional_user, require_roles

router = APIRouter()


def _check_restaurant_access(user: User, restaurant_id: UUID) -> None:
    if user.role != UserRole.SUPER_ADMIN and user.restaurant_id != restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this restaurant",
        )


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    order_data: OrderCreate,
    x_session_id: Optional[str] = Header(None),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Place an order from a table session"""
    if x_session_id and not order_data.session_id:
        order_data.session_id = x_session_id
    if current_user and current_user.role == UserRole.CUSTOMER and not order_data.customer_id:
        order_data.customer_id = current_user.id

    return await service.create_order(db, order_data)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = None,
    restaurant_id: Optional[UUID] = None,
    table_id: Optional[UUID] = None,
    customer_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """List orders; staff only see their own restaurant"""
    if current_user.role != UserRole.SUPER_ADMIN:
        restaurant_id = current_user.restaurant_id

    orders = await service.list_orders(
        db,
        status=status.value if status else None,
        restaurant_id=restaurant_id,
        table_id=table_id,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
    )
    return {"data": orders, "total": len(orders)}


@router.get("/my-orders", response_model=OrderListResponse)
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Order history of the signed-in customer"""
    orders = await service.list_customer_orders(
        db,
        current_user.id,
        status=status.value if status else None,
    )
    return {"data": orders, "total": len(orders)}


@router.get("/table/{table_id}", response_model=OrderListResponse)
async def list_table_orders(
    table_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Orders still in progress at a table"""
    orders = await service.list_table_orders(db, table_id)
    return {"data": orders, "total": len(orders)}


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get order details"""
    return await service.get_order_details(db, order_id)


@router.patch("/{order_id}/status", response_model=OrderStatusChangeResponse)
async def update_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Move an order through its lifecycle"""
    order = await service.get_order_details(db, order_id)
    _check_restaurant_access(current_user, order.restaurant_id)

    transition, order = await service.update_order_status(
        db, order_id, update.status, update.reason
    )
    return {
        "message": f"Order status updated from {transition.previous.value} to {transition.current.value}",
        "order": order,
    }


@router.post("/{order_id}/items", response_model=OrderResponse)
async def add_items(
    order_id: UUID,
    request: AddItemsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Append items to an open order"""
    return await service.add_items_to_order(db, order_id, request.items)
