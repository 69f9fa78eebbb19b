"""Order schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.orders.state_machine import OrderStatus


class OrderItemModifierCreate(BaseModel):
    """Chosen modifier option"""
    modifier_option_id: UUID


class OrderItemCreate(BaseModel):
    """Create order item"""
    menu_item_id: UUID
    quantity: int = Field(..., ge=1)
    modifiers: List[OrderItemModifierCreate] = []
    special_requests: Optional[str] = None


class OrderCreate(BaseModel):
    """Create order request"""
    restaurant_id: UUID
    table_id: UUID
    customer_id: Optional[UUID] = None
    session_id: Optional[str] = None
    items: List[OrderItemCreate] = Field(..., min_length=1)
    special_requests: Optional[str] = None


class AddItemsRequest(BaseModel):
    """Append items to an open order"""
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    """Status change request"""
    status: OrderStatus
    reason: Optional[str] = Field(None, max_length=500)


class RejectOrderRequest(BaseModel):
    """Waiter rejection"""
    reason: str = Field(..., min_length=1, max_length=500)


class TableSummary(BaseModel):
    id: UUID
    table_number: str
    location: Optional[str]

    class Config:
        from_attributes = True


class MenuItemSummary(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal

    class Config:
        from_attributes = True


class ModifierOptionSummary(BaseModel):
    id: UUID
    name: str
    price_adjustment: Decimal

    class Config:
        from_attributes = True


class OrderItemModifierResponse(BaseModel):
    id: UUID
    modifier_option_id: UUID
    price_adjustment: Decimal
    modifier_option: Optional[ModifierOptionSummary]

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    """Order item in response"""
    id: UUID
    menu_item_id: UUID
    quantity: int
    unit_price: Decimal
    subtotal: int
    special_requests: Optional[str]
    menu_item: Optional[MenuItemSummary]
    modifiers: List[OrderItemModifierResponse] = []

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Order response"""
    id: UUID
    order_number: str
    restaurant_id: UUID
    table_id: UUID
    customer_id: Optional[UUID]
    status: str
    subtotal: int
    tax: int
    total: int
    special_requests: Optional[str]
    cancellation_reason: Optional[str]
    table: Optional[TableSummary]
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: Optional[datetime]
    accepted_at: Optional[datetime]
    preparing_at: Optional[datetime]
    ready_at: Optional[datetime]
    served_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderStatusChangeResponse(BaseModel):
    """Result of a status change"""
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Order list"""
    data: List[OrderResponse]
    total: int


class QueueItem(BaseModel):
    """Item line as shown on waiter/kitchen boards"""
    id: UUID
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: int
    modifiers: List[dict] = []
    special_requests: Optional[str] = None
    prep_time_minutes: Optional[int] = None


class QueueOrder(BaseModel):
    """Order card as shown on waiter/kitchen boards"""
    id: UUID
    order_number: str
    table: Optional[TableSummary]
    status: str
    total: int
    items_count: int
    special_requests: Optional[str]
    created_at: datetime
    accepted_at: Optional[datetime] = None
    preparing_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    served_at: Optional[datetime] = None
    items: List[QueueItem] = []


class QueueResponse(BaseModel):
    data: List[QueueOrder]
    total: int
