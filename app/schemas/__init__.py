"""Pydantic schemas for request/response validation"""

from app.schemas.auth import (
    Token,
    RefreshRequest,
    UserResponse,
)
from app.schemas.order import (
    OrderCreate,
    OrderItemCreate,
    AddItemsRequest,
    OrderStatusUpdate,
    RejectOrderRequest,
    OrderResponse,
    OrderListResponse,
    OrderStatusChangeResponse,
    QueueResponse,
)
from app.schemas.billing import (
    BillRequestCreate,
    BillRequestReject,
    BillRequestResponse,
    BillAcceptResponse,
    PaymentInitiation,
    PaymentMethodResponse,
    PaymentResponse,
    CashConfirmRequest,
    CashConfirmResponse,
)

__all__ = [
    "Token",
    "RefreshRequest",
    "UserResponse",
    "OrderCreate",
    "OrderItemCreate",
    "AddItemsRequest",
    "OrderStatusUpdate",
    "RejectOrderRequest",
    "OrderResponse",
    "OrderListResponse",
    "OrderStatusChangeResponse",
    "QueueResponse",
    "BillRequestCreate",
    "BillRequestReject",
    "BillRequestResponse",
    "BillAcceptResponse",
    "PaymentInitiation",
    "PaymentMethodResponse",
    "PaymentResponse",
    "CashConfirmRequest",
    "CashConfirmResponse",
]
