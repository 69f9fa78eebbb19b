"""Bill request and payment schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field


class BillRequestCreate(BaseModel):
    """Customer asks to settle orders at a table"""
    table_id: UUID
    customer_id: Optional[UUID] = None
    order_ids: Optional[List[UUID]] = None  # defaults to the table's active orders
    tips_amount: int = Field(0, ge=0)
    payment_method_code: str = Field(..., min_length=1, max_length=20)


class BillRequestReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class BillRequestResponse(BaseModel):
    """Bill request response"""
    id: UUID
    restaurant_id: UUID
    table_id: UUID
    customer_id: Optional[UUID]
    order_ids: List[UUID]
    subtotal: int
    tips_amount: int
    total_amount: int
    payment_method_code: str
    status: str
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class PaymentInitiation(BaseModel):
    """Provider transaction created for a payment"""
    payment_id: UUID
    transaction_id: str
    qr_code: Optional[str] = None
    payment_url: Optional[str] = None


class BillAcceptResponse(BaseModel):
    bill_request: BillRequestResponse
    payment: Optional[PaymentInitiation] = None


class PaymentMethodResponse(BaseModel):
    id: UUID
    code: str
    name: str
    display_order: int

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    """Payment response"""
    id: UUID
    bill_request_id: Optional[UUID]
    amount: int
    tips_amount: int
    status: str
    gateway_request_id: Optional[str]
    gateway_trans_id: Optional[str]
    failed_reason: Optional[str]
    completed_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class CashConfirmRequest(BaseModel):
    """Waiter confirms a cash payment"""
    received_amount: int = Field(..., ge=0)


class CashConfirmResponse(BaseModel):
    payment_id: UUID
    status: str
    amount: int
    received_amount: int
    change_amount: int
