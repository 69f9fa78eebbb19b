"""Bill request and payment models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Text, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


# Bills whose orders are still waiting to be paid
OPEN_BILL_STATUSES = ("pending", "accepted")


class BillRequest(Base):
    """A customer's request to settle one or more orders at a table"""
    __tablename__ = "bill_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    table_id = Column(UUID(as_uuid=True), ForeignKey("tables.id"), nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))

    # Merged orders: ["<order uuid>", ...]
    order_ids = Column(JSON, nullable=False, default=list)

    subtotal = Column(Integer, nullable=False, default=0)
    tips_amount = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False, default=0)
    payment_method_code = Column(String(20), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending, accepted, completed, rejected
    rejection_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    payments = relationship("Payment", back_populates="bill_request")


class PaymentMethod(Base):
    """Payment method catalogue (cash, vnpay, momo, zalopay)"""
    __tablename__ = "payment_methods"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class Payment(Base):
    """One attempt to collect money for a bill request"""
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bill_request_id = Column(UUID(as_uuid=True), ForeignKey("bill_requests.id"))
    payment_method_id = Column(UUID(as_uuid=True), ForeignKey("payment_methods.id"), nullable=False)

    amount = Column(Integer, nullable=False)  # orders total + tips
    tips_amount = Column(Integer, nullable=False, default=0)
    merged_order_ids = Column(JSON, default=list)

    status = Column(String(20), nullable=False, default="pending")  # pending, completed, failed
    gateway_request_id = Column(String(100))  # outbound transaction reference
    gateway_trans_id = Column(String(100))  # provider transaction reference
    failed_reason = Column(Text)
    completed_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bill_request = relationship("BillRequest", back_populates="payments")
    payment_method = relationship("PaymentMethod")
