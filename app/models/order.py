"""Order models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Order(Base):
    """One check-in's food request at a table"""
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(20), nullable=False, index=True)  # ORD-YYYYMMDD-XXXX
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    table_id = Column(UUID(as_uuid=True), ForeignKey("tables.id"), nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))  # null for guests

    # Status: pending, accepted, preparing, ready, served, completed, cancelled, rejected
    status = Column(String(20), nullable=False, default="pending", index=True)

    # Pricing (whole VND)
    subtotal = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)

    # Notes
    special_requests = Column(Text)
    cancellation_reason = Column(Text)

    # Lifecycle
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    accepted_at = Column(DateTime)
    preparing_at = Column(DateTime)
    ready_at = Column(DateTime)
    served_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="orders")
    table = relationship("Table", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )


class OrderItem(Base):
    """One menu item line within an order; immutable once written"""
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id"), nullable=False)
    menu_item_id = Column(UUID(as_uuid=True), ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)  # menu price snapshot
    subtotal = Column(Integer, nullable=False)
    special_requests = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")
    modifiers = relationship(
        "OrderItemModifier",
        back_populates="order_item",
        cascade="all, delete-orphan",
    )


class OrderItemModifier(Base):
    """Modifier option chosen on an order item"""
    __tablename__ = "order_item_modifiers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_item_id = Column(UUID(as_uuid=True), ForeignKey("order_items.id"), nullable=False)
    modifier_option_id = Column(UUID(as_uuid=True), ForeignKey("modifier_options.id"), nullable=False)
    price_adjustment = Column(Numeric(12, 2), nullable=False)  # option price snapshot

    # Relationships
    order_item = relationship("OrderItem", back_populates="modifiers")
    modifier_option = relationship("ModifierOption")
