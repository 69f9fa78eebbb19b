"""Cart model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Text
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class CartItem(Base):
    """Pre-order cart line, scoped to a customer or a guest table session"""
    __tablename__ = "cart_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    session_id = Column(String(100))
    table_id = Column(UUID(as_uuid=True), ForeignKey("tables.id"))
    menu_item_id = Column(UUID(as_uuid=True), ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    modifier_option_ids = Column(JSON, default=list)
    special_requests = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
