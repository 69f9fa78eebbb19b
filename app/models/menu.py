"""Menu-related models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class MenuItem(Base):
    """Menu items"""
    __tablename__ = "menu_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Numeric(12, 2), nullable=False)  # VND; rounded to whole dong when ordered
    category = Column(String(100))
    status = Column(String(20), default="available")  # available, active, unavailable, sold_out, inactive
    is_deleted = Column(Boolean, default=False)
    prep_time_minutes = Column(Integer)
    image_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="menu_items")
    modifier_options = relationship("ModifierOption", back_populates="menu_item")


class ModifierOption(Base):
    """A priced add-on or variant selectable on a menu item line"""
    __tablename__ = "modifier_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    menu_item_id = Column(UUID(as_uuid=True), ForeignKey("menu_items.id"))
    group_name = Column(String(100))  # Size, Toppings, Spice level
    name = Column(String(100), nullable=False)
    price_adjustment = Column(Numeric(12, 2), nullable=False, default=0)  # may be negative
    status = Column(String(20))  # legacy rows carry no status
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    menu_item = relationship("MenuItem", back_populates="modifier_options")
