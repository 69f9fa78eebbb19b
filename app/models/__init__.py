"""Database models"""

from app.models.restaurant import Restaurant, Table
from app.models.menu import MenuItem, ModifierOption
from app.models.cart import CartItem
from app.models.order import Order, OrderItem, OrderItemModifier
from app.models.billing import BillRequest, PaymentMethod, Payment
from app.models.user import User, UserRole

__all__ = [
    "Restaurant",
    "Table",
    "MenuItem",
    "ModifierOption",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderItemModifier",
    "BillRequest",
    "PaymentMethod",
    "Payment",
    "User",
    "UserRole",
]
