"""
SQLAlchemy models for Bento Order.
"""
from bento_api.models.user_profile import UserProfile
from bento_api.models.restaurant import Restaurant
from bento_api.models.menu import MenuItem
from bento_api.models.order import Order, OrderItem, OrderStatus


__all__ = [
    "UserProfile",
    "Restaurant",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
]
