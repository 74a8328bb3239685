"""
Database models package - Organized by responsibility
"""

from .base import Base, TimestampMixin
from .carts import Cart
from .customers import Customer
from .messages import Message, MessageTemplate
from .orders import Order, OrderItem

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Customers
    "Customer",
    # Orders
    "Order",
    "OrderItem",
    # Carts
    "Cart",
    # Messaging
    "Message",
    "MessageTemplate",
]
