"""Retention domain entities."""

from app.domains.retention.domain.entities.cart import Cart, CartItem, RecoveryAttemptRecord
from app.domains.retention.domain.entities.customer import Customer, CustomerMetrics, CustomerType, LoyaltyTier
from app.domains.retention.domain.entities.message_template import (
    CART_RECOVERY_CATEGORY,
    ChannelContent,
    MessageTemplate,
)
from app.domains.retention.domain.entities.order import Order, OrderItem, OrderStatus

__all__ = [
    "Cart",
    "CartItem",
    "RecoveryAttemptRecord",
    "Customer",
    "CustomerMetrics",
    "CustomerType",
    "LoyaltyTier",
    "MessageTemplate",
    "ChannelContent",
    "CART_RECOVERY_CATEGORY",
    "Order",
    "OrderItem",
    "OrderStatus",
]
