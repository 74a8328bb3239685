"""
Order Entity for the Retention Domain

Orders are read-only inputs to analytics and segmentation.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.core.domain import Entity, StatusEnum


class OrderStatus(StatusEnum):
    """Order lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @classmethod
    def revenue_statuses(cls) -> list["OrderStatus"]:
        """Statuses whose orders count towards revenue analytics."""
        return [cls.DELIVERED, cls.COMPLETED]


@dataclass
class OrderItem:
    """Line item of an order."""

    product_id: str
    quantity: int
    price: float
    name: str | None = None
    category: str | None = None
    categories: list[str] = field(default_factory=list)
    brand: str | None = None

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass
class Order(Entity[str]):
    """Finalized order as consumed by the retention core."""

    customer_id: str = ""
    items: list[OrderItem] = field(default_factory=list)
    total: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    payment_method: str | None = None
    cart_id: str | None = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def counts_as_revenue(self) -> bool:
        return self.status in OrderStatus.revenue_statuses()

    @property
    def placed_at(self) -> datetime:
        return self.created_at
