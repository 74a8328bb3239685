"""
Order models
"""

import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .customers import Customer


class Order(Base, TimestampMixin):
    """Finalized orders"""

    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    cart_id = Column(UUID(as_uuid=True), ForeignKey("carts.id"), nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending ... delivered, completed
    total_amount = Column(Float, nullable=False)
    payment_method = Column(String(50))

    # Relationships
    customer: Mapped["Customer"] = relationship("Customer", back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    __table_args__ = (
        Index("idx_orders_customer_created", customer_id, "created_at"),
        Index("idx_orders_status_created", status, "created_at"),
    )

    def __repr__(self):
        return f"<Order(id='{self.id}', status='{self.status}', total={self.total_amount})>"


class OrderItem(Base):
    """Order line items"""

    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    name = Column(String(255))
    category = Column(String(100))
    categories = Column(JSONB, default=list)
    brand = Column(String(100))
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
