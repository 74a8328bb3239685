"""
Customer model
"""

import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import Column, DateTime, Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .carts import Cart
    from .orders import Order


class Customer(Base, TimestampMixin):
    """Customers, with purchase metrics and their last segment snapshot"""

    __tablename__ = "customers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), index=True)
    phone = Column(String(20), index=True)
    customer_type = Column(String(20), nullable=False, default="individual")  # individual, business
    loyalty_tier = Column(String(20), default="bronze")  # bronze, silver, gold, platinum

    # Purchase metrics
    total_orders = Column(Integer, nullable=False, default=0)
    total_spent = Column(Float, nullable=False, default=0)
    average_order_value = Column(Float, nullable=False, default=0)
    first_purchase_date = Column(DateTime(timezone=True))
    last_purchase_date = Column(DateTime(timezone=True))

    contact_preferences = Column(JSONB, default=dict)  # {"email": true, "whatsapp": false}
    segments = Column(JSONB, default=list)  # ["high_value", "active"]

    # Relationships
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="customer")
    carts: Mapped[List["Cart"]] = relationship("Cart", back_populates="customer")

    __table_args__ = (
        Index("idx_customers_segments", segments, postgresql_using="gin"),
    )

    def __repr__(self):
        return f"<Customer(id='{self.id}', type='{self.customer_type}', tier='{self.loyalty_tier}')>"
