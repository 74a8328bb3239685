"""
Cart model

Items and the recovery log are embedded documents, stored as JSONB.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .customers import Customer


class Cart(Base, TimestampMixin):
    """Shopping carts"""

    __tablename__ = "carts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")  # active, abandoned, converted, expired
    total_value = Column(Float, nullable=False, default=0)
    source = Column(String(20), default="web")  # web, mobile, whatsapp
    last_activity = Column(DateTime(timezone=True), nullable=False)
    abandoned_at = Column(DateTime(timezone=True))

    items = Column(JSONB, default=list)  # [{"product_id", "quantity", "price", "added_at"}]
    recovery_attempts = Column(JSONB, default=list)  # [{"id", "channel", "template_id", "sent_at", ...}]

    customer: Mapped["Customer"] = relationship("Customer", back_populates="carts")

    __table_args__ = (
        Index("idx_carts_status_activity", status, last_activity),
    )

    def __repr__(self):
        return f"<Cart(id='{self.id}', status='{self.status}', total={self.total_value})>"
