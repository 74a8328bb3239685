"""
Message history and message templates
"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from .base import Base, TimestampMixin


class Message(Base, TimestampMixin):
    """Messages exchanged with customers on any channel"""

    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    channel = Column(String(20), nullable=False)  # whatsapp, email, sms
    direction = Column(String(10), nullable=False, default="outbound")  # inbound, outbound
    content = Column(Text)
    template_id = Column(UUID(as_uuid=True), ForeignKey("message_templates.id"), nullable=True)
    external_id = Column(String(100))

    __table_args__ = (
        Index("idx_messages_customer_channel", customer_id, channel),
    )


class MessageTemplate(Base, TimestampMixin):
    """Channel-specific message templates"""

    __tablename__ = "message_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    category = Column(String(50), nullable=False, index=True)  # cart_recovery, marketing, ...
    channels = Column(JSONB, default=list)  # ["whatsapp", "email"]
    content = Column(JSONB, default=dict)  # {"email": {"subject": ..., "body": ...}}
    meta_data = Column(JSONB, default=dict)  # {"style": "urgent", "discount_offer": "10_percent"}
    status = Column(String(20), nullable=False, default="approved")

    __table_args__ = (
        Index("idx_templates_metadata", meta_data, postgresql_using="gin"),
    )

    def __repr__(self):
        return f"<MessageTemplate(name='{self.name}', category='{self.category}')>"
