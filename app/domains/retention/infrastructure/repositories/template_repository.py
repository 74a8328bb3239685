"""
Template and Message Repository Implementations
"""

import logging
from typing import Any

from sqlalchemy import func, select

from app.domains.retention.domain.entities import ChannelContent, MessageTemplate
from app.domains.retention.infrastructure.repositories.base import SQLAlchemyRepository, parse_uuid
from app.models.db.messages import Message as MessageModel
from app.models.db.messages import MessageTemplate as TemplateModel

logger = logging.getLogger(__name__)


class SQLAlchemyTemplateRepository(SQLAlchemyRepository):
    """Message templates, looked up by category, channel and metadata tags."""

    resource = "message_templates"

    async def find_one(
        self,
        category: str,
        channel: str,
        metadata: dict[str, Any],
    ) -> MessageTemplate | None:
        query = select(TemplateModel).where(
            TemplateModel.category == category,
            TemplateModel.status == "approved",
            TemplateModel.channels.contains([channel]),
        )
        for key, value in metadata.items():
            tag = TemplateModel.meta_data[key].astext
            query = query.where(tag.is_(None) if value is None else tag == str(value))

        async with self._session("find_one") as session:
            model = (await session.execute(query.order_by(TemplateModel.created_at).limit(1))).scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def get_by_id(self, template_id: str) -> MessageTemplate | None:
        template_uuid = parse_uuid(template_id)
        if template_uuid is None:
            return None
        async with self._session("get_by_id") as session:
            model = await session.get(TemplateModel, template_uuid)
            return self._to_entity(model) if model else None

    def _to_entity(self, model: TemplateModel) -> MessageTemplate:
        return MessageTemplate(
            id=str(model.id),
            name=model.name,
            category=model.category,
            channels=list(model.channels or []),
            content={
                channel: ChannelContent(
                    body=content.get("body", ""),
                    subject=content.get("subject"),
                    footer=content.get("footer"),
                )
                for channel, content in (model.content or {}).items()
            },
            metadata=dict(model.meta_data or {}),
            status=model.status,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class SQLAlchemyMessageRepository(SQLAlchemyRepository):
    """Counts over the customer message history."""

    resource = "messages"

    async def count_by_customer(self, customer_id: str) -> int:
        customer_uuid = parse_uuid(customer_id)
        if customer_uuid is None:
            return 0
        async with self._session("count_by_customer") as session:
            result = await session.execute(
                select(func.count(MessageModel.id)).where(MessageModel.customer_id == customer_uuid)
            )
            return int(result.scalar_one())

    async def count_by_channel(self, customer_id: str) -> dict[str, int]:
        customer_uuid = parse_uuid(customer_id)
        if customer_uuid is None:
            return {}
        async with self._session("count_by_channel") as session:
            result = await session.execute(
                select(MessageModel.channel, func.count(MessageModel.id))
                .where(MessageModel.customer_id == customer_uuid)
                .group_by(MessageModel.channel)
            )
            return {channel: int(count) for channel, count in result.all()}
