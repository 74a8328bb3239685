"""
Cart Repository Implementation

SQLAlchemy implementation of ICartRepository. Items and the recovery log are
(de)serialized from JSONB columns.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import func, select

from app.domains.retention.domain.entities import Cart, CartItem, RecoveryAttemptRecord
from app.domains.retention.domain.value_objects import CartStatus, DeliveryStatus, RecoveryResponse
from app.domains.retention.infrastructure.repositories.base import SQLAlchemyRepository, parse_uuid
from app.models.db.carts import Cart as CartModel

logger = logging.getLogger(__name__)


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLAlchemyCartRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of cart repository."""

    resource = "carts"

    async def get_by_id(self, cart_id: str) -> Cart | None:
        cart_uuid = parse_uuid(cart_id)
        if cart_uuid is None:
            return None
        async with self._session("get_by_id") as session:
            model = await session.get(CartModel, cart_uuid)
            return self._to_entity(model) if model else None

    async def save(self, cart: Cart) -> Cart:
        """Insert or update a cart; `total_value` is recomputed first."""
        cart.recalculate_total()
        async with self._session("save") as session:
            model = await session.get(CartModel, parse_uuid(cart.id)) if cart.id else None
            if model is None:
                model = CartModel(id=parse_uuid(cart.id) if cart.id else None)
                session.add(model)
            self._update_model(model, cart)
            await session.flush()
            cart.id = str(model.id)
        return cart

    async def find_abandonment_candidates(self, inactive_since: datetime) -> list[Cart]:
        query = select(CartModel).where(
            CartModel.status == CartStatus.ACTIVE.value,
            CartModel.last_activity < inactive_since,
            func.jsonb_array_length(CartModel.items) > 0,
        )
        async with self._session("find_abandonment_candidates") as session:
            result = await session.execute(query)
            return [self._to_entity(model) for model in result.scalars().all()]

    async def get_status_summary(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        query = (
            select(
                CartModel.status,
                func.count(CartModel.id),
                func.coalesce(func.sum(CartModel.total_value), 0.0),
            )
            .where(CartModel.created_at >= start, CartModel.created_at <= end)
            .group_by(CartModel.status)
            .order_by(CartModel.status)
        )
        async with self._session("get_status_summary") as session:
            rows = (await session.execute(query)).all()
        return [{"status": status, "count": int(count), "value": float(value)} for status, count, value in rows]

    async def get_recovery_summary(self) -> list[dict[str, Any]]:
        """Converted carts with recovery attempts, counted once per channel they were contacted on."""
        query = select(CartModel.recovery_attempts, CartModel.total_value).where(
            CartModel.status == CartStatus.CONVERTED.value,
            func.jsonb_array_length(CartModel.recovery_attempts) > 0,
        )
        async with self._session("get_recovery_summary") as session:
            rows = (await session.execute(query)).all()

        counts: dict[str, int] = defaultdict(int)
        values: dict[str, float] = defaultdict(float)
        for attempts, total_value in rows:
            for channel in {attempt.get("channel") for attempt in attempts or [] if attempt.get("channel")}:
                counts[channel] += 1
                values[channel] += total_value or 0.0

        return [{"channel": channel, "count": counts[channel], "value": values[channel]} for channel in sorted(counts)]

    def _update_model(self, model: CartModel, cart: Cart) -> None:
        model.customer_id = parse_uuid(cart.customer_id)
        model.status = cart.status.value
        model.total_value = cart.total_value
        model.source = cart.source
        model.last_activity = cart.last_activity
        model.abandoned_at = cart.abandoned_at
        model.items = [
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "price": item.price,
                "added_at": item.added_at.isoformat(),
            }
            for item in cart.items
        ]
        model.recovery_attempts = [
            {
                "id": attempt.id,
                "channel": attempt.channel,
                "template_id": attempt.template_id,
                "sent_at": attempt.sent_at.isoformat(),
                "status": attempt.status.value,
                "response": attempt.response.value,
                "message_id": attempt.message_id,
            }
            for attempt in cart.recovery_attempts
        ]

    def _to_entity(self, model: CartModel) -> Cart:
        """Convert ORM model to domain entity."""
        return Cart(
            id=str(model.id),
            customer_id=str(model.customer_id),
            items=[
                CartItem(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price=item["price"],
                    added_at=_parse_datetime(item.get("added_at")) or model.created_at,
                )
                for item in model.items or []
            ],
            status=CartStatus.from_string(model.status),
            source=model.source or "web",
            last_activity=model.last_activity,
            abandoned_at=model.abandoned_at,
            recovery_attempts=[
                RecoveryAttemptRecord(
                    id=attempt["id"],
                    channel=attempt["channel"],
                    template_id=attempt.get("template_id"),
                    sent_at=datetime.fromisoformat(attempt["sent_at"]),
                    status=DeliveryStatus.from_string(attempt.get("status", "sent")),
                    response=RecoveryResponse.from_string(attempt.get("response", "none")),
                    message_id=attempt.get("message_id"),
                )
                for attempt in model.recovery_attempts or []
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
