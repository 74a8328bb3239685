"""
Customer Repository Implementation

SQLAlchemy implementation of ICustomerRepository.
"""

import logging
from typing import Any

from sqlalchemy import func, select, update

from app.domains.retention.domain.entities import Customer, CustomerMetrics, CustomerType, LoyaltyTier
from app.domains.retention.infrastructure.repositories.base import SQLAlchemyRepository, parse_uuid
from app.models.db.customers import Customer as CustomerModel

logger = logging.getLogger(__name__)


class SQLAlchemyCustomerRepository(SQLAlchemyRepository):
    """Reads customers and writes back their purchase metrics and segment snapshot."""

    resource = "customers"

    async def get_by_id(self, customer_id: str) -> Customer | None:
        customer_uuid = parse_uuid(customer_id)
        if customer_uuid is None:
            return None
        async with self._session("get_by_id") as session:
            model = await session.get(CustomerModel, customer_uuid)
            return self._to_entity(model) if model else None

    async def update_metrics(self, customer_id: str, metrics: CustomerMetrics) -> None:
        async with self._session("update_metrics") as session:
            await session.execute(
                update(CustomerModel)
                .where(CustomerModel.id == parse_uuid(customer_id))
                .values(
                    total_orders=metrics.total_orders,
                    total_spent=metrics.total_spent,
                    average_order_value=metrics.average_order_value,
                    first_purchase_date=metrics.first_purchase_date,
                    last_purchase_date=metrics.last_purchase_date,
                )
            )

    async def update_segments(self, customer_id: str, segments: list[str]) -> None:
        async with self._session("update_segments") as session:
            await session.execute(
                update(CustomerModel)
                .where(CustomerModel.id == parse_uuid(customer_id))
                .values(segments=sorted(set(segments)))
            )
        logger.debug(f"Persisted {len(segments)} segments for customer {customer_id}")

    async def get_summary(self) -> dict[str, Any]:
        async with self._session("get_summary") as session:
            totals = (
                await session.execute(
                    select(func.count(CustomerModel.id), func.coalesce(func.avg(CustomerModel.total_spent), 0.0))
                )
            ).one()

            label = func.jsonb_array_elements_text(CustomerModel.segments).label("segment")
            labels = select(CustomerModel.id, label).subquery()
            distribution = await session.execute(
                select(labels.c.segment, func.count()).group_by(labels.c.segment).order_by(labels.c.segment)
            )

            return {
                "total_customers": int(totals[0]),
                "average_lifetime_value": float(totals[1]),
                "segment_distribution": {segment: int(count) for segment, count in distribution.all()},
            }

    def _to_entity(self, model: CustomerModel) -> Customer:
        """Convert ORM model to domain entity."""
        return Customer(
            id=str(model.id),
            first_name=model.first_name or "",
            last_name=model.last_name or "",
            email=model.email,
            phone=model.phone,
            type=CustomerType.from_string(model.customer_type or "individual"),
            loyalty_tier=LoyaltyTier.from_string(model.loyalty_tier) if model.loyalty_tier else None,
            metrics=CustomerMetrics(
                total_orders=model.total_orders or 0,
                total_spent=model.total_spent or 0.0,
                average_order_value=model.average_order_value or 0.0,
                first_purchase_date=model.first_purchase_date,
                last_purchase_date=model.last_purchase_date,
            ),
            contact_preferences=dict(model.contact_preferences or {}),
            segments=list(model.segments or []),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
