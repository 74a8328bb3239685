"""
Order Repository Implementation

SQLAlchemy implementation of IOrderRepository. Revenue buckets and order
count summaries are aggregated in SQL.
"""

import logging
from datetime import datetime

from sqlalchemy import case, func, select

from app.domains.retention.domain.entities import Order, OrderItem, OrderStatus
from app.domains.retention.domain.value_objects import GroupBy, RevenueBucket
from app.domains.retention.infrastructure.repositories.base import SQLAlchemyRepository, parse_uuid
from app.models.db.orders import Order as OrderModel

logger = logging.getLogger(__name__)


class SQLAlchemyOrderRepository(SQLAlchemyRepository):
    """
    SQLAlchemy implementation of order repository.

    Orders are read-only here.
    """

    resource = "orders"

    async def get_by_customer(
        self,
        customer_id: str,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[Order]:
        customer_uuid = parse_uuid(customer_id)
        if customer_uuid is None:
            return []

        ordering = OrderModel.created_at.desc() if newest_first else OrderModel.created_at.asc()
        query = select(OrderModel).where(OrderModel.customer_id == customer_uuid).order_by(ordering)
        if limit is not None:
            query = query.limit(limit)

        async with self._session("get_by_customer") as session:
            result = await session.execute(query)
            return [self._to_entity(model) for model in result.scalars().all()]

    async def aggregate_revenue(
        self,
        start: datetime,
        end: datetime,
        group_by: GroupBy,
    ) -> list[RevenueBucket]:
        """Revenue, order count and average order value per `date_trunc` bucket."""
        period = func.date_trunc(group_by.value, OrderModel.created_at).label("period")
        query = (
            select(
                period,
                func.sum(OrderModel.total_amount).label("revenue"),
                func.count(OrderModel.id).label("orders"),
                func.avg(OrderModel.total_amount).label("average_order_value"),
            )
            .where(
                OrderModel.created_at >= start,
                OrderModel.created_at <= end,
                OrderModel.status.in_([status.value for status in OrderStatus.revenue_statuses()]),
            )
            .group_by(period)
            .order_by(period)
        )

        async with self._session("aggregate_revenue") as session:
            rows = (await session.execute(query)).all()

        return [
            RevenueBucket(
                period_start=row.period,
                revenue=float(row.revenue or 0),
                orders=int(row.orders),
                average_order_value=float(row.average_order_value or 0),
            )
            for row in rows
        ]

    async def get_order_count_summary(self) -> dict[str, float]:
        """
        Orders per customer, over customers that have at least one order.

        Customers without orders never appear in the grouping and so are
        left out of both averages.
        """
        per_customer = (
            select(OrderModel.customer_id, func.count(OrderModel.id).label("order_count"))
            .group_by(OrderModel.customer_id)
            .subquery()
        )
        query = select(
            func.coalesce(func.avg(per_customer.c.order_count), 0.0),
            func.coalesce(func.avg(case((per_customer.c.order_count > 1, 1.0), else_=0.0)), 0.0),
        )

        async with self._session("get_order_count_summary") as session:
            average_orders, repeat_rate = (await session.execute(query)).one()

        return {
            "average_orders_per_customer": float(average_orders),
            "repeat_purchase_rate": float(repeat_rate),
        }

    def _to_entity(self, model: OrderModel) -> Order:
        """Convert ORM model to domain entity."""
        return Order(
            id=str(model.id),
            customer_id=str(model.customer_id),
            items=[
                OrderItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.unit_price,
                    name=item.name,
                    category=item.category,
                    categories=list(item.categories or []),
                    brand=item.brand,
                )
                for item in model.items
            ],
            total=model.total_amount,
            status=OrderStatus.from_string(model.status),
            payment_method=model.payment_method,
            cart_id=str(model.cart_id) if model.cart_id else None,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
