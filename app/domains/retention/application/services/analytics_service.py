"""
Analytics Service

Read-side aggregates: revenue by calendar bucket with growth rates, customer
metrics, cart outcomes, and a combined report.
"""

import logging
from datetime import datetime
from typing import Any

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import ValidationException
from app.core.interfaces.cache import ICache
from app.domains.retention.application.ports import (
    ICartRepository,
    ICustomerRepository,
    IOrderRepository,
)
from app.domains.retention.domain.value_objects import GroupBy, RevenueBucket

logger = logging.getLogger(__name__)

REPORT_METRICS = ("revenue", "customers", "carts")


def growth_rate(previous: float, current: float) -> float:
    """Percent change from `previous` to `current`; 0 when there is no previous revenue."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def apply_growth_rates(buckets: list[RevenueBucket]) -> list[RevenueBucket]:
    """
    Set `growth_rate` on chronologically ordered buckets.

    The first bucket's rate is 0; every later bucket is compared to the one
    immediately before it.
    """
    result = []
    for index, bucket in enumerate(buckets):
        rate = 0.0 if index == 0 else growth_rate(buckets[index - 1].revenue, bucket.revenue)
        result.append(bucket.model_copy(update={"growth_rate": rate}))
    return result


def _as_group_by(group_by: GroupBy | str) -> GroupBy:
    if isinstance(group_by, GroupBy):
        return group_by
    try:
        return GroupBy.from_string(group_by)
    except ValueError as e:
        raise ValidationException(str(e), field="group_by") from e


class AnalyticsService:
    """
    Revenue, customer and cart analytics.

    Usage:
        analytics = AnalyticsService(cache, customers, orders, carts)
        buckets = await analytics.revenue_analytics(start, end, "day")
    """

    def __init__(
        self,
        cache: ICache,
        customer_repository: ICustomerRepository,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.customer_repository = customer_repository
        self.order_repository = order_repository
        self.cart_repository = cart_repository

    @staticmethod
    def revenue_cache_key(start: datetime, end: datetime, group_by: GroupBy) -> str:
        return f"analytics:revenue:{start.isoformat()}:{end.isoformat()}:{group_by.value}"

    async def revenue_analytics(
        self,
        start: datetime,
        end: datetime,
        group_by: GroupBy | str = GroupBy.DAY,
    ) -> list[RevenueBucket]:
        """
        Revenue per calendar bucket for completed orders created in [start, end].

        Raises:
            ValidationException: If the range is inverted or the granularity unknown
            DataAccessError: If the store or the cache fails
        """
        granularity = _as_group_by(group_by)
        if start > end:
            raise ValidationException("Start date must not be after end date", field="start")

        key = self.revenue_cache_key(start, end, granularity)
        cached = await self.cache.get(key)
        if cached is not None:
            return [RevenueBucket.model_validate(item) for item in cached]

        buckets = await self.order_repository.aggregate_revenue(start, end, granularity)
        buckets = apply_growth_rates(sorted(buckets, key=lambda b: b.period_start))

        await self.cache.set_with_ttl(
            key,
            [bucket.model_dump(mode="json") for bucket in buckets],
            self.settings.ANALYTICS_CACHE_TTL,
        )
        logger.debug(f"Revenue analytics computed: {len(buckets)} {granularity.value} buckets")
        return buckets

    async def customer_analytics(self) -> dict[str, Any]:
        """Customer totals, lifetime value, segment distribution and repeat purchase rate."""
        summary = await self.customer_repository.get_summary()
        order_summary = await self.order_repository.get_order_count_summary()
        return {
            "total_customers": summary.get("total_customers", 0),
            "average_lifetime_value": summary.get("average_lifetime_value", 0.0),
            "segment_distribution": summary.get("segment_distribution", {}),
            "average_orders_per_customer": order_summary.get("average_orders_per_customer", 0.0),
            "repeat_purchase_rate": order_summary.get("repeat_purchase_rate", 0.0),
        }

    async def cart_analytics(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Cart counts per status in the range, plus recovered carts per channel."""
        by_status = await self.cart_repository.get_status_summary(start, end)
        recovery = await self.cart_repository.get_recovery_summary()
        return {
            "by_status": by_status,
            "recovery": recovery,
            "recovered_carts": sum(row.get("count", 0) for row in recovery),
            "recovered_value": sum(row.get("value", 0.0) for row in recovery),
        }

    async def generate_report(
        self,
        start: datetime,
        end: datetime,
        metrics: list[str] | None = None,
        group_by: GroupBy | str = GroupBy.DAY,
    ) -> dict[str, Any]:
        """
        Combined report over the requested metrics.

        Raises:
            ValidationException: If a metric name is unknown
        """
        requested = list(metrics) if metrics else list(REPORT_METRICS)
        unknown = [name for name in requested if name not in REPORT_METRICS]
        if unknown:
            raise ValidationException(f"Unknown report metrics: {', '.join(unknown)}", field="metrics")

        report: dict[str, Any] = {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "metrics": {},
        }
        if "revenue" in requested:
            buckets = await self.revenue_analytics(start, end, group_by)
            report["metrics"]["revenue"] = [bucket.model_dump(mode="json") for bucket in buckets]
        if "customers" in requested:
            report["metrics"]["customers"] = await self.customer_analytics()
        if "carts" in requested:
            report["metrics"]["carts"] = await self.cart_analytics(start, end)

        logger.info(f"Report generated for {start.date()}..{end.date()}: {requested}")
        return report
