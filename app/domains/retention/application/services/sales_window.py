"""
Real-Time Sales Window

Completed orders are written to a timestamp-scored sorted set and pruned on
write, so the window never needs a background sweep. Daily and per-segment
counters are kept alongside and are never pruned.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from app.config.settings import Settings, get_settings
from app.core.interfaces.cache import ICache
from app.core.interfaces.messaging import INotificationBus
from app.domains.retention.application.ports import ICustomerRepository
from app.domains.retention.domain.entities import Order
from app.domains.retention.domain.events import SaleRecorded
from app.domains.retention.domain.value_objects import RealTimeStats, SalesEvent

logger = logging.getLogger(__name__)

REALTIME_KEY = "sales:realtime"


def daily_count_key(day: str) -> str:
    return f"sales:daily:{day}:count"


def daily_revenue_key(day: str) -> str:
    return f"sales:daily:{day}:revenue"


def daily_segment_key(day: str, segment: str) -> str:
    return f"sales:segments:{day}:{segment}"


class RealTimeSalesWindow:
    """
    Trailing window over recent sales.

    Ingestion is not idempotent: every call counts, so callers ingest each
    completed order exactly once.

    Usage:
        window = RealTimeSalesWindow(cache, customers)
        await window.ingest_order(order)
        stats = await window.current_stats()
    """

    def __init__(
        self,
        cache: ICache,
        customer_repository: ICustomerRepository | None = None,
        settings: Settings | None = None,
        notification_bus: INotificationBus | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.customer_repository = customer_repository
        self.notification_bus = notification_bus
        self.window_seconds = self.settings.REALTIME_WINDOW_SECONDS
        self._clock = clock or time.time

    @staticmethod
    def event_from_order(order: Order, timestamp: float) -> SalesEvent:
        return SalesEvent(
            order_id=str(order.id),
            customer_id=order.customer_id or None,
            amount=order.total,
            item_count=order.item_count,
            timestamp=timestamp,
        )

    async def ingest_order(self, order: Order) -> SalesEvent:
        """Feed a completed order into the window and the daily counters, stamped at ingestion time."""
        event = self.event_from_order(order, self._clock())
        await self.ingest(event)
        return event

    async def ingest(self, event: SalesEvent) -> None:
        now = self._clock()
        await self.cache.sorted_set_add(REALTIME_KEY, event.timestamp, event.model_dump_json())
        pruned = await self.cache.sorted_set_remove_range_by_score(
            REALTIME_KEY, 0, now - self.window_seconds, exclusive_max=True
        )
        if pruned:
            logger.debug(f"Pruned {pruned} expired sales from the real-time window")

        day = datetime.fromtimestamp(event.timestamp, UTC).date().isoformat()
        await self.cache.increment(daily_count_key(day), 1)
        await self.cache.increment(daily_revenue_key(day), float(event.amount))

        for segment in await self._customer_segments(event.customer_id):
            await self.cache.increment(daily_segment_key(day, segment), 1)

        if self.notification_bus is not None:
            sale = SaleRecorded(order_id=event.order_id, customer_id=event.customer_id, amount=event.amount)
            await self.notification_bus.publish(sale.topic, sale.to_dict())

    async def current_stats(self) -> RealTimeStats:
        """Totals and per-minute rates over `[now - window, now]`."""
        now = self._clock()
        members = await self.cache.sorted_set_range_by_score(REALTIME_KEY, now - self.window_seconds, now)
        orders = [SalesEvent.model_validate_json(member) for member in members]

        total_sales = len(orders)
        total_revenue = sum(order.amount for order in orders)
        minutes = self.window_seconds / 60

        return RealTimeStats(
            total_sales=total_sales,
            total_revenue=total_revenue,
            sales_per_minute=total_sales / minutes,
            revenue_per_minute=total_revenue / minutes,
            window_seconds=self.window_seconds,
            orders=orders,
        )

    async def _customer_segments(self, customer_id: str | None) -> list[str]:
        if not customer_id or self.customer_repository is None:
            return []
        customer = await self.customer_repository.get_by_id(customer_id)
        return list(customer.segments) if customer else []
