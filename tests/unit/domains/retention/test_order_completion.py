"""
Unit Tests for OrderCompletionHandler
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.domain.exceptions import DataAccessError
from app.domains.retention.application.services import OrderCompletionHandler, RealTimeSalesWindow
from app.domains.retention.application.services.sales_window import daily_count_key
from app.domains.retention.domain.entities import CustomerMetrics
from app.domains.retention.domain.value_objects import CartStatus


@pytest.fixture
def window(cache, customers, settings, bus, clock):
    return RealTimeSalesWindow(cache, customers, settings=settings, notification_bus=bus, clock=clock.epoch)


@pytest.fixture
def handler(window, customers, segmentation, orchestrator):
    return OrderCompletionHandler(window, customers, segmentation, orchestrator)


class TestOrderCompletion:
    @pytest.mark.asyncio
    async def test_order_from_abandoned_cart(
        self, handler, orchestrator, carts, cart_factory, customers, order_factory, cache, job_queue
    ):
        """A completed order is counted, refreshes segments and converts its cart."""
        carts.add(cart_factory())
        await orchestrator.run_abandonment_sweep()
        assert await job_queue.pending_count() == 3

        outcome = await handler.handle(order_factory("o-1", total=1200.0, cart_id="cart-1"))

        assert outcome == {
            "ingested": True,
            "metrics_recorded": True,
            "segments_refreshed": True,
            "cart_converted": True,
        }
        assert await cache.get(daily_count_key("2024-06-12")) == 1
        assert customers.segment_updates[0][0] == "cust-1"
        assert "high_value" in customers.segment_updates[0][1]
        assert carts.carts["cart-1"].status == CartStatus.CONVERTED
        assert await job_queue.pending_count() == 0

    @pytest.mark.asyncio
    async def test_order_without_cart(self, handler, order_factory, bus):
        outcome = await handler.handle(order_factory("o-1"))

        assert outcome == {
            "ingested": True,
            "metrics_recorded": True,
            "segments_refreshed": True,
            "cart_converted": False,
        }
        assert bus.topics() == ["sales:new", "customer:segments"]

    @pytest.mark.asyncio
    async def test_refresh_failure_does_not_undo_ingestion(self, window, customers, orchestrator, order_factory, cache):
        segmentation = AsyncMock()
        segmentation.refresh.side_effect = DataAccessError("customers", "get_by_id", "connection refused")
        handler = OrderCompletionHandler(window, customers, segmentation, orchestrator)

        outcome = await handler.handle(order_factory("o-1"))

        assert outcome["ingested"] is True
        assert outcome["segments_refreshed"] is False
        assert await cache.get(daily_count_key("2024-06-12")) == 1

    @pytest.mark.asyncio
    async def test_ingestion_failure_propagates(self, customers, orchestrator, order_factory):
        window = AsyncMock()
        window.ingest_order.side_effect = DataAccessError("cache", "sorted_set_add", "connection refused")
        segmentation = AsyncMock()
        handler = OrderCompletionHandler(window, customers, segmentation, orchestrator)

        with pytest.raises(DataAccessError):
            await handler.handle(order_factory("o-1"))

        segmentation.refresh.assert_not_awaited()
        assert customers.metric_updates == []


class TestPurchaseMetrics:
    """The customer's purchase metrics follow each completed order."""

    @pytest.mark.asyncio
    async def test_order_updates_metrics_before_segments(self, handler, customers, customer, clock, order_factory):
        customer.metrics = CustomerMetrics(total_orders=4, total_spent=4950.0, average_order_value=1237.5)

        await handler.handle(order_factory("o-1", total=150.0, created_at=clock.now - timedelta(minutes=5)))

        customer_id, metrics = customers.metric_updates[0]
        assert customer_id == "cust-1"
        assert metrics.total_orders == 5
        assert metrics.total_spent == 5100.0
        assert metrics.average_order_value == pytest.approx(1020.0)
        assert metrics.first_purchase_date == clock.now - timedelta(minutes=5)
        assert metrics.last_purchase_date == clock.now - timedelta(minutes=5)
        assert "medium_value" in customers.segment_updates[0][1]

    @pytest.mark.asyncio
    async def test_unknown_customer_is_counted_without_metrics(self, handler, customers, order_factory, cache):
        outcome = await handler.handle(order_factory("o-1", customer_id="cust-404"))

        assert outcome["ingested"] is True
        assert outcome["metrics_recorded"] is False
        assert customers.metric_updates == []
        assert await cache.get(daily_count_key("2024-06-12")) == 1

    @pytest.mark.asyncio
    async def test_metrics_failure_still_refreshes_segments(self, window, customers, orchestrator, order_factory):
        customers.update_metrics = AsyncMock(side_effect=DataAccessError("customers", "update_metrics", "timeout"))
        segmentation = AsyncMock()
        handler = OrderCompletionHandler(window, customers, segmentation, orchestrator)

        outcome = await handler.handle(order_factory("o-1"))

        assert outcome["metrics_recorded"] is False
        assert outcome["segments_refreshed"] is True
        segmentation.refresh.assert_awaited_once_with("cust-1")
