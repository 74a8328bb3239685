"""
Unit Tests for customer behavior analysis
"""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.domain.exceptions import EntityNotFoundException
from app.domains.retention.application.services import BehaviorAnalysisService
from app.domains.retention.application.services.behavior_analysis import price_range, product_preferences
from app.domains.retention.domain.entities import OrderItem

# A Wednesday in June
BASE = datetime(2024, 6, 12, 10, 0, tzinfo=UTC)


@pytest.fixture
def behavior(cache, customers, orders, messages, settings):
    return BehaviorAnalysisService(cache, customers, orders, messages, settings=settings)


def test_price_ranges():
    assert [price_range(p) for p in (50, 50.01, 200, 201)] == ["budget", "mid_range", "mid_range", "premium"]


def test_product_preferences_falls_back_to_single_category(order_factory):
    order = order_factory(
        "o-1",
        items=[
            OrderItem(product_id="p-1", quantity=1, price=30, category="audio", brand="Acme"),
            OrderItem(product_id="p-2", quantity=1, price=300, categories=["audio", "tv"]),
        ],
    )

    prefs = product_preferences([order])

    assert prefs["categories"] == {"audio": 2, "tv": 1}
    assert prefs["brands"] == {"Acme": 1}
    assert prefs["price_ranges"] == {"budget": 1, "premium": 1}


class TestAnalyzeBehavior:
    @pytest.mark.asyncio
    async def test_profile(self, behavior, orders, messages, order_factory):
        orders.add(order_factory("o-1", total=100, created_at=BASE - timedelta(days=10), payment_method="card"))
        orders.add(order_factory("o-2", total=300, created_at=BASE, payment_method="card"))
        messages.counts["cust-1"] = 7
        messages.channels["cust-1"] = {"whatsapp": 5, "email": 2}

        analysis = await behavior.analyze_behavior("cust-1")

        patterns = analysis["purchase_patterns"]
        assert patterns["average_order_value"] == 200
        assert patterns["payment_methods"] == {"card": 2}
        assert patterns["days_between_purchases"] == [10]
        assert patterns["purchase_days"] == {"Sunday": 1, "Wednesday": 1}
        assert analysis["engagement"] == {"message_count": 7, "channels": {"whatsapp": 5, "email": 2}}
        assert analysis["seasonality"]["months"] == {"June": 2}
        assert analysis["seasonality"]["quarters"] == {"Q2": 2}

    @pytest.mark.asyncio
    async def test_no_orders(self, behavior):
        analysis = await behavior.analyze_behavior("cust-1")
        assert analysis["purchase_patterns"]["average_order_value"] == 0.0
        assert analysis["product_preferences"]["categories"] == {}

    @pytest.mark.asyncio
    async def test_result_is_cached(self, behavior, orders, order_factory):
        first = await behavior.analyze_behavior("cust-1")
        orders.add(order_factory("o-1"))

        assert await behavior.analyze_behavior("cust-1") == first

    @pytest.mark.asyncio
    async def test_unknown_customer(self, behavior):
        with pytest.raises(EntityNotFoundException):
            await behavior.analyze_behavior("ghost")
