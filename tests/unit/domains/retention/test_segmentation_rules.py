"""
Unit Tests for the default segmentation rules.
"""

from datetime import UTC, datetime, timedelta

import pytest

from app.domains.retention.domain.entities import Customer, CustomerMetrics, Order
from app.domains.retention.domain.services import (
    CustomerHistory,
    EngagementLevelRule,
    PurchaseFrequencyRule,
    PurchaseRecencyRule,
    SpendingLevelRule,
    default_rules,
)

NOW = datetime(2024, 6, 12, 15, 0, tzinfo=UTC)


def _history(order_ages_days: list[float]) -> CustomerHistory:
    orders = [Order(id=f"o-{i}", created_at=NOW - timedelta(days=age)) for i, age in enumerate(order_ages_days)]
    return CustomerHistory(orders=orders, now=NOW)


def _constant_count(count: int):
    async def lookup(customer_id: str) -> int:
        return count

    return lookup


class TestPurchaseFrequencyRule:
    @pytest.mark.asyncio
    async def test_no_orders_is_new_customer(self):
        assert await PurchaseFrequencyRule().evaluate(Customer(id="c"), _history([])) == ["new_customer"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ages,expected",
        [
            ([10, 8, 6, 4, 2], "frequent_buyer"),  # 5 orders / 10 days
            ([10, 5], "regular_customer"),  # 2 / 10
            ([10], "occasional_buyer"),  # 1 / 10
        ],
    )
    async def test_frequency_bands(self, ages, expected):
        assert await PurchaseFrequencyRule().evaluate(Customer(id="c"), _history(ages)) == [expected]

    @pytest.mark.asyncio
    async def test_first_purchase_today_is_frequent(self):
        """Zero elapsed days counts as an unbounded rate."""
        assert await PurchaseFrequencyRule().evaluate(Customer(id="c"), _history([0.2])) == ["frequent_buyer"]


class TestSpendingLevelRule:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "spent,expected",
        [(10000, "high_value"), (9999.99, "medium_value"), (5000, "medium_value"), (4999, "low_value"), (0, "low_value")],
    )
    async def test_spending_bands(self, spent, expected):
        customer = Customer(id="c", metrics=CustomerMetrics(total_spent=spent))
        assert await SpendingLevelRule().evaluate(customer, _history([])) == [expected]


class TestEngagementLevelRule:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,expected", [(51, "highly_engaged"), (50, "engaged"), (21, "engaged"), (20, "low_engagement")])
    async def test_engagement_bands(self, count, expected):
        customer = Customer(id="c", contact_preferences={"whatsapp": False})
        assert await EngagementLevelRule(_constant_count(count)).evaluate(customer, _history([])) == [expected]

    @pytest.mark.asyncio
    async def test_whatsapp_opt_in_adds_label(self):
        customer = Customer(id="c", contact_preferences={"whatsapp": True})
        labels = await EngagementLevelRule(_constant_count(0)).evaluate(customer, _history([]))
        assert labels == ["low_engagement", "whatsapp_enabled"]


class TestPurchaseRecencyRule:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "days_ago,expected",
        [(0, "active"), (30, "active"), (31, "at_risk"), (90, "at_risk"), (91, "inactive")],
    )
    async def test_recency_bands(self, days_ago, expected):
        customer = Customer(id="c", metrics=CustomerMetrics(last_purchase_date=NOW - timedelta(days=days_ago)))
        assert await PurchaseRecencyRule().evaluate(customer, _history([])) == [expected]

    @pytest.mark.asyncio
    async def test_never_purchased(self):
        assert await PurchaseRecencyRule().evaluate(Customer(id="c"), _history([])) == ["never_purchased"]


def test_default_rules_order():
    names = [rule.name for rule in default_rules(_constant_count(0))]
    assert names == ["purchase_frequency", "spending_level", "engagement_level", "purchase_recency"]
