"""
Unit Tests for SegmentationEngine

Cache behavior, rule failure handling and segment refresh.
"""

import pytest

from app.core.domain.exceptions import ClassificationError, DataAccessError, EntityNotFoundException
from app.domains.retention.application.services import SegmentationEngine
from app.domains.retention.application.services.segmentation_engine import segments_cache_key
from app.domains.retention.domain.entities import CustomerType, LoyaltyTier


class _FailingRule:
    name = "explodes"

    def __init__(self, error: Exception):
        self.error = error

    async def evaluate(self, customer, history):
        raise self.error


class TestClassify:
    """classify() computes once and serves from cache afterwards."""

    @pytest.mark.asyncio
    async def test_classifies_and_caches(self, segmentation, customer, cache, order_factory, orders):
        orders.add(order_factory("o-1"))

        segments = await segmentation.classify(customer)

        assert segments == sorted(segments)
        assert {"high_value", "active", "low_engagement", "whatsapp_enabled", "loyalty_bronze"} <= set(segments)
        assert await cache.get(segments_cache_key("cust-1")) == segments

    @pytest.mark.asyncio
    async def test_cache_hit_skips_rules(self, segmentation, customer, cache):
        await cache.set_with_ttl(segments_cache_key("cust-1"), ["cached_label"], 3600)

        assert await segmentation.classify(customer) == ["cached_label"]

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self, segmentation, customer, cache, clock, messages):
        await segmentation.classify(customer)
        messages.counts["cust-1"] = 60
        clock.advance(seconds=3601)

        assert "highly_engaged" in await segmentation.classify(customer)

    @pytest.mark.asyncio
    async def test_business_and_loyalty_labels(self, segmentation, customer_factory):
        customer = customer_factory("biz", type=CustomerType.BUSINESS, loyalty_tier=LoyaltyTier.GOLD)

        segments = await segmentation.classify(customer)

        assert "business_account" in segments
        assert "loyalty_gold" in segments
        assert "new_customer" in segments

    @pytest.mark.asyncio
    async def test_message_count_cached_per_customer(self, segmentation, customer_factory, messages):
        messages.counts = {"a": 60, "b": 0}

        assert "highly_engaged" in await segmentation.classify(customer_factory("a"))
        assert "low_engagement" in await segmentation.classify(customer_factory("b"))
        await segmentation.compute(customer_factory("a"))

        assert messages.calls == ["a", "b"]


class TestRuleFailures:
    """Rule errors surface; nothing partial is cached."""

    def _engine(self, cache, customers, orders, messages, settings, error):
        return SegmentationEngine(cache, customers, orders, messages, settings=settings, rules=(_FailingRule(error),))

    @pytest.mark.asyncio
    async def test_rule_error_wrapped_in_classification_error(self, cache, customers, orders, messages, settings, customer):
        engine = self._engine(cache, customers, orders, messages, settings, RuntimeError("boom"))

        with pytest.raises(ClassificationError):
            await engine.classify(customer)
        assert await cache.get(segments_cache_key("cust-1")) is None

    @pytest.mark.asyncio
    async def test_data_access_error_propagates_unchanged(self, cache, customers, orders, messages, settings, customer):
        engine = self._engine(cache, customers, orders, messages, settings, DataAccessError("messages", "count"))

        with pytest.raises(DataAccessError):
            await engine.classify(customer)


class TestRefresh:
    """refresh() persists the snapshot and invalidates the cache."""

    @pytest.mark.asyncio
    async def test_refresh_persists_and_invalidates(self, segmentation, customers, cache, bus):
        await cache.set_with_ttl(segments_cache_key("cust-1"), ["stale"], 3600)

        segments = await segmentation.refresh("cust-1")

        assert customers.segment_updates == [("cust-1", segments)]
        assert customers.customers["cust-1"].segments == segments
        assert await cache.get(segments_cache_key("cust-1")) is None
        assert bus.topics() == ["customer:segments"]

    @pytest.mark.asyncio
    async def test_refresh_unknown_customer(self, segmentation):
        with pytest.raises(EntityNotFoundException):
            await segmentation.refresh("ghost")

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_snapshot(self, cache, customers, orders, messages, settings, customer):
        customer.segments = ["previous"]
        engine = SegmentationEngine(
            cache, customers, orders, messages, settings=settings, rules=(_FailingRule(RuntimeError("boom")),)
        )

        with pytest.raises(ClassificationError):
            await engine.refresh("cust-1")
        assert customers.customers["cust-1"].segments == ["previous"]
        assert customers.segment_updates == []
