"""
Customer Behavior Analysis

Purchase patterns, product preferences, engagement and seasonality for a
single customer, computed from their most recent orders.
"""

import logging
from collections import Counter
from typing import Any

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import EntityNotFoundException
from app.core.interfaces.cache import ICache
from app.domains.retention.application.ports import (
    ICustomerRepository,
    IMessageRepository,
    IOrderRepository,
)
from app.domains.retention.domain.entities import Order
from app.domains.retention.domain.services.segmentation_rules import as_utc

logger = logging.getLogger(__name__)

ANALYZED_ORDER_LIMIT = 100


def price_range(price: float) -> str:
    if price <= 50:
        return "budget"
    if price <= 200:
        return "mid_range"
    return "premium"


def purchase_patterns(orders: list[Order]) -> dict[str, Any]:
    """Order value, payment method, weekday and purchase interval statistics."""
    if not orders:
        return {
            "average_order_value": 0.0,
            "payment_methods": {},
            "purchase_days": {},
            "days_between_purchases": [],
        }

    chronological = sorted(orders, key=lambda o: as_utc(o.created_at))
    intervals = [
        (as_utc(current.created_at) - as_utc(previous.created_at)).days
        for previous, current in zip(chronological, chronological[1:])
    ]

    return {
        "average_order_value": sum(o.total for o in orders) / len(orders),
        "payment_methods": dict(Counter(o.payment_method for o in orders if o.payment_method)),
        "purchase_days": dict(Counter(as_utc(o.created_at).strftime("%A") for o in orders)),
        "days_between_purchases": intervals,
    }


def product_preferences(orders: list[Order]) -> dict[str, dict[str, int]]:
    categories: Counter[str] = Counter()
    brands: Counter[str] = Counter()
    price_ranges: Counter[str] = Counter()

    for order in orders:
        for item in order.items:
            item_categories = item.categories or ([item.category] if item.category else [])
            categories.update(item_categories)
            if item.brand:
                brands[item.brand] += 1
            price_ranges[price_range(item.price)] += 1

    return {
        "categories": dict(categories),
        "brands": dict(brands),
        "price_ranges": dict(price_ranges),
    }


def seasonality(orders: list[Order]) -> dict[str, dict[str, int]]:
    months: Counter[str] = Counter()
    quarters: Counter[str] = Counter()
    for order in orders:
        placed = as_utc(order.created_at)
        months[placed.strftime("%B")] += 1
        quarters[f"Q{(placed.month - 1) // 3 + 1}"] += 1
    return {"months": dict(months), "quarters": dict(quarters)}


class BehaviorAnalysisService:
    """Per-customer behavior profile, cached for the segmentation TTL."""

    def __init__(
        self,
        cache: ICache,
        customer_repository: ICustomerRepository,
        order_repository: IOrderRepository,
        message_repository: IMessageRepository,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.customer_repository = customer_repository
        self.order_repository = order_repository
        self.message_repository = message_repository

    @staticmethod
    def cache_key(customer_id: str) -> str:
        return f"customer:{customer_id}:behavior"

    async def analyze_behavior(self, customer_id: str) -> dict[str, Any]:
        key = self.cache_key(customer_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        customer = await self.customer_repository.get_by_id(customer_id)
        if customer is None:
            raise EntityNotFoundException("Customer", customer_id)

        orders = await self.order_repository.get_by_customer(
            customer_id, limit=ANALYZED_ORDER_LIMIT, newest_first=True
        )
        message_count = await self.message_repository.count_by_customer(customer_id)
        channel_counts = await self.message_repository.count_by_channel(customer_id)

        analysis = {
            "customer_id": customer_id,
            "purchase_patterns": purchase_patterns(orders),
            "product_preferences": product_preferences(orders),
            "engagement": {
                "message_count": message_count,
                "channels": channel_counts,
            },
            "seasonality": seasonality(orders),
        }

        await self.cache.set_with_ttl(key, analysis, self.settings.SEGMENT_CACHE_TTL)
        logger.debug(f"Behavior analysis cached for customer {customer_id} ({len(orders)} orders)")
        return analysis
