"""
Segmentation Engine

Classifies customers into behavioral segments by running every registered
rule and unioning the labels. Classifications are cached for an hour; a
refresh recomputes, persists the snapshot on the customer and drops the
cached copy.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import ClassificationError, DataAccessError, EntityNotFoundException
from app.core.interfaces.cache import ICache
from app.core.interfaces.messaging import INotificationBus
from app.domains.retention.application.ports import (
    ICustomerRepository,
    IMessageRepository,
    IOrderRepository,
)
from app.domains.retention.domain.entities import Customer
from app.domains.retention.domain.events import SegmentsRefreshed
from app.domains.retention.domain.services.segmentation_rules import (
    CustomerHistory,
    SegmentationRule,
    default_rules,
)

logger = logging.getLogger(__name__)


def segments_cache_key(customer_id: str) -> str:
    return f"customer:{customer_id}:segments"


class MessageCountLookup:
    """
    Cached message count per customer, used by the engagement rule.

    Each customer has its own cache entry, so counts never leak between
    customers.
    """

    def __init__(self, cache: ICache, message_repository: IMessageRepository, ttl_seconds: int):
        self.cache = cache
        self.message_repository = message_repository
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def cache_key(customer_id: str) -> str:
        return f"customer:{customer_id}:messageCount"

    async def __call__(self, customer_id: str) -> int:
        key = self.cache_key(customer_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return int(cached)

        count = await self.message_repository.count_by_customer(customer_id)
        await self.cache.set_with_ttl(key, count, self.ttl_seconds)
        return count


class SegmentationEngine:
    """
    Rule-based customer classifier.

    Usage:
        engine = SegmentationEngine(cache, customers, orders, messages)
        labels = await engine.classify(customer)
        labels = await engine.refresh("customer-id")
    """

    def __init__(
        self,
        cache: ICache,
        customer_repository: ICustomerRepository,
        order_repository: IOrderRepository,
        message_repository: IMessageRepository,
        settings: Settings | None = None,
        rules: tuple[SegmentationRule, ...] | None = None,
        notification_bus: INotificationBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.customer_repository = customer_repository
        self.order_repository = order_repository
        self.notification_bus = notification_bus
        self.cache_ttl = self.settings.SEGMENT_CACHE_TTL
        self.message_count = MessageCountLookup(cache, message_repository, self.cache_ttl)
        self.rules = rules if rules is not None else default_rules(self.message_count)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def classify(self, customer: Customer) -> list[str]:
        """
        Segment labels for a customer, served from cache when fresh.

        Raises:
            DataAccessError: If the order history or the cache cannot be read
            ClassificationError: If any rule fails
        """
        key = segments_cache_key(str(customer.id))
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Segments cache hit for customer {customer.id}")
            return list(cached)

        segments = await self.compute(customer)
        await self.cache.set_with_ttl(key, segments, self.cache_ttl)
        return segments

    async def classify_by_id(self, customer_id: str) -> list[str]:
        customer = await self._get_customer(customer_id)
        return await self.classify(customer)

    async def compute(self, customer: Customer) -> list[str]:
        """Evaluate every rule without touching the classification cache."""
        orders = await self.order_repository.get_by_customer(str(customer.id))
        history = CustomerHistory(orders=orders, now=self._clock())

        segments: set[str] = set()
        for rule in self.rules:
            try:
                segments.update(await rule.evaluate(customer, history))
            except DataAccessError:
                raise
            except Exception as e:
                logger.error(f"Segmentation rule '{rule.name}' failed for customer {customer.id}: {e}")
                raise ClassificationError(customer.id, rule.name, f"Rule '{rule.name}' failed: {e}") from e

        if customer.is_business:
            segments.add("business_account")
        if customer.loyalty_tier:
            segments.add(f"loyalty_{customer.loyalty_tier.value}")

        return sorted(segments)

    async def refresh(self, customer_id: str) -> list[str]:
        """
        Recompute a customer's segments and persist them on the customer.

        The previous snapshot is left untouched if classification fails.
        """
        customer = await self._get_customer(customer_id)
        segments = await self.compute(customer)

        await self.customer_repository.update_segments(customer_id, segments)
        await self.cache.delete(segments_cache_key(customer_id))
        logger.info(f"Segments refreshed for customer {customer_id}: {segments}")

        if self.notification_bus is not None:
            event = SegmentsRefreshed(customer_id=customer_id, segments=tuple(segments))
            await self.notification_bus.publish(event.topic, event.to_dict())

        return segments

    async def _get_customer(self, customer_id: str) -> Customer:
        customer = await self.customer_repository.get_by_id(customer_id)
        if customer is None:
            raise EntityNotFoundException("Customer", customer_id)
        return customer
