"""
Retention Application Ports

Interface definitions (ports) for the document store collections the
retention core reads and writes. Uses Protocol for structural typing.
Implementations raise DataAccessError when the store is unavailable.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from app.domains.retention.domain.entities import Cart, Customer, CustomerMetrics, MessageTemplate, Order
from app.domains.retention.domain.value_objects import GroupBy, RevenueBucket


@runtime_checkable
class ICustomerRepository(Protocol):
    """
    Interface for customer repository.

    Customers are owned by the CRUD layer; the core only reads them and
    writes back purchase metrics and segments.
    """

    async def get_by_id(self, customer_id: str) -> Customer | None:
        """Get customer by ID"""
        ...

    async def update_metrics(self, customer_id: str, metrics: CustomerMetrics) -> None:
        """Persist a customer's purchase metrics"""
        ...

    async def update_segments(self, customer_id: str, segments: list[str]) -> None:
        """Persist a customer's segment snapshot"""
        ...

    async def get_summary(self) -> dict[str, Any]:
        """
        Aggregate customer metrics.

        Returns:
            {"total_customers": int, "average_lifetime_value": float,
             "segment_distribution": {label: count}}
        """
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """Interface for order repository."""

    async def get_by_customer(
        self,
        customer_id: str,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[Order]:
        """Get a customer's orders ordered by creation time"""
        ...

    async def aggregate_revenue(
        self,
        start: datetime,
        end: datetime,
        group_by: GroupBy,
    ) -> list[RevenueBucket]:
        """Group revenue-counting orders created in [start, end] by calendar bucket"""
        ...

    async def get_order_count_summary(self) -> dict[str, float]:
        """
        Aggregate orders per customer over customers with at least one order.

        Returns:
            {"average_orders_per_customer": float, "repeat_purchase_rate": float}
        """
        ...


@runtime_checkable
class ICartRepository(Protocol):
    """Interface for cart repository."""

    async def get_by_id(self, cart_id: str) -> Cart | None:
        """Get cart by ID"""
        ...

    async def save(self, cart: Cart) -> Cart:
        """Persist a cart, recomputing its total value"""
        ...

    async def find_abandonment_candidates(self, inactive_since: datetime) -> list[Cart]:
        """Active, non-empty carts whose last activity is before `inactive_since`"""
        ...

    async def get_status_summary(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Per-status count and total value of carts created in [start, end]"""
        ...

    async def get_recovery_summary(self) -> list[dict[str, Any]]:
        """Per-channel count and value of converted carts that had recovery attempts"""
        ...


@runtime_checkable
class ITemplateRepository(Protocol):
    """Interface for message template repository."""

    async def find_one(
        self,
        category: str,
        channel: str,
        metadata: dict[str, Any],
    ) -> MessageTemplate | None:
        """Find a template by category, channel and metadata tags"""
        ...

    async def get_by_id(self, template_id: str) -> MessageTemplate | None:
        """Get template by ID"""
        ...


@runtime_checkable
class IMessageRepository(Protocol):
    """Interface for the customer message history."""

    async def count_by_customer(self, customer_id: str) -> int:
        """Number of messages exchanged with a customer"""
        ...

    async def count_by_channel(self, customer_id: str) -> dict[str, int]:
        """Messages exchanged with a customer, per channel"""
        ...


__all__ = [
    "ICustomerRepository",
    "IOrderRepository",
    "ICartRepository",
    "ITemplateRepository",
    "IMessageRepository",
]
