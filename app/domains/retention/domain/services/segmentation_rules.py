"""
Segmentation Rules

Each rule maps a customer plus its order history to zero or more segment
labels. Rules are independent; the engine unions their outputs. The default
set is a fixed tuple so it can be inspected and tested rule by rule.
"""

import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from app.domains.retention.domain.entities import Customer, Order

SECONDS_PER_DAY = 24 * 60 * 60

MessageCountLookup = Callable[[str], Awaitable[int]]


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from `start` to `end` (floored)."""
    return math.floor((as_utc(end) - as_utc(start)).total_seconds() / SECONDS_PER_DAY)


@dataclass(frozen=True)
class CustomerHistory:
    """Order history of one customer, oldest first, evaluated at `now`."""

    orders: list[Order] = field(default_factory=list)
    now: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def first_order(self) -> Order | None:
        return min(self.orders, key=lambda o: as_utc(o.created_at)) if self.orders else None


@runtime_checkable
class SegmentationRule(Protocol):
    """A named, side-effect-free classification rule."""

    name: str

    async def evaluate(self, customer: Customer, history: CustomerHistory) -> list[str]:
        ...


class PurchaseFrequencyRule:
    """Orders per day since the first purchase."""

    name = "purchase_frequency"

    async def evaluate(self, customer: Customer, history: CustomerHistory) -> list[str]:
        first_order = history.first_order
        if first_order is None:
            return ["new_customer"]

        days = whole_days_between(first_order.created_at, history.now)
        # Orders placed within the first day count as an unbounded rate
        frequency = len(history.orders) / days if days > 0 else math.inf

        if frequency >= 0.5:
            return ["frequent_buyer"]
        if frequency >= 0.2:
            return ["regular_customer"]
        return ["occasional_buyer"]


class SpendingLevelRule:
    """Lifetime spend bands."""

    name = "spending_level"

    async def evaluate(self, customer: Customer, history: CustomerHistory) -> list[str]:
        total_spent = customer.metrics.total_spent
        if total_spent >= 10000:
            return ["high_value"]
        if total_spent >= 5000:
            return ["medium_value"]
        return ["low_value"]


class EngagementLevelRule:
    """Message volume, plus WhatsApp reachability."""

    name = "engagement_level"

    def __init__(self, message_count: MessageCountLookup):
        self._message_count = message_count

    async def evaluate(self, customer: Customer, history: CustomerHistory) -> list[str]:
        count = await self._message_count(str(customer.id))
        if count > 50:
            labels = ["highly_engaged"]
        elif count > 20:
            labels = ["engaged"]
        else:
            labels = ["low_engagement"]

        if customer.contact_preferences.get("whatsapp") is True:
            labels.append("whatsapp_enabled")
        return labels


class PurchaseRecencyRule:
    """Days since the last purchase."""

    name = "purchase_recency"

    async def evaluate(self, customer: Customer, history: CustomerHistory) -> list[str]:
        last_purchase = customer.metrics.last_purchase_date
        if last_purchase is None:
            return ["never_purchased"]

        days = whole_days_between(last_purchase, history.now)
        if days <= 30:
            return ["active"]
        if days <= 90:
            return ["at_risk"]
        return ["inactive"]


def default_rules(message_count: MessageCountLookup) -> tuple[SegmentationRule, ...]:
    """The four default rules, in evaluation order."""
    return (
        PurchaseFrequencyRule(),
        SpendingLevelRule(),
        EngagementLevelRule(message_count),
        PurchaseRecencyRule(),
    )
