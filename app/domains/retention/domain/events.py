"""
Retention Domain Events

Published to the notification bus under their `topic`.
"""

from dataclasses import dataclass, field

from app.core.domain import DomainEvent


@dataclass(frozen=True)
class SaleRecorded(DomainEvent):
    """A completed order entered the real-time sales window."""

    order_id: str = ""
    customer_id: str | None = None
    amount: float = 0.0

    topic: str = field(default="sales:new", init=False)


@dataclass(frozen=True)
class CartAbandoned(DomainEvent):
    """A cart crossed the inactivity threshold and got a recovery plan."""

    cart_id: str = ""
    customer_id: str = ""
    total_value: float = 0.0
    attempts_planned: int = 0

    topic: str = field(default="cart:abandoned", init=False)


@dataclass(frozen=True)
class CartConverted(DomainEvent):
    """A recovery message led to a conversion."""

    cart_id: str = ""
    customer_id: str = ""
    attempt_id: str = ""
    total_value: float = 0.0

    topic: str = field(default="cart:converted", init=False)


@dataclass(frozen=True)
class SegmentsRefreshed(DomainEvent):
    """A customer's persisted segments were recomputed."""

    customer_id: str = ""
    segments: tuple[str, ...] = ()

    topic: str = field(default="customer:segments", init=False)
