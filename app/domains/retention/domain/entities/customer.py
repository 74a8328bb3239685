"""
Customer Entity for the Retention Domain

Read-mostly view of a customer: profile, contact preferences, purchase
metrics and the last persisted segment snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.core.domain import AggregateRoot, StatusEnum


class CustomerType(StatusEnum):
    """Kind of account."""

    INDIVIDUAL = "individual"
    BUSINESS = "business"


class LoyaltyTier(StatusEnum):
    """Loyalty program tiers."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


@dataclass
class CustomerMetrics:
    """Purchase metrics maintained on order completion."""

    total_orders: int = 0
    total_spent: float = 0.0
    average_order_value: float = 0.0
    first_purchase_date: datetime | None = None
    last_purchase_date: datetime | None = None


@dataclass
class Customer(AggregateRoot[str]):
    """
    Customer aggregate as seen by the retention core.

    Example:
        ```python
        customer = Customer(
            id="c-1",
            first_name="Ana",
            last_name="Gómez",
            contact_preferences={"email": True, "whatsapp": True},
        )
        customer.allows_channel("whatsapp")  # True
        ```
    """

    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    type: CustomerType = CustomerType.INDIVIDUAL
    loyalty_tier: LoyaltyTier | None = LoyaltyTier.BRONZE
    metrics: CustomerMetrics = field(default_factory=CustomerMetrics)
    contact_preferences: dict[str, bool] = field(
        default_factory=lambda: {
            "email": True,
            "sms": False,
            "whatsapp": False,
        }
    )
    segments: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        """First and last name joined, skipping blanks."""
        return " ".join(name for name in (self.first_name, self.last_name) if name)

    @property
    def is_business(self) -> bool:
        return self.type == CustomerType.BUSINESS

    def allows_channel(self, channel: str) -> bool:
        """
        Whether the customer accepts messages on `channel`.

        Only an explicit opt-out (False) blocks a channel.
        """
        return self.contact_preferences.get(channel) is not False

    def contact_for(self, channel: str) -> str | None:
        """Recipient address for a delivery channel."""
        if channel == "email":
            return self.email
        if channel in ("whatsapp", "sms"):
            return self.phone
        return None

    def record_order(self, total: float, placed_at: datetime) -> None:
        """
        Update purchase metrics for a completed order.

        Args:
            total: Order total
            placed_at: Order creation time
        """
        self.metrics.total_orders += 1
        self.metrics.total_spent += total
        self.metrics.average_order_value = self.metrics.total_spent / self.metrics.total_orders
        self.metrics.last_purchase_date = placed_at
        if self.metrics.first_purchase_date is None:
            self.metrics.first_purchase_date = placed_at
        self.touch()

    def replace_segments(self, segments: list[str]) -> None:
        """Store a freshly computed segment snapshot."""
        self.segments = sorted(set(segments))
        self.touch()
