"""
Cart Entity for the Retention Domain

A cart owned by the retention core while it is active or abandoned.
`total_value` always equals the sum of price x quantity of its items.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from app.core.domain import AggregateRoot, EntityNotFoundException, InvalidOperationException, generate_uuid_str
from app.domains.retention.domain.value_objects.cart_status import (
    CartStatus,
    DeliveryStatus,
    RecoveryResponse,
)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


@dataclass
class CartItem:
    """Product line in a cart."""

    product_id: str
    quantity: int
    price: float
    added_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Cart item quantity must be at least 1")


@dataclass
class RecoveryAttemptRecord:
    """Log entry for one recovery message sent on one channel."""

    channel: str
    template_id: str | None
    sent_at: datetime
    id: str = field(default_factory=generate_uuid_str)
    status: DeliveryStatus = DeliveryStatus.SENT
    response: RecoveryResponse = RecoveryResponse.NONE
    message_id: str | None = None


@dataclass
class Cart(AggregateRoot[str]):
    """
    Shopping cart aggregate.

    Example:
        ```python
        cart = Cart(id="cart-1", customer_id="c-1")
        cart.add_item("p-1", quantity=2, price=50.0)
        cart.total_value  # 100.0
        cart.abandon()
        ```
    """

    customer_id: str = ""
    items: list[CartItem] = field(default_factory=list)
    status: CartStatus = CartStatus.ACTIVE
    total_value: float = 0.0
    source: str = "web"
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))
    abandoned_at: datetime | None = None
    recovery_attempts: list[RecoveryAttemptRecord] = field(default_factory=list)

    def __post_init__(self):
        self.recalculate_total()

    def recalculate_total(self) -> float:
        """Recompute `total_value` from the items."""
        self.total_value = sum(item.price * item.quantity for item in self.items)
        return self.total_value

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def _find_item(self, product_id: str) -> CartItem | None:
        return next((item for item in self.items if item.product_id == product_id), None)

    def _mutated(self, now: datetime | None) -> None:
        self.last_activity = _now(now)
        self.recalculate_total()
        self.touch()

    # Item management

    def add_item(self, product_id: str, quantity: int, price: float, now: datetime | None = None) -> None:
        """Add a product, merging quantities when it is already in the cart."""
        existing = self._find_item(product_id)
        if existing:
            existing.quantity += quantity
        else:
            self.items.append(CartItem(product_id=product_id, quantity=quantity, price=price, added_at=_now(now)))
        self._mutated(now)

    def remove_item(self, product_id: str, now: datetime | None = None) -> None:
        self.items = [item for item in self.items if item.product_id != product_id]
        self._mutated(now)

    def update_quantity(self, product_id: str, quantity: int, now: datetime | None = None) -> None:
        item = self._find_item(product_id)
        if item is None:
            raise EntityNotFoundException("CartItem", product_id, "Item not found in cart")
        if quantity < 1:
            raise ValueError("Cart item quantity must be at least 1")
        item.quantity = quantity
        self._mutated(now)

    # Lifecycle

    def is_abandonment_candidate(self, threshold: timedelta, now: datetime | None = None) -> bool:
        """Active, non-empty and idle for longer than `threshold`."""
        return (
            self.status == CartStatus.ACTIVE
            and not self.is_empty
            and _now(now) - self.last_activity > threshold
        )

    def abandon(self, now: datetime | None = None) -> bool:
        """
        Mark an active cart as abandoned.

        Returns:
            True if the status changed, False if the cart was not active
        """
        if self.status != CartStatus.ACTIVE:
            return False
        self.status = CartStatus.ABANDONED
        self.abandoned_at = _now(now)
        self.touch()
        return True

    def recover(self, now: datetime | None = None) -> bool:
        """The customer resumed shopping on an abandoned cart."""
        if self.status != CartStatus.ABANDONED:
            return False
        self.status = CartStatus.ACTIVE
        self.abandoned_at = None
        self.last_activity = _now(now)
        self.touch()
        return True

    def convert(self) -> None:
        if not self.status.can_transition_to(CartStatus.CONVERTED):
            raise InvalidOperationException("convert", self.status.value)
        self.status = CartStatus.CONVERTED
        self.touch()

    def expire(self) -> None:
        self.status = CartStatus.EXPIRED
        self.touch()

    # Recovery log

    def log_recovery_attempt(
        self,
        channel: str,
        template_id: str | None,
        message_id: str | None = None,
        now: datetime | None = None,
    ) -> RecoveryAttemptRecord:
        record = RecoveryAttemptRecord(
            channel=channel,
            template_id=template_id,
            sent_at=_now(now),
            message_id=message_id,
        )
        self.recovery_attempts.append(record)
        self.touch()
        return record

    def find_recovery_attempt(self, attempt_id: str) -> RecoveryAttemptRecord | None:
        return next((a for a in self.recovery_attempts if a.id == attempt_id), None)

    def update_recovery_response(self, attempt_id: str, response: RecoveryResponse) -> bool:
        """
        Record the customer's response to a recovery message.

        A `converted` response also converts the cart.

        Returns:
            True if the attempt exists
        """
        attempt = self.find_recovery_attempt(attempt_id)
        if attempt is None:
            return False
        attempt.response = response
        if response == RecoveryResponse.CONVERTED and self.status != CartStatus.CONVERTED:
            self.convert()
        self.touch()
        return True
