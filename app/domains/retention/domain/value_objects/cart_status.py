"""
Cart Status Value Objects

Lifecycle of a cart under recovery and the responses reported for recovery
messages.
"""

from app.core.domain import StatusEnum


class CartStatus(StatusEnum):
    """
    Cart lifecycle states.

    Valid transitions:
    - ACTIVE -> ABANDONED
    - ABANDONED -> ACTIVE, CONVERTED
    - any -> EXPIRED (external TTL policy)
    """

    ACTIVE = "active"
    ABANDONED = "abandoned"
    CONVERTED = "converted"
    EXPIRED = "expired"

    def can_transition_to(self, new_status: "CartStatus") -> bool:
        """Check if transition to new status is valid."""
        if new_status == CartStatus.EXPIRED:
            return True
        allowed = {
            "active": ["abandoned", "converted"],
            "abandoned": ["active", "converted"],
            "converted": [],
            "expired": [],
        }
        return new_status.value in allowed.get(self.value, [])

    def is_terminal(self) -> bool:
        return self in (CartStatus.CONVERTED, CartStatus.EXPIRED)


class RecoveryResponse(StatusEnum):
    """Customer response reported for a recovery message."""

    NONE = "none"
    OPENED = "opened"
    CLICKED = "clicked"
    CONVERTED = "converted"


class DeliveryStatus(StatusEnum):
    """What the core knows about a dispatched recovery message."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
