"""
Recovery Plan Value Objects

Cache-resident artifacts describing how an abandoned cart will be chased.
Stored in Redis as JSON, hence pydantic models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.core.domain import generate_uuid_str


class RecoveryStrategy(BaseModel):
    """Experiment variants and allowed channels chosen for one abandonment episode."""

    timing: str | None = None
    message_style: str | None = None
    discount_offer: str | None = None
    channels: list[str] = Field(default_factory=list)

    @property
    def variants(self) -> dict[str, str | None]:
        return {
            "timing": self.timing,
            "message_style": self.message_style,
            "discount_offer": self.discount_offer,
        }


class RecoveryAttempt(BaseModel):
    """One scheduled step of a recovery plan."""

    index: int
    scheduled_for: datetime
    channels: list[str]
    templates: dict[str, str] = Field(default_factory=dict)


class RecoveryPlan(BaseModel):
    """
    Recovery plan for one abandonment episode of one cart.

    Replaced, never appended to, when the cart is abandoned again.
    """

    plan_id: str = Field(default_factory=generate_uuid_str)
    cart_id: str
    customer_id: str
    abandoned_at: datetime
    strategy: RecoveryStrategy
    attempts: list[RecoveryAttempt] = Field(default_factory=list)

    def attempt(self, index: int) -> RecoveryAttempt | None:
        return next((a for a in self.attempts if a.index == index), None)


class RecoveryJob(BaseModel):
    """Durable pointer to a plan attempt waiting to be executed."""

    cart_id: str
    plan_id: str
    attempt_index: int
    scheduled_for: datetime

    @property
    def member(self) -> str:
        """Sorted-set member identifying the job."""
        return f"{self.cart_id}:{self.attempt_index}"
