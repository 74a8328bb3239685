"""Retention domain value objects."""

from app.domains.retention.domain.value_objects.cart_status import CartStatus, DeliveryStatus, RecoveryResponse
from app.domains.retention.domain.value_objects.recovery import (
    RecoveryAttempt,
    RecoveryJob,
    RecoveryPlan,
    RecoveryStrategy,
)
from app.domains.retention.domain.value_objects.sales import GroupBy, RealTimeStats, RevenueBucket, SalesEvent

__all__ = [
    "CartStatus",
    "DeliveryStatus",
    "RecoveryResponse",
    "RecoveryAttempt",
    "RecoveryJob",
    "RecoveryPlan",
    "RecoveryStrategy",
    "GroupBy",
    "RealTimeStats",
    "RevenueBucket",
    "SalesEvent",
]
