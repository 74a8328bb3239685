"""Retention domain services."""

from app.domains.retention.domain.services.segmentation_rules import (
    CustomerHistory,
    EngagementLevelRule,
    MessageCountLookup,
    PurchaseFrequencyRule,
    PurchaseRecencyRule,
    SegmentationRule,
    SpendingLevelRule,
    default_rules,
)

__all__ = [
    "CustomerHistory",
    "SegmentationRule",
    "MessageCountLookup",
    "PurchaseFrequencyRule",
    "SpendingLevelRule",
    "EngagementLevelRule",
    "PurchaseRecencyRule",
    "default_rules",
]
