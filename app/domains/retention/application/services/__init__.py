"""
Retention Application Services

Use cases of the retention core:
- SegmentationEngine: rule-based customer classification
- RealTimeSalesWindow: trailing sales window and daily counters
- AnalyticsService: revenue buckets, customer and cart analytics
- ExperimentService: sticky A/B assignment and conversion tracking
- CartRecoveryOrchestrator: abandonment detection and recovery campaigns
- OrderCompletionHandler: fans a completed order out to the services above
"""

from app.domains.retention.application.services.analytics_service import AnalyticsService, apply_growth_rates
from app.domains.retention.application.services.behavior_analysis import BehaviorAnalysisService
from app.domains.retention.application.services.cart_recovery import (
    CartRecoveryOrchestrator,
    allowed_channels,
    plan_attempts,
)
from app.domains.retention.application.services.experiment_service import ExperimentService
from app.domains.retention.application.services.order_completion import OrderCompletionHandler
from app.domains.retention.application.services.recovery_jobs import RecoveryJobQueue
from app.domains.retention.application.services.recovery_links import RecoveryLinkService
from app.domains.retention.application.services.sales_window import RealTimeSalesWindow
from app.domains.retention.application.services.segmentation_engine import SegmentationEngine

__all__ = [
    "AnalyticsService",
    "apply_growth_rates",
    "BehaviorAnalysisService",
    "CartRecoveryOrchestrator",
    "allowed_channels",
    "plan_attempts",
    "ExperimentService",
    "OrderCompletionHandler",
    "RecoveryJobQueue",
    "RecoveryLinkService",
    "RealTimeSalesWindow",
    "SegmentationEngine",
]
