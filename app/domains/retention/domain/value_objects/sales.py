"""
Sales Analytics Value Objects
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.core.domain import StatusEnum


class GroupBy(StatusEnum):
    """Calendar bucket granularity for revenue analytics."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class SalesEvent(BaseModel):
    """A completed order as seen by the real-time window."""

    order_id: str
    customer_id: str | None = None
    amount: float
    item_count: int
    timestamp: float


class RealTimeStats(BaseModel):
    """Aggregates over the trailing real-time window."""

    total_sales: int = 0
    total_revenue: float = 0.0
    sales_per_minute: float = 0.0
    revenue_per_minute: float = 0.0
    window_seconds: int = 300
    orders: list[SalesEvent] = Field(default_factory=list)


class RevenueBucket(BaseModel):
    """Revenue for one calendar bucket."""

    period_start: datetime
    revenue: float
    orders: int
    average_order_value: float
    growth_rate: float = 0.0
