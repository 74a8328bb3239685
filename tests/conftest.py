"""
Shared pytest fixtures for all tests.

Provides an in-memory cache driven by a controllable clock, in-memory fake
repositories for the retention ports, recording collaborators (dispatcher,
notification bus) and sample customers, orders, carts and templates.
"""

import copy
import os
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from app.config.experiments import ExperimentRegistry, DEFAULT_EXPERIMENTS
from app.config.settings import Settings
from app.core.interfaces.messaging import DispatchResult
from app.domains.retention.application.services import (
    CartRecoveryOrchestrator,
    ExperimentService,
    RecoveryJobQueue,
    RecoveryLinkService,
    SegmentationEngine,
)
from app.domains.retention.domain.entities import (
    CART_RECOVERY_CATEGORY,
    Cart,
    CartItem,
    ChannelContent,
    Customer,
    CustomerMetrics,
    MessageTemplate,
    Order,
    OrderItem,
    OrderStatus,
)
from app.domains.retention.domain.value_objects import CartStatus, GroupBy, RevenueBucket
from app.repositories.in_memory_cache import InMemoryCache

# Ensure test environment
os.environ["ENVIRONMENT"] = "test"

NOW = datetime(2024, 6, 12, 15, 0, tzinfo=UTC)


# ============================================================================
# CLOCK AND CACHE
# ============================================================================


class FakeClock:
    """Controllable clock; call it for a datetime, use `epoch` for seconds."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def epoch(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCache:
    return InMemoryCache(clock=clock.epoch)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        CACHE_BACKEND="in_memory",
        FRONTEND_URL="https://shop.test",
        RECOVERY_TOKEN_SECRET="test-secret",
        BACKGROUND_SERVICES_ENABLED=False,
    )


# ============================================================================
# FAKE REPOSITORIES
# ============================================================================


class FakeCustomerRepository:
    def __init__(self, customers: list[Customer] | None = None):
        self.customers = {str(c.id): c for c in customers or []}
        self.segment_updates: list[tuple[str, list[str]]] = []
        self.metric_updates: list[tuple[str, CustomerMetrics]] = []

    def add(self, customer: Customer) -> Customer:
        self.customers[str(customer.id)] = customer
        return customer

    async def get_by_id(self, customer_id: str) -> Customer | None:
        return self.customers.get(customer_id)

    async def update_metrics(self, customer_id: str, metrics: CustomerMetrics) -> None:
        self.metric_updates.append((customer_id, copy.copy(metrics)))
        self.customers[customer_id].metrics = copy.copy(metrics)

    async def update_segments(self, customer_id: str, segments: list[str]) -> None:
        self.segment_updates.append((customer_id, list(segments)))
        self.customers[customer_id].replace_segments(segments)

    async def get_summary(self) -> dict[str, Any]:
        customers = list(self.customers.values())
        distribution: dict[str, int] = {}
        for customer in customers:
            for segment in customer.segments:
                distribution[segment] = distribution.get(segment, 0) + 1
        return {
            "total_customers": len(customers),
            "average_lifetime_value": (
                sum(c.metrics.total_spent for c in customers) / len(customers) if customers else 0.0
            ),
            "segment_distribution": distribution,
        }


class FakeOrderRepository:
    def __init__(self, orders: list[Order] | None = None):
        self.orders = list(orders or [])
        self.revenue_buckets: list[RevenueBucket] = []
        self.aggregate_calls = 0

    def add(self, order: Order) -> Order:
        self.orders.append(order)
        return order

    async def get_by_customer(self, customer_id: str, limit: int | None = None, newest_first: bool = False):
        orders = sorted(
            (o for o in self.orders if o.customer_id == customer_id),
            key=lambda o: o.created_at,
            reverse=newest_first,
        )
        return orders[:limit] if limit is not None else orders

    async def aggregate_revenue(self, start: datetime, end: datetime, group_by: GroupBy) -> list[RevenueBucket]:
        self.aggregate_calls += 1
        return list(self.revenue_buckets)

    async def get_order_count_summary(self) -> dict[str, float]:
        per_customer: dict[str, int] = {}
        for order in self.orders:
            per_customer[order.customer_id] = per_customer.get(order.customer_id, 0) + 1
        if not per_customer:
            return {"average_orders_per_customer": 0.0, "repeat_purchase_rate": 0.0}
        counts = list(per_customer.values())
        return {
            "average_orders_per_customer": sum(counts) / len(counts),
            "repeat_purchase_rate": sum(1 for c in counts if c > 1) / len(counts),
        }


class FakeCartRepository:
    """Stores copies, so callers only see changes they saved."""

    def __init__(self, carts: list[Cart] | None = None):
        self.carts: dict[str, Cart] = {}
        self.saves = 0
        for cart in carts or []:
            self.carts[str(cart.id)] = copy.deepcopy(cart)

    def add(self, cart: Cart) -> Cart:
        self.carts[str(cart.id)] = copy.deepcopy(cart)
        return cart

    async def get_by_id(self, cart_id: str) -> Cart | None:
        cart = self.carts.get(cart_id)
        return copy.deepcopy(cart) if cart else None

    async def save(self, cart: Cart) -> Cart:
        cart.recalculate_total()
        self.carts[str(cart.id)] = copy.deepcopy(cart)
        self.saves += 1
        return cart

    async def find_abandonment_candidates(self, inactive_since: datetime) -> list[Cart]:
        return [
            copy.deepcopy(cart)
            for cart in self.carts.values()
            if cart.status == CartStatus.ACTIVE and cart.items and cart.last_activity < inactive_since
        ]

    async def get_status_summary(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        summary: dict[str, dict[str, Any]] = {}
        for cart in self.carts.values():
            if start <= cart.created_at <= end:
                row = summary.setdefault(cart.status.value, {"status": cart.status.value, "count": 0, "value": 0.0})
                row["count"] += 1
                row["value"] += cart.total_value
        return list(summary.values())

    async def get_recovery_summary(self) -> list[dict[str, Any]]:
        return []


class FakeTemplateRepository:
    def __init__(self, templates: list[MessageTemplate] | None = None):
        self.templates = {str(t.id): t for t in templates or []}

    async def find_one(self, category: str, channel: str, metadata: dict[str, Any]) -> MessageTemplate | None:
        for template in self.templates.values():
            if (
                template.category == category
                and template.supports(channel)
                and all(template.metadata.get(key) == value for key, value in metadata.items())
            ):
                return template
        return None

    async def get_by_id(self, template_id: str) -> MessageTemplate | None:
        return self.templates.get(template_id)


class FakeMessageRepository:
    def __init__(self, counts: dict[str, int] | None = None, channels: dict[str, dict[str, int]] | None = None):
        self.counts = counts or {}
        self.channels = channels or {}
        self.calls: list[str] = []

    async def count_by_customer(self, customer_id: str) -> int:
        self.calls.append(customer_id)
        return self.counts.get(customer_id, 0)

    async def count_by_channel(self, customer_id: str) -> dict[str, int]:
        return self.channels.get(customer_id, {})


# ============================================================================
# RECORDING COLLABORATORS
# ============================================================================


class RecordingDispatcher:
    """Records every send; channels in `reject` are answered with success=False."""

    def __init__(self, reject: set[str] | None = None, raise_on: dict[str, Exception] | None = None):
        self.sent: list[dict[str, Any]] = []
        self.reject = reject or set()
        self.raise_on = raise_on or {}

    async def send(self, channel, recipient, template_id, variables, content=None) -> DispatchResult:
        if channel in self.raise_on:
            raise self.raise_on[channel]
        self.sent.append(
            {
                "channel": channel,
                "recipient": recipient,
                "template_id": template_id,
                "variables": variables,
                "content": content,
            }
        )
        if channel in self.reject:
            return DispatchResult(success=False, error="rejected")
        return DispatchResult(success=True, message_id=f"msg-{len(self.sent)}")


class RecordingBus:
    def __init__(self):
        self.published: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        self.published.append((topic, payload))
        return 1

    def topics(self) -> list[str]:
        return [topic for topic, _ in self.published]


# ============================================================================
# SAMPLE DATA
# ============================================================================


def make_customer(customer_id: str = "cust-1", **overrides) -> Customer:
    data: dict[str, Any] = {
        "id": customer_id,
        "first_name": "Ana",
        "last_name": "Gómez",
        "email": "ana@example.com",
        "phone": "+5491112345678",
        "contact_preferences": {"email": True, "whatsapp": True},
    }
    data.update(overrides)
    return Customer(**data)


def make_order(
    order_id: str,
    customer_id: str = "cust-1",
    total: float = 100.0,
    created_at: datetime = NOW,
    status: OrderStatus = OrderStatus.COMPLETED,
    items: list[OrderItem] | None = None,
    **overrides,
) -> Order:
    return Order(
        id=order_id,
        customer_id=customer_id,
        total=total,
        status=status,
        items=items if items is not None else [OrderItem(product_id="p-1", quantity=1, price=total)],
        created_at=created_at,
        **overrides,
    )


def make_cart(
    cart_id: str = "cart-1",
    customer_id: str = "cust-1",
    value: float = 1200.0,
    idle_minutes: int = 45,
    now: datetime = NOW,
) -> Cart:
    return Cart(
        id=cart_id,
        customer_id=customer_id,
        items=[CartItem(product_id="p-1", quantity=2, price=value / 2, added_at=now - timedelta(hours=2))],
        last_activity=now - timedelta(minutes=idle_minutes),
        created_at=now - timedelta(hours=2),
    )


def make_template(template_id: str, channel: str, style: str = "persuasive", discount: str = "none") -> MessageTemplate:
    return MessageTemplate(
        id=template_id,
        name=f"recovery_{channel}_{style}_{discount}",
        category=CART_RECOVERY_CATEGORY,
        channels=[channel],
        content={
            channel: ChannelContent(
                body="Hola {{customerName}}, tu carrito de {{itemCount}} productos (${{cartTotal}}) te espera: {{recoveryLink}}",
                subject="{{customerName}}, olvidaste algo" if channel == "email" else None,
            )
        },
        metadata={"style": style, "discount_offer": discount},
    )


@pytest.fixture
def customer_factory():
    return make_customer


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def cart_factory():
    return make_cart


@pytest.fixture
def template_factory():
    return make_template


@pytest.fixture
def customer() -> Customer:
    return make_customer(metrics=CustomerMetrics(total_orders=12, total_spent=12500.0, last_purchase_date=NOW))


@pytest.fixture
def customers(customer) -> FakeCustomerRepository:
    return FakeCustomerRepository([customer])


@pytest.fixture
def orders() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def carts() -> FakeCartRepository:
    return FakeCartRepository()


@pytest.fixture
def templates() -> FakeTemplateRepository:
    return FakeTemplateRepository(
        [
            make_template("tpl-wa", "whatsapp"),
            make_template("tpl-email", "email"),
        ]
    )


@pytest.fixture
def messages() -> FakeMessageRepository:
    return FakeMessageRepository()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


# ============================================================================
# SERVICES
# ============================================================================


@pytest.fixture
def experiment_registry() -> ExperimentRegistry:
    return ExperimentRegistry(list(DEFAULT_EXPERIMENTS))


@pytest.fixture
def experiments(cache, experiment_registry) -> ExperimentService:
    """Draw 0.1 always picks the first variant: immediate, persuasive, none."""
    return ExperimentService(cache, experiment_registry, draw=lambda: 0.1)


@pytest.fixture
def segmentation(cache, customers, orders, messages, settings, bus, clock) -> SegmentationEngine:
    return SegmentationEngine(
        cache, customers, orders, messages, settings=settings, notification_bus=bus, clock=clock
    )


@pytest.fixture
def job_queue(cache, settings) -> RecoveryJobQueue:
    return RecoveryJobQueue(cache, settings)


@pytest.fixture
def orchestrator(
    cache, carts, customers, templates, segmentation, experiments, dispatcher, job_queue, settings, bus, clock
) -> CartRecoveryOrchestrator:
    return CartRecoveryOrchestrator(
        cache,
        carts,
        customers,
        templates,
        segmentation,
        experiments,
        dispatcher,
        job_queue,
        settings=settings,
        notification_bus=bus,
        links=RecoveryLinkService(settings),
        clock=clock,
    )
