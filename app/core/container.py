"""
Dependency Injection Container

Wires the retention services to their concrete adapters: the cache, the
PostgreSQL session factory, the message dispatcher and the notification bus.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.config.experiments import ExperimentRegistry, load_experiment_registry
from app.config.settings import Settings, get_settings
from app.core.interfaces.cache import ICache
from app.core.interfaces.messaging import IMessageDispatcher, INotificationBus
from app.database.async_db import create_async_database_engine, create_session_factory
from app.domains.retention.application.services import (
    AnalyticsService,
    BehaviorAnalysisService,
    CartRecoveryOrchestrator,
    ExperimentService,
    OrderCompletionHandler,
    RealTimeSalesWindow,
    RecoveryJobQueue,
    RecoveryLinkService,
    SegmentationEngine,
)
from app.domains.retention.infrastructure.repositories import (
    SQLAlchemyCartRepository,
    SQLAlchemyCustomerRepository,
    SQLAlchemyMessageRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyTemplateRepository,
)
from app.integrations.messaging import HttpMessageDispatcher, RedisNotificationBus
from app.repositories import AsyncRedisCache, create_cache

logger = logging.getLogger(__name__)


class RetentionContainer:
    """
    Dependency Injection Container for the retention core.

    Shared resources (cache, engine, dispatcher) are created once; services
    are built lazily and cached.

    Usage:
        container = RetentionContainer()
        await container.initialize()
        await container.cart_recovery.run_abandonment_sweep()
        await container.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: ICache | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        dispatcher: IMessageDispatcher | None = None,
        notification_bus: INotificationBus | None = None,
        experiments: ExperimentRegistry | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache or create_cache(self.settings)
        self.experiment_registry = experiments or load_experiment_registry()
        self.dispatcher = dispatcher or HttpMessageDispatcher(self.settings)
        self.notification_bus = notification_bus

        self._engine: AsyncEngine | None = None
        self._session_factory = session_factory
        self._services: dict[str, object] = {}

        logger.info(f"RetentionContainer initialized (cache backend: {self.cache.backend.value})")

    async def initialize(self) -> None:
        """Connect the cache and attach the Redis notification bus when Redis is in use."""
        if isinstance(self.cache, AsyncRedisCache):
            await self.cache.connect()
            if self.notification_bus is None:
                self.notification_bus = RedisNotificationBus(await self.cache.get_client(), self.settings)
        if self.notification_bus is None:
            logger.info("No notification bus configured; real-time events will not be published")

    async def close(self) -> None:
        if isinstance(self.cache, AsyncRedisCache):
            await self.cache.close()
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        logger.info("RetentionContainer closed")

    # ============================================================
    # DATABASE
    # ============================================================

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._engine = create_async_database_engine(self.settings)
            self._session_factory = create_session_factory(self._engine)
        return self._session_factory

    def _service(self, name: str, factory):
        if name not in self._services:
            self._services[name] = factory()
        return self._services[name]

    # ============================================================
    # REPOSITORIES
    # ============================================================

    @property
    def customer_repository(self) -> SQLAlchemyCustomerRepository:
        return self._service("customers", lambda: SQLAlchemyCustomerRepository(self.session_factory))

    @property
    def order_repository(self) -> SQLAlchemyOrderRepository:
        return self._service("orders", lambda: SQLAlchemyOrderRepository(self.session_factory))

    @property
    def cart_repository(self) -> SQLAlchemyCartRepository:
        return self._service("carts", lambda: SQLAlchemyCartRepository(self.session_factory))

    @property
    def template_repository(self) -> SQLAlchemyTemplateRepository:
        return self._service("templates", lambda: SQLAlchemyTemplateRepository(self.session_factory))

    @property
    def message_repository(self) -> SQLAlchemyMessageRepository:
        return self._service("messages", lambda: SQLAlchemyMessageRepository(self.session_factory))

    # ============================================================
    # SERVICES
    # ============================================================

    @property
    def segmentation(self) -> SegmentationEngine:
        return self._service(
            "segmentation",
            lambda: SegmentationEngine(
                self.cache,
                self.customer_repository,
                self.order_repository,
                self.message_repository,
                settings=self.settings,
                notification_bus=self.notification_bus,
            ),
        )

    @property
    def behavior_analysis(self) -> BehaviorAnalysisService:
        return self._service(
            "behavior_analysis",
            lambda: BehaviorAnalysisService(
                self.cache,
                self.customer_repository,
                self.order_repository,
                self.message_repository,
                settings=self.settings,
            ),
        )

    @property
    def sales_window(self) -> RealTimeSalesWindow:
        return self._service(
            "sales_window",
            lambda: RealTimeSalesWindow(
                self.cache,
                self.customer_repository,
                settings=self.settings,
                notification_bus=self.notification_bus,
            ),
        )

    @property
    def analytics(self) -> AnalyticsService:
        return self._service(
            "analytics",
            lambda: AnalyticsService(
                self.cache,
                self.customer_repository,
                self.order_repository,
                self.cart_repository,
                settings=self.settings,
            ),
        )

    @property
    def experiments(self) -> ExperimentService:
        return self._service("experiments", lambda: ExperimentService(self.cache, self.experiment_registry))

    @property
    def job_queue(self) -> RecoveryJobQueue:
        return self._service("job_queue", lambda: RecoveryJobQueue(self.cache, self.settings))

    @property
    def cart_recovery(self) -> CartRecoveryOrchestrator:
        return self._service(
            "cart_recovery",
            lambda: CartRecoveryOrchestrator(
                self.cache,
                self.cart_repository,
                self.customer_repository,
                self.template_repository,
                self.segmentation,
                self.experiments,
                self.dispatcher,
                self.job_queue,
                settings=self.settings,
                notification_bus=self.notification_bus,
                links=RecoveryLinkService(self.settings),
            ),
        )

    @property
    def order_completion(self) -> OrderCompletionHandler:
        return self._service(
            "order_completion",
            lambda: OrderCompletionHandler(
                self.sales_window, self.customer_repository, self.segmentation, self.cart_recovery
            ),
        )
