"""
Application lifecycle management using the FastAPI lifespan pattern.

Handles only startup/shutdown: building the retention container and
starting or stopping its background loops.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config.settings import Settings, get_settings
from app.core.background_services import BackgroundServiceManager
from app.core.container import RetentionContainer

logger = logging.getLogger(__name__)


class LifecycleManager:
    """
    Manages application lifecycle events.

    Handles startup initialization and graceful shutdown.
    """

    def __init__(self, settings: Settings | None = None, container: RetentionContainer | None = None) -> None:
        """Initialize lifecycle manager."""
        self.settings = settings or get_settings()
        self.container = container or RetentionContainer(self.settings)
        self.background_services = BackgroundServiceManager(self.container, self.settings)
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def startup(self) -> None:
        """
        Execute startup tasks.

        Called when the application starts.
        """
        if self._initialized:
            logger.warning("Lifecycle already initialized, skipping startup")
            return

        logger.info("Starting application lifecycle...")
        self._verify_configurations()

        await self.container.initialize()

        if self.settings.BACKGROUND_SERVICES_ENABLED:
            await self.background_services.start()
        else:
            logger.info("Background services disabled via BACKGROUND_SERVICES_ENABLED=False")

        self._initialized = True
        logger.info("Application lifecycle startup completed")

    async def shutdown(self) -> None:
        """
        Execute shutdown tasks.

        Called when the application stops.
        """
        if not self._initialized:
            logger.warning("Lifecycle not initialized, skipping shutdown")
            return

        logger.info("Stopping application lifecycle...")

        if self.background_services.is_running:
            await self.background_services.stop()
        await self.container.close()

        self._initialized = False
        logger.info("Application lifecycle shutdown completed")

    def _verify_configurations(self) -> None:
        """Verify critical application configurations."""
        if self.settings.RECOVERY_TOKEN_SECRET == "change-me" and not self.settings.is_development:
            logger.warning("RECOVERY_TOKEN_SECRET is using the default value - recovery links are forgeable")

        if not self.settings.MESSAGE_DISPATCH_API_KEY:
            logger.warning("MESSAGE_DISPATCH_API_KEY not configured - dispatch requests are unauthenticated")


def create_lifespan(lifecycle: LifecycleManager):
    """Build a FastAPI lifespan context bound to `lifecycle`."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app.state.lifecycle = lifecycle

        # Startup
        await lifecycle.startup()

        yield  # Application runs here

        # Shutdown
        await lifecycle.shutdown()

    return lifespan
