"""
Application factory for FastAPI.

The retention engine exposes no business routes; FastAPI hosts its lifespan
(container and background loops) and a health check.
"""

import logging
from typing import Any

from fastapi import FastAPI

from app.config.settings import Settings, get_settings
from app.core.lifecycle import LifecycleManager, create_lifespan

logger = logging.getLogger(__name__)


class AppFactory:
    """
    Factory for creating and configuring FastAPI applications.
    """

    def __init__(self, settings: Settings | None = None, lifecycle: LifecycleManager | None = None) -> None:
        """
        Initialize app factory.

        Args:
            settings: Application settings (uses default if not provided)
            lifecycle: Lifecycle manager override, mainly for tests
        """
        self._settings = settings or get_settings()
        self._lifecycle = lifecycle or LifecycleManager(self._settings)

    def create_app(self) -> FastAPI:
        """
        Create and configure the FastAPI application.

        Returns:
            Configured FastAPI application instance.
        """
        app = FastAPI(
            title=self._settings.PROJECT_NAME,
            version=self._settings.VERSION,
            docs_url="/docs" if self._settings.DEBUG else None,
            redoc_url=None,
            lifespan=create_lifespan(self._lifecycle),
        )
        self._configure_health_endpoint(app)

        logger.info(f"Application created: {self._settings.PROJECT_NAME}")
        return app

    def _configure_health_endpoint(self, app: FastAPI) -> None:
        """Add health check endpoint."""
        lifecycle = self._lifecycle

        @app.get("/health", tags=["health"])
        async def health_check() -> dict[str, Any]:
            """
            Cache connectivity and background service status.
            """
            cache_ok = await lifecycle.container.cache.ping()
            return {
                "status": "ok" if cache_ok else "degraded",
                "environment": self._settings.ENVIRONMENT,
                "cache": {
                    "backend": lifecycle.container.cache.backend.value,
                    "reachable": cache_ok,
                },
                "background_services": lifecycle.background_services.get_status(),
            }


def create_app(settings: Settings | None = None, lifecycle: LifecycleManager | None = None) -> FastAPI:
    """
    Create FastAPI application using the factory.

    Args:
        settings: Optional settings override
        lifecycle: Optional lifecycle override

    Returns:
        Configured FastAPI application
    """
    return AppFactory(settings, lifecycle).create_app()
