"""
Background services management for the application.

Runs the periodic loops of the retention core: the cart abandonment sweep,
the recovery job poller and the real-time analytics broadcast.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.config.settings import Settings
from app.core.container import RetentionContainer
from app.core.shared.logger import get_job_logger
from app.domains.retention.domain.value_objects import RecoveryJob

logger = logging.getLogger(__name__)

ANALYTICS_UPDATE_TOPIC = "analytics:update"


class BackgroundServiceManager:
    """
    Manages background services lifecycle.

    Each loop survives errors in a single iteration. Due recovery jobs run in
    their own tasks so a slow attempt never holds up another cart.
    """

    def __init__(self, container: RetentionContainer, settings: Settings | None = None) -> None:
        """Initialize background service manager."""
        self.container = container
        self.settings = settings or container.settings
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._job_tasks: dict[str, asyncio.Task[Any]] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if background services are running."""
        return self._running

    async def start(self) -> None:
        """Start all background loops."""
        if self._running:
            logger.warning("Background services already running")
            return

        logger.info("Starting background services...")
        self._spawn(
            "cart_abandonment_sweep",
            self._run_periodically(self.settings.CART_SWEEP_INTERVAL_SECONDS, self.run_sweep),
        )
        self._spawn(
            "recovery_job_poller",
            self._run_periodically(self.settings.RECOVERY_JOB_POLL_SECONDS, self.poll_recovery_jobs),
        )
        self._spawn(
            "analytics_broadcast",
            self._run_periodically(self.settings.ANALYTICS_BROADCAST_INTERVAL_SECONDS, self.broadcast_stats),
        )

        self._running = True
        logger.info("Background services started")

    async def stop(self) -> None:
        """Stop all background services gracefully."""
        if not self._running:
            logger.warning("Background services not running")
            return

        logger.info("Stopping background services...")

        tasks = [*self._background_tasks, *self._job_tasks.values()]
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._background_tasks.clear()
        self._job_tasks.clear()
        self._running = False
        logger.info("Background services stopped")

    def _spawn(self, name: str, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _run_periodically(self, interval: float, step: Callable[[], Awaitable[Any]]) -> None:
        job_logger = get_job_logger(step.__name__)
        while True:
            try:
                await step()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                job_logger.error(f"Background iteration failed: {e}", error_type=type(e).__name__)
            await asyncio.sleep(interval)

    # Loop steps

    async def run_sweep(self) -> dict[str, int]:
        return await self.container.cart_recovery.run_abandonment_sweep()

    async def poll_recovery_jobs(self) -> int:
        """Start a task for each due job that is not already running here."""
        started = 0
        for job in await self.container.cart_recovery.due_jobs():
            running = self._job_tasks.get(job.member)
            if running is not None and not running.done():
                continue
            task = asyncio.create_task(self._execute_job(job), name=f"recovery_job:{job.member}")
            self._job_tasks[job.member] = task
            task.add_done_callback(lambda _t, member=job.member: self._job_tasks.pop(member, None))
            started += 1
        return started

    async def _execute_job(self, job: RecoveryJob) -> None:
        job_logger = get_job_logger("recovery_attempt").with_context(cart_id=job.cart_id, attempt=job.attempt_index)
        try:
            records = await self.container.cart_recovery.execute_job(job)
            job_logger.info(f"Recovery job {job.member} finished: {len(records)} messages")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job_logger.error(f"Recovery job {job.member} failed: {e}", error_type=type(e).__name__)

    async def broadcast_stats(self) -> int:
        bus = self.container.notification_bus
        if bus is None:
            return 0
        stats = await self.container.sales_window.current_stats()
        return await bus.publish(ANALYTICS_UPDATE_TOPIC, stats.model_dump(mode="json"))

    def get_status(self) -> dict[str, Any]:
        """
        Get status of background services.

        Returns:
            Dictionary with service status information.
        """
        return {
            "running": self._running,
            "active_tasks": len(self._background_tasks),
            "running_recovery_jobs": len(self._job_tasks),
        }
