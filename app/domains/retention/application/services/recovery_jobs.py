"""
Recovery Job Queue

Durable schedule of pending recovery attempts. Jobs live in a sorted set
scored by due time, so they survive restarts and are shared by every
instance; a per-cart lease keeps two instances from running the same cart
at once.
"""

import logging
from datetime import datetime

from app.config.settings import Settings, get_settings
from app.core.interfaces.cache import ICache
from app.domains.retention.domain.value_objects import RecoveryJob, RecoveryPlan

logger = logging.getLogger(__name__)

JOBS_KEY = "recovery:jobs"


def job_payload_key(member: str) -> str:
    return f"recovery:job:{member}"


def lease_key(cart_id: str) -> str:
    return f"recovery:lease:{cart_id}"


class RecoveryJobQueue:
    """
    Usage:
        queue = RecoveryJobQueue(cache)
        await queue.replace_plan(plan)
        for job in await queue.due_jobs(now):
            if await queue.claim(job):
                ...
                await queue.complete(job)
    """

    def __init__(self, cache: ICache, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.cache = cache
        self.plan_ttl = self.settings.RECOVERY_PLAN_TTL_SECONDS
        self.lease_ttl = self.settings.RECOVERY_JOB_LEASE_SECONDS

    def _members_for_cart(self, cart_id: str) -> list[str]:
        # Attempt indices are positions in the configured schedule
        return [f"{cart_id}:{index}" for index in range(len(self.settings.RECOVERY_SCHEDULE))]

    async def cancel(self, cart_id: str) -> int:
        """Drop every pending job of a cart."""
        members = self._members_for_cart(cart_id)
        removed = await self.cache.sorted_set_remove(JOBS_KEY, *members)
        for member in members:
            await self.cache.delete(job_payload_key(member))
        if removed:
            logger.info(f"Cancelled {removed} pending recovery jobs for cart {cart_id}")
        return removed

    async def replace_plan(self, plan: RecoveryPlan) -> list[RecoveryJob]:
        """Cancel the cart's previous jobs and enqueue one job per attempt of `plan`."""
        await self.cancel(plan.cart_id)

        jobs = []
        for attempt in plan.attempts:
            job = RecoveryJob(
                cart_id=plan.cart_id,
                plan_id=plan.plan_id,
                attempt_index=attempt.index,
                scheduled_for=attempt.scheduled_for,
            )
            await self.cache.set_with_ttl(job_payload_key(job.member), job.model_dump(mode="json"), self.plan_ttl)
            await self.cache.sorted_set_add(JOBS_KEY, attempt.scheduled_for.timestamp(), job.member)
            jobs.append(job)

        logger.debug(f"Enqueued {len(jobs)} recovery jobs for cart {plan.cart_id}")
        return jobs

    async def due_jobs(self, now: datetime) -> list[RecoveryJob]:
        """Jobs whose due time is at or before `now`, earliest first."""
        members = await self.cache.sorted_set_range_by_score(JOBS_KEY, 0, now.timestamp())

        jobs = []
        for member in members:
            payload = await self.cache.get(job_payload_key(member))
            if payload is None:
                # Payload expired with the plan
                await self.cache.sorted_set_remove(JOBS_KEY, member)
                continue
            jobs.append(RecoveryJob.model_validate(payload))
        return jobs

    async def claim(self, job: RecoveryJob) -> bool:
        """Take the cart's lease; False if another worker holds it."""
        return await self.cache.set_if_not_exists(lease_key(job.cart_id), job.member, self.lease_ttl)

    async def release(self, job: RecoveryJob) -> None:
        await self.cache.delete(lease_key(job.cart_id))

    async def complete(self, job: RecoveryJob) -> None:
        """Remove an executed job and release its lease."""
        await self.cache.sorted_set_remove(JOBS_KEY, job.member)
        await self.cache.delete(job_payload_key(job.member))
        await self.release(job)

    async def pending_count(self) -> int:
        return len(await self.cache.sorted_set_range_by_score(JOBS_KEY, 0, float("inf")))
