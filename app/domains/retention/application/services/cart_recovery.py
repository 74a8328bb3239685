"""
Cart Recovery Orchestrator

Detects abandoned carts, builds a multi-step recovery plan per abandonment
episode and runs each planned attempt when its job comes due.

Flow:
    run_abandonment_sweep -> process_abandoned_cart -> plan stored in cache
    -> RecoveryJobQueue -> execute_job -> dispatch + recovery log on the cart
    record_recovery_response closes the loop and credits experiment variants.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from app.config.settings import RecoveryInterval, Settings, get_settings
from app.core.domain.exceptions import DispatchError, EntityNotFoundException, TemplateNotFoundError
from app.core.interfaces.cache import ICache
from app.core.interfaces.messaging import IMessageDispatcher, INotificationBus
from app.domains.retention.application.ports import (
    ICartRepository,
    ICustomerRepository,
    ITemplateRepository,
)
from app.domains.retention.application.services.experiment_service import ExperimentService
from app.domains.retention.application.services.recovery_jobs import RecoveryJobQueue
from app.domains.retention.application.services.recovery_links import RecoveryLinkService
from app.domains.retention.application.services.segmentation_engine import SegmentationEngine
from app.domains.retention.domain.entities import (
    CART_RECOVERY_CATEGORY,
    Cart,
    Customer,
    Order,
    RecoveryAttemptRecord,
)
from app.domains.retention.domain.events import CartAbandoned, CartConverted
from app.domains.retention.domain.value_objects import (
    CartStatus,
    DeliveryStatus,
    RecoveryAttempt,
    RecoveryJob,
    RecoveryPlan,
    RecoveryResponse,
    RecoveryStrategy,
)

logger = logging.getLogger(__name__)

CHANNEL_PRIORITY = ("whatsapp", "email")


def recovery_plan_key(cart_id: str) -> str:
    return f"cart:{cart_id}:recovery_plan"


def allowed_channels(
    customer: Customer,
    cart_value: float,
    segments: list[str],
    high_value_threshold: float,
) -> list[str]:
    """
    Channels a recovery campaign may use, in priority order.

    WhatsApp is added for high-value customers or carts; any channel the
    customer opted out of is removed.
    """
    if "high_value" in segments or cart_value > high_value_threshold:
        channels = list(CHANNEL_PRIORITY)
    else:
        channels = ["email"]
    return [channel for channel in channels if customer.allows_channel(channel)]


def plan_attempts(
    abandoned_at: datetime,
    channels: list[str],
    schedule: list[RecoveryInterval],
) -> list[RecoveryAttempt]:
    """
    One attempt per schedule interval, restricted to `channels`.

    Intervals left without channels are skipped; the attempt index is the
    interval's position in the schedule.
    """
    attempts = []
    for index, interval in enumerate(schedule):
        attempt_channels = [channel for channel in channels if channel in interval.channels]
        if not attempt_channels:
            continue
        attempts.append(
            RecoveryAttempt(
                index=index,
                scheduled_for=abandoned_at + timedelta(hours=interval.hours),
                channels=attempt_channels,
            )
        )
    return attempts


class CartRecoveryOrchestrator:
    """
    Abandonment detection and recovery campaigns.

    Usage:
        orchestrator = CartRecoveryOrchestrator(cache, carts, customers, templates,
                                                segmentation, experiments, dispatcher, jobs)
        summary = await orchestrator.run_abandonment_sweep()
        await orchestrator.execute_job(job)
        await orchestrator.record_recovery_response(cart_id, attempt_id, "converted")
    """

    def __init__(
        self,
        cache: ICache,
        cart_repository: ICartRepository,
        customer_repository: ICustomerRepository,
        template_repository: ITemplateRepository,
        segmentation: SegmentationEngine,
        experiments: ExperimentService,
        dispatcher: IMessageDispatcher,
        job_queue: RecoveryJobQueue,
        settings: Settings | None = None,
        notification_bus: INotificationBus | None = None,
        links: RecoveryLinkService | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.cart_repository = cart_repository
        self.customer_repository = customer_repository
        self.template_repository = template_repository
        self.segmentation = segmentation
        self.experiments = experiments
        self.dispatcher = dispatcher
        self.job_queue = job_queue
        self.notification_bus = notification_bus
        self.links = links or RecoveryLinkService(self.settings)
        self._clock = clock or (lambda: datetime.now(UTC))

        self.abandonment_threshold = timedelta(minutes=self.settings.CART_ABANDONMENT_THRESHOLD_MINUTES)

    # Abandonment detection

    async def run_abandonment_sweep(self) -> dict[str, int]:
        """
        Abandon every idle active cart and plan its recovery.

        A failure on one cart is logged and does not stop the sweep.

        Returns:
            {"candidates": n, "abandoned": n, "failed": n}
        """
        now = self._clock()
        candidates = await self.cart_repository.find_abandonment_candidates(now - self.abandonment_threshold)

        abandoned = failed = 0
        for cart in candidates:
            try:
                if await self.process_abandoned_cart(cart, now) is not None:
                    abandoned += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error processing abandoned cart {cart.id}: {e}", exc_info=True)

        if candidates:
            logger.info(f"Abandonment sweep: {len(candidates)} candidates, {abandoned} abandoned, {failed} failed")
        return {"candidates": len(candidates), "abandoned": abandoned, "failed": failed}

    async def process_abandoned_cart(self, cart: Cart, now: datetime | None = None) -> RecoveryPlan | None:
        """
        Move a cart to `abandoned` and start its recovery campaign.

        Returns:
            The new plan, or None if the cart is not an abandonment candidate
        """
        now = now or self._clock()
        if not cart.is_abandonment_candidate(self.abandonment_threshold, now):
            return None

        customer = await self._get_customer(cart.customer_id)
        segments = await self.segmentation.classify(customer)
        strategy = await self.determine_strategy(customer, cart, segments)
        plan = await self.build_plan(cart, customer, strategy, abandoned_at=now)

        cart.abandon(now)
        await self.cart_repository.save(cart)
        await self._count_abandonment(cart, now)
        await self.cache.set_with_ttl(
            recovery_plan_key(str(cart.id)),
            plan.model_dump(mode="json"),
            self.settings.RECOVERY_PLAN_TTL_SECONDS,
        )
        await self.job_queue.replace_plan(plan)
        logger.info(f"Cart {cart.id} abandoned; {len(plan.attempts)} recovery attempts planned")

        if self.notification_bus is not None:
            event = CartAbandoned(
                cart_id=str(cart.id),
                customer_id=cart.customer_id,
                total_value=cart.total_value,
                attempts_planned=len(plan.attempts),
            )
            await self.notification_bus.publish(event.topic, event.to_dict())
        return plan

    async def _count_abandonment(self, cart: Cart, now: datetime) -> None:
        await self.cache.increment("stats:abandonments:total", 1)
        await self.cache.increment("stats:abandonments:value", int(cart.total_value))
        await self.cache.increment(f"stats:abandonments:{now.date().isoformat()}", 1)

    # Planning

    async def determine_strategy(self, customer: Customer, cart: Cart, segments: list[str]) -> RecoveryStrategy:
        """Assign the customer's sticky variants and pick the allowed channels."""
        variants = await self.experiments.assign_all(str(customer.id))
        return RecoveryStrategy(
            timing=variants.get("timing"),
            message_style=variants.get("message_style"),
            discount_offer=variants.get("discount_offer"),
            channels=allowed_channels(
                customer,
                cart.total_value,
                segments,
                self.settings.RECOVERY_HIGH_VALUE_CART_THRESHOLD,
            ),
        )

    async def build_plan(
        self,
        cart: Cart,
        customer: Customer,
        strategy: RecoveryStrategy,
        abandoned_at: datetime,
    ) -> RecoveryPlan:
        attempts = plan_attempts(abandoned_at, strategy.channels, self.settings.RECOVERY_SCHEDULE)
        for attempt in attempts:
            attempt.templates = await self.select_templates(strategy, attempt.channels)

        return RecoveryPlan(
            cart_id=str(cart.id),
            customer_id=str(customer.id),
            abandoned_at=abandoned_at,
            strategy=strategy,
            attempts=attempts,
        )

    async def select_templates(self, strategy: RecoveryStrategy, channels: list[str]) -> dict[str, str]:
        """Template id per channel for the strategy's style and discount variants."""
        metadata = {"style": strategy.message_style, "discount_offer": strategy.discount_offer}
        templates = {}
        for channel in channels:
            template = await self.template_repository.find_one(CART_RECOVERY_CATEGORY, channel, metadata)
            if template is not None:
                templates[channel] = str(template.id)
        return templates

    async def get_plan(self, cart_id: str) -> RecoveryPlan | None:
        payload = await self.cache.get(recovery_plan_key(cart_id))
        return RecoveryPlan.model_validate(payload) if payload is not None else None

    # Execution

    async def due_jobs(self) -> list[RecoveryJob]:
        """Jobs due at the current time, for the scheduler to run independently."""
        return await self.job_queue.due_jobs(self._clock())

    async def execute_job(self, job: RecoveryJob) -> list[RecoveryAttemptRecord]:
        """
        Run one queued attempt under the cart's lease.

        Jobs from a superseded plan are dropped without sending anything. If
        the attempt fails the job stays queued and the lease is released.
        """
        if not await self.job_queue.claim(job):
            logger.debug(f"Recovery job {job.member} is leased by another worker")
            return []

        try:
            plan = await self.get_plan(job.cart_id)
            attempt = plan.attempt(job.attempt_index) if plan and plan.plan_id == job.plan_id else None
            records = await self.execute_attempt(plan, attempt) if attempt else []
        except Exception:
            await self.job_queue.release(job)
            raise

        if attempt is None:
            logger.info(f"Dropping stale recovery job {job.member}")
        await self.job_queue.complete(job)
        return records

    async def execute_attempt(self, plan: RecoveryPlan, attempt: RecoveryAttempt) -> list[RecoveryAttemptRecord]:
        """
        Send one planned attempt on each of its channels.

        A no-op if the cart is no longer abandoned. Channels without a
        template or recipient are skipped; dispatch failures are recorded and
        the next channel is tried. Any other error on one channel is logged
        and does not discard what the other channels already sent.
        """
        cart = await self.cart_repository.get_by_id(plan.cart_id)
        if cart is None or cart.status != CartStatus.ABANDONED:
            return []

        customer = await self._get_customer(cart.customer_id)
        variables = self.recovery_variables(cart, customer)

        records = []
        for channel in attempt.channels:
            try:
                record = await self._send_on_channel(cart, customer, plan, attempt, channel, variables)
            except TemplateNotFoundError as e:
                logger.warning(f"Skipping {channel} for cart {cart.id}: {e.message}")
                continue
            except Exception as e:
                logger.error(
                    f"Recovery attempt {attempt.index} for cart {cart.id} failed on {channel}: {e}", exc_info=True
                )
                continue
            if record is not None:
                records.append(record)

        if records:
            await self.cart_repository.save(cart)
        logger.info(f"Recovery attempt {attempt.index} for cart {cart.id}: {len(records)} messages")
        return records

    async def _send_on_channel(
        self,
        cart: Cart,
        customer: Customer,
        plan: RecoveryPlan,
        attempt: RecoveryAttempt,
        channel: str,
        variables: dict[str, Any],
    ) -> RecoveryAttemptRecord | None:
        metadata = {"style": plan.strategy.message_style, "discount_offer": plan.strategy.discount_offer}
        template_id = attempt.templates.get(channel)
        template = await self.template_repository.get_by_id(template_id) if template_id else None
        if template is None:
            raise TemplateNotFoundError(channel, CART_RECOVERY_CATEGORY, metadata)

        recipient = customer.contact_for(channel)
        if not recipient:
            logger.warning(f"Customer {customer.id} has no {channel} address; skipping")
            return None

        now = self._clock()
        try:
            result = await self.dispatcher.send(
                channel,
                recipient,
                str(template.id),
                variables,
                content=template.render(channel, variables),
            )
        except DispatchError as e:
            logger.error(f"Dispatch of cart {cart.id} recovery on {channel} failed: {e.message}")
            record = cart.log_recovery_attempt(channel, str(template.id), now=now)
            record.status = DeliveryStatus.FAILED
            return record

        record = cart.log_recovery_attempt(channel, str(template.id), message_id=result.message_id, now=now)
        if not result.success:
            logger.error(f"Dispatch of cart {cart.id} recovery on {channel} rejected: {result.error}")
            record.status = DeliveryStatus.FAILED
        return record

    def recovery_variables(self, cart: Cart, customer: Customer) -> dict[str, Any]:
        return {
            "customerName": customer.full_name,
            "cartTotal": f"{cart.total_value:.2f}",
            "itemCount": cart.item_count,
            "recoveryLink": self.links.build_link(str(cart.id)),
        }

    # Outcomes

    async def record_recovery_response(
        self,
        cart_id: str,
        attempt_id: str,
        response: RecoveryResponse | str,
    ) -> Cart:
        """
        Apply a response reported by the dispatch service to a recovery attempt.

        `converted` converts the cart, cancels its remaining attempts and
        credits the customer's experiment variants once.

        Raises:
            EntityNotFoundException: If the cart or the attempt does not exist
        """
        if not isinstance(response, RecoveryResponse):
            response = RecoveryResponse.from_string(response)

        cart = await self.cart_repository.get_by_id(cart_id)
        if cart is None:
            raise EntityNotFoundException("Cart", cart_id)

        was_converted = cart.status == CartStatus.CONVERTED
        if not cart.update_recovery_response(attempt_id, response):
            raise EntityNotFoundException("RecoveryAttempt", attempt_id)
        await self.cart_repository.save(cart)

        if response == RecoveryResponse.CONVERTED and not was_converted:
            await self.job_queue.cancel(cart_id)
            await self.experiments.record_conversion(cart.customer_id)
            if self.notification_bus is not None:
                event = CartConverted(
                    cart_id=cart_id,
                    customer_id=cart.customer_id,
                    attempt_id=attempt_id,
                    total_value=cart.total_value,
                )
                await self.notification_bus.publish(event.topic, event.to_dict())
        return cart

    async def handle_order_placed(self, order: Order) -> Cart | None:
        """
        Convert the cart an order was placed from and stop its campaign.

        Carts that are already converted or expired are returned unchanged.
        """
        if not order.cart_id:
            return None
        cart = await self.cart_repository.get_by_id(order.cart_id)
        if cart is None or cart.status.is_terminal():
            return cart

        cart.convert()
        await self.cart_repository.save(cart)
        await self.job_queue.cancel(str(cart.id))
        logger.info(f"Cart {cart.id} converted by order {order.id}")

        if self.notification_bus is not None:
            event = CartConverted(cart_id=str(cart.id), customer_id=cart.customer_id, total_value=cart.total_value)
            await self.notification_bus.publish(event.topic, event.to_dict())
        return cart

    async def resume_cart(self, cart_id: str) -> Cart:
        """The customer came back to an abandoned cart; pending attempts are cancelled."""
        cart = await self.cart_repository.get_by_id(cart_id)
        if cart is None:
            raise EntityNotFoundException("Cart", cart_id)
        if cart.recover(self._clock()):
            await self.cart_repository.save(cart)
            await self.job_queue.cancel(cart_id)
        return cart

    async def _get_customer(self, customer_id: str) -> Customer:
        customer = await self.customer_repository.get_by_id(customer_id)
        if customer is None:
            raise EntityNotFoundException("Customer", customer_id)
        return customer
