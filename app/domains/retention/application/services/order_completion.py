"""
Order Completion Handler

Entry point for a completed order: the sale goes into the real-time window,
the customer's purchase metrics and segments are updated and the cart the
order came from is converted.
"""

import logging

from app.domains.retention.application.ports import ICustomerRepository
from app.domains.retention.application.services.cart_recovery import CartRecoveryOrchestrator
from app.domains.retention.application.services.sales_window import RealTimeSalesWindow
from app.domains.retention.application.services.segmentation_engine import SegmentationEngine
from app.domains.retention.domain.entities import Order

logger = logging.getLogger(__name__)


class OrderCompletionHandler:
    """
    Usage:
        handler = OrderCompletionHandler(sales_window, customers, segmentation, cart_recovery)
        await handler.handle(order)
    """

    def __init__(
        self,
        sales_window: RealTimeSalesWindow,
        customer_repository: ICustomerRepository,
        segmentation: SegmentationEngine,
        cart_recovery: CartRecoveryOrchestrator,
    ):
        self.sales_window = sales_window
        self.customer_repository = customer_repository
        self.segmentation = segmentation
        self.cart_recovery = cart_recovery

    async def handle(self, order: Order) -> dict[str, bool]:
        """
        Process one completed order. Call exactly once per order.

        Ingestion errors propagate. Once the sale is counted, metric, segment
        and cart conversion failures are only logged. Segments are refreshed
        after the metrics so value tiers see this order.

        Returns:
            {"ingested": bool, "metrics_recorded": bool,
             "segments_refreshed": bool, "cart_converted": bool}
        """
        await self.sales_window.ingest_order(order)
        outcome = {"ingested": True, "metrics_recorded": False, "segments_refreshed": False, "cart_converted": False}

        if order.customer_id:
            try:
                outcome["metrics_recorded"] = await self._record_purchase(order)
            except Exception as e:
                logger.error(f"Recording order {order.id} on customer {order.customer_id} failed: {e}", exc_info=True)

            try:
                await self.segmentation.refresh(order.customer_id)
                outcome["segments_refreshed"] = True
            except Exception as e:
                logger.error(f"Segment refresh after order {order.id} failed: {e}", exc_info=True)

        if order.cart_id:
            try:
                cart = await self.cart_recovery.handle_order_placed(order)
                outcome["cart_converted"] = cart is not None
            except Exception as e:
                logger.error(f"Converting cart {order.cart_id} for order {order.id} failed: {e}", exc_info=True)

        return outcome

    async def _record_purchase(self, order: Order) -> bool:
        customer = await self.customer_repository.get_by_id(order.customer_id)
        if customer is None:
            logger.warning(f"Order {order.id} references unknown customer {order.customer_id}")
            return False
        customer.record_order(order.total, order.placed_at)
        await self.customer_repository.update_metrics(customer.id, customer.metrics)
        return True
