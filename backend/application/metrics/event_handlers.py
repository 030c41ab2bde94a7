"""Handlers for order events that affect aggregate counters."""

import logging

from application.metrics.reconciler import MetricsReconciler
from domain.orders.core.events.order_events import AggregateUpdateFailed, OrderReserved

logger = logging.getLogger(__name__)


class ReconcileMetricsOnFailureHandler:
    """Handler for AggregateUpdateFailed domain events.

    Applies the failed order's contribution to the entity once. Other
    orders, including reservations still in flight, are left alone.
    """

    def __init__(self, reconciler: MetricsReconciler):
        self._reconciler = reconciler

    async def handle(self, event: AggregateUpdateFailed) -> None:
        """Handle AggregateUpdateFailed event.

        Args:
            event: AggregateUpdateFailed domain event

        Example:
            >>> handler = ReconcileMetricsOnFailureHandler(reconciler)
            >>> await handler.handle(AggregateUpdateFailed.create(
            ...     order_id="o1",
            ...     entity=EntityRef.vendor("v1"),
            ...     deltas={"ordersCompleted": 1},
            ...     reason="network error",
            ... ))
        """
        logger.warning(
            "aggregate_update_failed",
            extra={
                "event_id": event.event_id,
                "order_id": event.order_id,
                "entity": event.entity.path,
                "deltas": event.deltas,
                "reason": event.reason,
            },
        )

        result = await self._reconciler.apply_order(event.order_id, event.entity)
        if not result.ok:
            logger.error(
                "Counters still missing order contribution",
                extra={"entity": event.entity.path, "error": str(result.error)},
            )


class OrderReservedHandler:
    """Handler for OrderReserved domain events.

    Side effects only - does NOT modify system state.
    """

    async def handle(self, event: OrderReserved) -> None:
        logger.info(
            "order_reserved",
            extra={
                "event_id": event.event_id,
                "occurred_at": event.occurred_at.isoformat(),
                "order_id": event.order_id,
                "student_id": event.student_id,
                "vendor_id": event.vendor_id,
            },
        )
