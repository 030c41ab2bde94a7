"""OrderWriter - reserves a menu item and updates both aggregates."""

import logging
from typing import Dict, List, Tuple

from application.metrics.aggregator import MetricsAggregator
from application.shared.saga import Saga, SagaStep
from domain.metrics.core.counters import METRICS_APPLIED_FIELD, EntityRef, Number
from domain.orders.core.entities.order import Order, OrderInput
from domain.orders.core.events.order_events import AggregateUpdateFailed, OrderReserved
from domain.shared.errors import (
    DomainError,
    EntityNotFoundError,
    ItemUnavailableError,
    PartialWriteError,
)
from domain.shared.paths import menu_item_path, order_path
from domain.shared.ports.event_bus import IEventBus
from domain.shared.ports.remote_store import IRemoteStore
from domain.shared.result import Result

logger = logging.getLogger(__name__)

CREATE_ORDER_STEP = "create_order"
STUDENT_METRICS_STEP = "student_metrics"
VENDOR_METRICS_STEP = "vendor_metrics"


class OrderWriter:
    """
    Reserve a discounted item.

    Flow:
    1. Create the order document in ``pending`` (retried once; failure aborts)
    2. Increment the student's moneySaved / mealsRescued (best-effort)
    3. Increment the vendor's totalRevenue / mealsShared / ordersCompleted
       (best-effort)

    Each successful increment sets ``metricsApplied.<side>`` on the order, so
    reconciliation counts an order only once per aggregate.

    The order is the source of truth and is never rolled back. A failed
    aggregate step publishes AggregateUpdateFailed for that entity and the
    caller receives PartialWriteError carrying the created order.

    Example:
        >>> writer = OrderWriter(store, aggregator, event_bus)
        >>> result = await writer.reserve(OrderInput(
        ...     student_id="u1", vendor_id="v1", item_name="Pad Thai",
        ...     discount_price=6.29, servings=2,
        ... ))
        >>> result.value.status
        <OrderStatus.PENDING: 'pending'>
    """

    def __init__(self, store: IRemoteStore, aggregator: MetricsAggregator, event_bus: IEventBus):
        """
        Initialize writer.

        Args:
            store: Remote document store
            aggregator: Counter updater for student and vendor documents
            event_bus: Event bus port
        """
        self._store = store
        self._aggregator = aggregator
        self._event_bus = event_bus

    async def reserve(self, order_input: OrderInput) -> Result[Order]:
        """
        Create an order and apply its aggregate increments.

        Args:
            order_input: Reservation request

        Returns:
            Result with the created Order. Failures: EntityNotFoundError or
            ItemUnavailableError for a bad menu item, NetworkError when the
            order cannot be written, PartialWriteError (with ``order``) when
            an aggregate increment failed
        """
        if order_input.menu_item_id:
            try:
                await self._check_item_available(order_input.vendor_id, order_input.menu_item_id)
            except DomainError as e:
                logger.info(
                    "Reservation rejected",
                    extra={"menu_item_id": order_input.menu_item_id, "error": str(e)},
                )
                return Result.failure(e)

        order = Order.create(order_input)
        student = EntityRef.student(order.student_id)
        vendor = EntityRef.vendor(order.vendor_id)
        increments: Dict[str, Tuple[EntityRef, Dict[str, Number]]] = {
            STUDENT_METRICS_STEP: (student, student.order_deltas(order.item_price, order.servings)),
            VENDOR_METRICS_STEP: (vendor, vendor.order_deltas(order.item_price, order.servings)),
        }

        async def create_order() -> None:
            await self._store.set_document(order_path(order.id), order.to_document())

        def increment(entity: EntityRef, deltas: Dict[str, Number]):
            async def action() -> None:
                result = await self._aggregator.increment_metrics(entity, deltas)
                result.unwrap()
                await self._mark_applied(order, entity)

            return action

        saga = Saga("reserve")
        saga.add_step(SagaStep(CREATE_ORDER_STEP, create_order, retries=1))
        for step_name, (entity, deltas) in increments.items():
            saga.add_step(SagaStep(step_name, increment(entity, deltas), critical=False))

        outcome = await saga.run()

        if outcome.aborted:
            error = outcome.errors[CREATE_ORDER_STEP]
            if not isinstance(error, DomainError):
                raise error
            return Result.failure(error)

        if outcome.failed:
            await self._report_failed_aggregates(order, outcome.failed, outcome.errors, increments)
            return Result.failure(
                PartialWriteError(
                    "reserve",
                    outcome.completed,
                    outcome.failed,
                    order=order,
                    cause=outcome.first_error,
                )
            )

        logger.info(
            "Order reserved",
            extra={
                "order_id": order.id,
                "student_id": order.student_id,
                "vendor_id": order.vendor_id,
                "item_price": order.item_price,
                "servings": order.servings,
            },
        )
        await self._event_bus.publish(
            OrderReserved.create(order.id, order.student_id, order.vendor_id)
        )
        return Result.success(order)

    async def _mark_applied(self, order: Order, entity: EntityRef) -> None:
        # The increment already landed, so a stamp failure must not fail the step
        try:
            await self._store.set_document(
                order_path(order.id), {METRICS_APPLIED_FIELD: {entity.side: True}}, merge=True
            )
        except DomainError as e:
            logger.error(
                "Could not mark order as applied to aggregate",
                extra={"order_id": order.id, "entity": entity.path, "error": str(e)},
            )

    async def _check_item_available(self, vendor_id: str, item_id: str) -> None:
        path = menu_item_path(vendor_id, item_id)
        document = await self._store.get_document(path)
        if document is None:
            raise EntityNotFoundError(path)
        if not document.data.get("isAvailable", True):
            raise ItemUnavailableError(path)

    async def _report_failed_aggregates(
        self,
        order: Order,
        failed_steps: List[str],
        errors: Dict[str, Exception],
        increments: Dict[str, Tuple[EntityRef, Dict[str, Number]]],
    ) -> None:
        for step_name in failed_steps:
            entity, deltas = increments[step_name]
            logger.error(
                "Aggregate update failed for persisted order",
                extra={
                    "order_id": order.id,
                    "entity": entity.path,
                    "error": str(errors[step_name]),
                },
            )
            await self._event_bus.publish(
                AggregateUpdateFailed.create(
                    order_id=order.id,
                    entity=entity,
                    deltas=deltas,
                    reason=str(errors[step_name]),
                )
            )
