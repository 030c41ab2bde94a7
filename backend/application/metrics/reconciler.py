"""MetricsReconciler - rebuilds aggregate counters from the order log."""

import logging
from typing import Any, Dict, Mapping, Optional

from application.metrics.aggregator import MetricsAggregator
from domain.metrics.core.counters import (
    METRICS_APPLIED_FIELD,
    METRICS_FIELD,
    EntityRef,
    Number,
    normalize_counter,
    zeroed,
)
from domain.shared.errors import DomainError, EntityNotFoundError
from domain.shared.paths import ORDERS, USERS, order_path
from domain.shared.ports.remote_store import IRemoteStore, QueryFilter
from domain.shared.result import Result

logger = logging.getLogger(__name__)


def is_applied(order_data: Mapping[str, Any], entity: EntityRef) -> bool:
    """Whether the entity's counters already include this order.

    Orders stored without a ``metricsApplied`` map predate the marker and
    are treated as applied.
    """
    applied = order_data.get(METRICS_APPLIED_FIELD)
    if not isinstance(applied, Mapping):
        return True
    return bool(applied.get(entity.side))


class MetricsReconciler:
    """
    Repair an entity's counters from the orders it appears in.

    Counters are incremented at reservation time and never decremented, so
    every order counts regardless of its status. Only orders marked as
    applied to the entity are counted: a reservation whose increment is
    still in flight adds itself when it lands.

    Example:
        >>> reconciler = MetricsReconciler(store)
        >>> await reconciler.apply_order("o1", EntityRef.vendor("v1"))
        >>> await reconciler.recompute(EntityRef.vendor("v1"))
    """

    def __init__(self, store: IRemoteStore, aggregator: Optional[MetricsAggregator] = None):
        self._store = store
        self._aggregator = aggregator or MetricsAggregator(store)

    async def apply_order(self, order_id: str, entity: EntityRef) -> Result[Dict[str, Number]]:
        """
        Add one order's contribution to the entity, at most once.

        A no-op returning the current counters when the order is already
        marked as applied to the entity.

        Args:
            order_id: Order whose increment was lost
            entity: Student or vendor of the order

        Returns:
            Result with the entity's counters

        Raises:
            ValueError: If the order document has no usable price or servings
        """
        path = order_path(order_id)
        try:
            document = await self._store.get_document(path)
            if document is None:
                raise EntityNotFoundError(path)
        except DomainError as e:
            return Result.failure(e)

        if is_applied(document.data, entity):
            logger.info(
                "Order already applied to aggregate",
                extra={"order_id": order_id, "entity": entity.path},
            )
            return await self._aggregator.increment_metrics(entity, {})

        try:
            deltas = entity.order_deltas(
                float(document.data["itemPrice"]), int(document.data["servings"])
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Order {order_id} has no usable price or servings") from e

        result = await self._aggregator.increment_metrics(entity, deltas)
        if not result.ok:
            return result

        try:
            await self._store.set_document(
                path, {METRICS_APPLIED_FIELD: {entity.side: True}}, merge=True
            )
        except DomainError as e:
            logger.error(
                "Order applied but not marked",
                extra={"order_id": order_id, "entity": entity.path, "error": str(e)},
            )
            return Result.failure(e)

        logger.info(
            "Order applied to aggregate",
            extra={"order_id": order_id, "entity": entity.path, "deltas": deltas},
        )
        return result

    async def recompute(self, entity: EntityRef) -> Result[Dict[str, Number]]:
        """
        Overwrite the entity's counters with totals from its applied orders.

        Args:
            entity: Student or vendor document

        Returns:
            Result with the recomputed counters
        """
        is_student = entity.collection == USERS
        owner_field = "studentId" if is_student else "vendorId"

        try:
            if await self._store.get_document(entity.path) is None:
                raise EntityNotFoundError(entity.path)

            orders = await self._store.query_documents(
                ORDERS, [QueryFilter(owner_field, "==", entity.id)]
            )

            totals = zeroed(entity.counters)
            counted = 0
            for order in orders:
                if not is_applied(order.data, entity):
                    continue
                try:
                    deltas = entity.order_deltas(
                        float(order.data["itemPrice"]), int(order.data["servings"])
                    )
                except (KeyError, TypeError, ValueError):
                    logger.warning(
                        "Skipping malformed order", extra={"order": order.path}
                    )
                    continue
                for key, delta in deltas.items():
                    totals[key] += delta
                counted += 1

            metrics = {key: normalize_counter(key, value) for key, value in totals.items()}
            await self._store.set_document(entity.path, {METRICS_FIELD: metrics}, merge=True)
        except DomainError as e:
            logger.error(
                "Metrics reconciliation failed",
                extra={"entity": entity.path, "error": str(e)},
            )
            return Result.failure(e)

        logger.info(
            "Metrics reconciled",
            extra={"entity": entity.path, "order_count": counted, "metrics": metrics},
        )
        return Result.success(metrics)
