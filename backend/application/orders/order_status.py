"""OrderStatusService - moves orders through their lifecycle."""

import logging
from typing import Union

from domain.orders.core.entities.order import Order, OrderStatus
from domain.shared.errors import DomainError, EntityNotFoundError
from domain.shared.paths import order_path
from domain.shared.ports.remote_store import IRemoteStore
from domain.shared.result import Result

logger = logging.getLogger(__name__)


class OrderStatusService:
    """
    Apply order status transitions.

    Vendors advance their orders (pending -> ready -> completed). Either the
    reserving student or the owning vendor can cancel a non-terminal order.
    Status changes never touch aggregate counters.
    """

    def __init__(self, store: IRemoteStore):
        self._store = store

    async def advance(
        self, order_id: str, vendor_id: str, new_status: Union[OrderStatus, str]
    ) -> Result[Order]:
        """
        Move an order to a new status on behalf of its vendor.

        Returns:
            Result with the updated Order. Failures: EntityNotFoundError,
            InvalidOrderTransitionError, NetworkError

        Raises:
            PermissionError: If the vendor does not own the order
            ValueError: If new_status is not a known status
        """
        status = OrderStatus(new_status)
        try:
            order = await self._load(order_id)
            if order.vendor_id != vendor_id:
                raise PermissionError(f"Vendor {vendor_id} does not own order {order_id}")
            updated = await self._transition(order, status)
        except DomainError as e:
            return Result.failure(e)
        return Result.success(updated)

    async def cancel(self, order_id: str, actor_id: str) -> Result[Order]:
        """
        Cancel an order on behalf of its student or its vendor.

        Raises:
            PermissionError: If the actor is neither the student nor the vendor
        """
        try:
            order = await self._load(order_id)
            if actor_id not in (order.student_id, order.vendor_id):
                raise PermissionError(f"{actor_id} cannot cancel order {order_id}")
            updated = await self._transition(order, OrderStatus.CANCELLED)
        except DomainError as e:
            return Result.failure(e)
        return Result.success(updated)

    async def _load(self, order_id: str) -> Order:
        path = order_path(order_id)
        document = await self._store.get_document(path)
        if document is None:
            raise EntityNotFoundError(path)
        return Order.from_document(order_id, document.data)

    async def _transition(self, order: Order, status: OrderStatus) -> Order:
        updated = order.transition_to(status)
        await self._store.set_document(
            order_path(order.id),
            {"status": updated.status.value, "updatedAt": updated.updated_at.isoformat()},
            merge=True,
        )
        logger.info(
            "Order status changed",
            extra={"order_id": order.id, "from": order.status.value, "to": updated.status.value},
        )
        return updated
