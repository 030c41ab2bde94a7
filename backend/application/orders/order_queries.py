"""Read-side queries over the order log."""

import logging
from typing import Iterable, List, Optional, Sequence

from domain.orders.core.entities.order import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Order,
    OrderStatus,
)
from domain.shared.paths import ORDERS
from domain.shared.ports.remote_store import Document, IRemoteStore, QueryFilter

logger = logging.getLogger(__name__)


class OrderQueries:
    """Order listings for students and vendors, newest first."""

    def __init__(self, store: IRemoteStore):
        self._store = store

    async def current_orders(self, student_id: str) -> List[Order]:
        """Pending and ready orders of a student."""
        return await self._query("studentId", student_id, ACTIVE_STATUSES)

    async def past_orders(self, student_id: str) -> List[Order]:
        """Completed and cancelled orders of a student."""
        return await self._query("studentId", student_id, TERMINAL_STATUSES)

    async def vendor_orders(
        self, vendor_id: str, statuses: Optional[Iterable[OrderStatus]] = None
    ) -> List[Order]:
        """Orders placed with a vendor, optionally restricted to some statuses."""
        return await self._query("vendorId", vendor_id, statuses)

    async def _query(
        self,
        owner_field: str,
        owner_id: str,
        statuses: Optional[Iterable[OrderStatus]],
    ) -> List[Order]:
        filters: List[QueryFilter] = [QueryFilter(owner_field, "==", owner_id)]
        if statuses is not None:
            filters.append(QueryFilter("status", "in", sorted(s.value for s in statuses)))

        documents = await self._store.query_documents(ORDERS, filters)
        orders = _parse_orders(documents)
        # Sorted here rather than in the store: no composite index required
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders


def _parse_orders(documents: Sequence[Document]) -> List[Order]:
    orders: List[Order] = []
    for document in documents:
        try:
            orders.append(Order.from_document(document.id, document.data))
        except ValueError as e:
            logger.warning(
                "Skipping malformed order", extra={"order": document.path, "error": str(e)}
            )
    return orders
