"""Order domain events."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict
import uuid

from domain.metrics.core.counters import EntityRef, Number
from domain.shared.events import DomainEvent


@dataclass(frozen=True)
class OrderReserved(DomainEvent):
    """Domain event: order created and both aggregate updates applied.

    Attributes:
        order_id: Created order
        student_id: Reserving student
        vendor_id: Vendor of the reserved item
    """

    order_id: str
    student_id: str
    vendor_id: str

    @classmethod
    def create(cls, order_id: str, student_id: str, vendor_id: str) -> "OrderReserved":
        return cls(
            event_id=str(uuid.uuid4()),
            occurred_at=datetime.now(timezone.utc),
            order_id=order_id,
            student_id=student_id,
            vendor_id=vendor_id,
        )


@dataclass(frozen=True)
class AggregateUpdateFailed(DomainEvent):
    """Domain event: an aggregate increment for a persisted order did not apply.

    The order exists; the entity's counters lag behind the order log until
    the order is applied to them.

    Attributes:
        order_id: Order whose aggregate step failed
        entity: Document whose counters were not updated
        deltas: Increments that were not applied
        reason: Error message of the failure
    """

    order_id: str
    entity: EntityRef
    deltas: Dict[str, Number]
    reason: str

    @classmethod
    def create(
        cls,
        order_id: str,
        entity: EntityRef,
        deltas: Dict[str, Number],
        reason: str,
    ) -> "AggregateUpdateFailed":
        return cls(
            event_id=str(uuid.uuid4()),
            occurred_at=datetime.now(timezone.utc),
            order_id=order_id,
            entity=entity,
            deltas=dict(deltas),
            reason=reason,
        )
