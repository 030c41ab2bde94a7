"""Order entity - reservation of a discounted menu item."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional
import uuid

from domain.metrics.core.counters import METRICS_APPLIED_FIELD
from domain.shared.errors import InvalidOrderTransitionError


class OrderStatus(str, Enum):
    """Order lifecycle: pending -> ready -> completed, cancelled from pending/ready."""

    PENDING = "pending"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)
ACTIVE_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.PENDING, OrderStatus.READY})

_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class OrderInput:
    """Reservation request.

    Attributes:
        student_id: Identity reserving the item
        vendor_id: Vendor offering the item
        item_name: Menu item name at reservation time
        discount_price: Price paid (the discounted price)
        servings: Number of servings reserved
        original_price: Undiscounted price, if known
        menu_item_id: Menu item reserved, if the reservation comes from a listing
    """

    student_id: str
    vendor_id: str
    item_name: str
    discount_price: float
    servings: int = 1
    original_price: Optional[float] = None
    menu_item_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate reservation values."""
        if not self.student_id or not self.vendor_id:
            raise ValueError("student_id and vendor_id are required")
        if not self.item_name.strip():
            raise ValueError("item_name cannot be empty")
        if self.discount_price < 0:
            raise ValueError(f"discount_price cannot be negative: {self.discount_price}")
        if isinstance(self.servings, bool) or self.servings < 1:
            raise ValueError(f"servings must be at least 1: {self.servings}")
        if self.original_price is not None and self.original_price < self.discount_price:
            raise ValueError("original_price cannot be lower than discount_price")


@dataclass(frozen=True)
class Order:
    """Order document stored at ``orders/{id}``.

    The order log is the durable source of truth; student and vendor
    aggregates are derived from it and can be recomputed.

    Invariants:
    - status follows the pending -> ready -> completed/cancelled machine
    - no mutation after a terminal status
    - created_at/updated_at are timezone-aware
    """

    id: str
    student_id: str
    vendor_id: str
    item_name: str
    item_price: float
    servings: int
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    original_price: Optional[float] = None
    menu_item_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.created_at.tzinfo is None or self.updated_at.tzinfo is None:
            raise ValueError("Order timestamps must be timezone-aware (use UTC)")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

    @staticmethod
    def create(order_input: OrderInput, now: Optional[datetime] = None) -> "Order":
        """Create a new pending order from a reservation request."""
        created = now or datetime.now(timezone.utc)
        return Order(
            id=str(uuid.uuid4()),
            student_id=order_input.student_id,
            vendor_id=order_input.vendor_id,
            item_name=order_input.item_name.strip(),
            item_price=round(float(order_input.discount_price), 2),
            servings=order_input.servings,
            status=OrderStatus.PENDING,
            created_at=created,
            updated_at=created,
            original_price=order_input.original_price,
            menu_item_id=order_input.menu_item_id,
        )

    def can_transition_to(self, status: OrderStatus) -> bool:
        return status in _TRANSITIONS[self.status]

    def transition_to(self, status: OrderStatus, now: Optional[datetime] = None) -> "Order":
        """Return a copy of the order in the new status.

        Raises:
            InvalidOrderTransitionError: If the state machine forbids the move
        """
        if not self.can_transition_to(status):
            raise InvalidOrderTransitionError(self.id, self.status.value, status.value)
        return replace(self, status=status, updated_at=now or datetime.now(timezone.utc))

    def to_document(self) -> Dict[str, Any]:
        """Stored form. A new order is not yet part of any aggregate."""
        return {
            "studentId": self.student_id,
            "vendorId": self.vendor_id,
            "itemName": self.item_name,
            "itemPrice": self.item_price,
            "servings": self.servings,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "originalPrice": self.original_price,
            "menuItemId": self.menu_item_id,
            METRICS_APPLIED_FIELD: {"student": False, "vendor": False},
        }

    @staticmethod
    def from_document(order_id: str, data: Mapping[str, Any]) -> "Order":
        """Rebuild an order from its stored document.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            created_at = _parse_datetime(data["createdAt"])
            return Order(
                id=order_id,
                student_id=str(data["studentId"]),
                vendor_id=str(data["vendorId"]),
                item_name=str(data["itemName"]),
                item_price=float(data["itemPrice"]),
                servings=int(data["servings"]),
                status=OrderStatus(data["status"]),
                created_at=created_at,
                updated_at=_parse_datetime(data.get("updatedAt") or data["createdAt"]),
                original_price=data.get("originalPrice"),
                menu_item_id=data.get("menuItemId"),
            )
        except KeyError as e:
            raise ValueError(f"Order document {order_id} is missing field {e}") from e


def _parse_datetime(value: Any) -> datetime:
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
