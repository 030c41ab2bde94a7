"""Aggregate counter definitions and entity references."""

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Dict, Mapping, Tuple, Union

from domain.shared.paths import USERS, VENDORS, document_path

Number = Union[int, float]

# Counters live in this map on the entity document
METRICS_FIELD = "metrics"
# Order field recording which aggregates already include the order
METRICS_APPLIED_FIELD = "metricsApplied"

MONEY_SAVED = "moneySaved"
MEALS_RESCUED = "mealsRescued"
TOTAL_REVENUE = "totalRevenue"
MEALS_SHARED = "mealsShared"
ORDERS_COMPLETED = "ordersCompleted"

STUDENT_COUNTERS: Tuple[str, ...] = (MONEY_SAVED, MEALS_RESCUED)
VENDOR_COUNTERS: Tuple[str, ...] = (TOTAL_REVENUE, MEALS_SHARED, ORDERS_COMPLETED)
CURRENCY_COUNTERS = frozenset({MONEY_SAVED, TOTAL_REVENUE})


class MetricsUpdateMode(str, Enum):
    """How MetricsAggregator applies increments.

    READ_MODIFY_WRITE reads, adds and writes back; concurrent writers can lose
    updates. ATOMIC delegates to the store's increment primitive.
    """

    READ_MODIFY_WRITE = "read_modify_write"
    ATOMIC = "atomic"


@dataclass(frozen=True)
class EntityRef:
    """Reference to a document that carries aggregate counters.

    Examples:
        >>> EntityRef.student("u1").path
        'users/u1'
        >>> EntityRef.vendor("v1").path
        'vendors/v1'
    """

    collection: str
    id: str

    def __post_init__(self) -> None:
        if self.collection not in (USERS, VENDORS):
            raise ValueError(
                f"Metrics are kept only on '{USERS}' or '{VENDORS}' documents, "
                f"got '{self.collection}'"
            )
        if not self.id:
            raise ValueError("Entity id cannot be empty")

    @classmethod
    def student(cls, identity_id: str) -> "EntityRef":
        return cls(USERS, identity_id)

    @classmethod
    def vendor(cls, vendor_id: str) -> "EntityRef":
        return cls(VENDORS, vendor_id)

    @property
    def path(self) -> str:
        return document_path(self.collection, self.id)

    @property
    def counters(self) -> Tuple[str, ...]:
        return STUDENT_COUNTERS if self.collection == USERS else VENDOR_COUNTERS

    @property
    def side(self) -> str:
        """Key of this entity in an order's ``metricsApplied`` map."""
        return "student" if self.collection == USERS else "vendor"

    def order_deltas(self, item_price: float, servings: int) -> Dict[str, Number]:
        """Counter increments one order contributes to this entity."""
        if self.collection == USERS:
            return {MONEY_SAVED: item_price, MEALS_RESCUED: servings}
        return {TOTAL_REVENUE: item_price, MEALS_SHARED: servings, ORDERS_COMPLETED: 1}

    def __str__(self) -> str:
        return self.path


def normalize_counter(key: str, value: Number) -> Number:
    """Round currency counters to cents, keep integer counters as int."""
    if key in CURRENCY_COUNTERS:
        return round(float(value), 2)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def validate_deltas(deltas: Mapping[str, Number]) -> Dict[str, Number]:
    """Check that every delta is a real number (bools rejected).

    Raises:
        ValueError: If a key is empty or a delta is not numeric
    """
    checked: Dict[str, Number] = {}
    for key, delta in deltas.items():
        if not key or "." in key:
            raise ValueError(f"Invalid counter name: {key!r}")
        if isinstance(delta, bool) or not isinstance(delta, Real):
            raise ValueError(f"Delta for '{key}' must be a number, got {delta!r}")
        checked[key] = delta
    return checked


def zeroed(counters: Tuple[str, ...]) -> Dict[str, Number]:
    """Zero value for each counter (0.0 for currency, 0 otherwise)."""
    return {key: (0.0 if key in CURRENCY_COUNTERS else 0) for key in counters}
