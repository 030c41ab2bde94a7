"""Role-specific profile entities and their document mapping."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from domain.metrics.core.counters import (
    MEALS_RESCUED,
    MEALS_SHARED,
    METRICS_FIELD,
    MONEY_SAVED,
    ORDERS_COMPLETED,
    TOTAL_REVENUE,
    normalize_counter,
)


@dataclass(frozen=True)
class StudentMetrics:
    """Aggregate counters of a student."""

    money_saved: float = 0.0
    meals_rescued: int = 0

    def to_document(self) -> Dict[str, Any]:
        return {MONEY_SAVED: self.money_saved, MEALS_RESCUED: self.meals_rescued}

    @staticmethod
    def from_document(data: Optional[Mapping[str, Any]]) -> "StudentMetrics":
        data = data or {}
        return StudentMetrics(
            money_saved=normalize_counter(MONEY_SAVED, data.get(MONEY_SAVED, 0)),
            meals_rescued=int(data.get(MEALS_RESCUED, 0)),
        )


@dataclass(frozen=True)
class VendorMetrics:
    """Aggregate counters of a vendor."""

    total_revenue: float = 0.0
    meals_shared: int = 0
    orders_completed: int = 0

    def to_document(self) -> Dict[str, Any]:
        return {
            TOTAL_REVENUE: self.total_revenue,
            MEALS_SHARED: self.meals_shared,
            ORDERS_COMPLETED: self.orders_completed,
        }

    @staticmethod
    def from_document(data: Optional[Mapping[str, Any]]) -> "VendorMetrics":
        data = data or {}
        return VendorMetrics(
            total_revenue=normalize_counter(TOTAL_REVENUE, data.get(TOTAL_REVENUE, 0)),
            meals_shared=int(data.get(MEALS_SHARED, 0)),
            orders_completed=int(data.get(ORDERS_COMPLETED, 0)),
        )


@dataclass(frozen=True)
class Ratings:
    """Vendor rating summary."""

    average: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"Ratings count cannot be negative: {self.count}")
        if not 0 <= self.average <= 5:
            raise ValueError(f"Ratings average must be within 0..5: {self.average}")

    def to_document(self) -> Dict[str, Any]:
        return {"average": self.average, "count": self.count}

    @staticmethod
    def from_document(data: Optional[Mapping[str, Any]]) -> "Ratings":
        data = data or {}
        return Ratings(
            average=float(data.get("average", 0.0)),
            count=int(data.get("count", 0)),
        )


@dataclass(frozen=True)
class StudentProfile:
    """Profile of a student, stored at ``users/{identity_id}``.

    Owned exclusively by its identity. Metrics are mutated only through
    MetricsAggregator / MetricsReconciler, never through profile updates.
    """

    identity_id: str
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    metrics: StudentMetrics = field(default_factory=StudentMetrics)

    # Fields a student may edit through ProfileService
    EDITABLE_FIELDS = frozenset({"firstName", "lastName", "displayName"})

    def to_document(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "displayName": self.display_name,
            METRICS_FIELD: self.metrics.to_document(),
        }

    @staticmethod
    def from_document(identity_id: str, data: Mapping[str, Any]) -> "StudentProfile":
        return StudentProfile(
            identity_id=identity_id,
            first_name=str(data.get("firstName", "")),
            last_name=str(data.get("lastName", "")),
            display_name=str(data.get("displayName", "")),
            metrics=StudentMetrics.from_document(data.get(METRICS_FIELD)),
        )

    @staticmethod
    def default(identity_id: str) -> "StudentProfile":
        """Minimal profile used when the profile document cannot be fetched."""
        return StudentProfile(identity_id=identity_id)


@dataclass(frozen=True)
class VendorProfile:
    """Profile of a vendor, stored at ``vendors/{identity_id}``."""

    identity_id: str
    name: str = ""
    category: str = ""
    address: str = ""
    phone: str = ""
    hours: str = ""
    description: str = ""
    ratings: Ratings = field(default_factory=Ratings)
    metrics: VendorMetrics = field(default_factory=VendorMetrics)

    EDITABLE_FIELDS = frozenset(
        {"name", "category", "address", "phone", "hours", "description"}
    )

    def to_document(self) -> Dict[str, Any]:
        return {
            "identityId": self.identity_id,
            "name": self.name,
            "category": self.category,
            "address": self.address,
            "phone": self.phone,
            "hours": self.hours,
            "description": self.description,
            "ratings": self.ratings.to_document(),
            METRICS_FIELD: self.metrics.to_document(),
        }

    @staticmethod
    def from_document(identity_id: str, data: Mapping[str, Any]) -> "VendorProfile":
        return VendorProfile(
            identity_id=identity_id,
            name=str(data.get("name", "")),
            category=str(data.get("category", "")),
            address=str(data.get("address", "")),
            phone=str(data.get("phone", "")),
            hours=str(data.get("hours", "")),
            description=str(data.get("description", "")),
            ratings=Ratings.from_document(data.get("ratings")),
            metrics=VendorMetrics.from_document(data.get(METRICS_FIELD)),
        )

    @staticmethod
    def default(identity_id: str) -> "VendorProfile":
        return VendorProfile(identity_id=identity_id)


Profile = Union[StudentProfile, VendorProfile]
