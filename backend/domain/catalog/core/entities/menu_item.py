"""MenuItem entity."""

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping
import uuid


@dataclass(frozen=True)
class MenuItem:
    """Discounted item offered by a vendor.

    Child of exactly one vendor, stored at
    ``vendors/{vendor_id}/menuItems/{id}``; no lifecycle beyond its parent.

    Invariants:
    - price >= 0 and 0 <= discount_price <= price
    - serves >= 1
    """

    id: str
    vendor_id: str
    name: str
    description: str
    price: float
    discount_price: float
    serves: int = 1
    is_available: bool = True

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.name.strip():
            raise ValueError("Menu item name cannot be empty")
        if self.price < 0:
            raise ValueError(f"price cannot be negative: {self.price}")
        if not 0 <= self.discount_price <= self.price:
            raise ValueError(
                f"discount_price must be within 0..price: {self.discount_price} > {self.price}"
            )
        if self.serves < 1:
            raise ValueError(f"serves must be at least 1: {self.serves}")

    @staticmethod
    def create(
        vendor_id: str,
        name: str,
        description: str,
        price: float,
        discount_price: float,
        serves: int = 1,
    ) -> "MenuItem":
        return MenuItem(
            id=str(uuid.uuid4()),
            vendor_id=vendor_id,
            name=name.strip(),
            description=description.strip(),
            price=round(float(price), 2),
            discount_price=round(float(discount_price), 2),
            serves=serves,
        )

    def with_availability(self, is_available: bool) -> "MenuItem":
        return replace(self, is_available=is_available)

    def matches(self, query: str) -> bool:
        """Case-insensitive match on name or description."""
        needle = query.lower()
        return needle in self.name.lower() or needle in self.description.lower()

    def to_document(self) -> Dict[str, Any]:
        return {
            "vendorId": self.vendor_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "discountPrice": self.discount_price,
            "serves": self.serves,
            "isAvailable": self.is_available,
        }

    @staticmethod
    def from_document(item_id: str, data: Mapping[str, Any]) -> "MenuItem":
        return MenuItem(
            id=item_id,
            vendor_id=str(data["vendorId"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            price=float(data["price"]),
            discount_price=float(data["discountPrice"]),
            serves=int(data.get("serves", 1)),
            is_available=bool(data.get("isAvailable", True)),
        )
