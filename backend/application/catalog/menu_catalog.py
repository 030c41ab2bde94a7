"""MenuCatalog - vendor menu management and cross-vendor search."""

from dataclasses import dataclass
import logging
from typing import List, Optional

from domain.catalog.core.entities.menu_item import MenuItem
from domain.identity.core.entities.profiles import VendorProfile
from domain.shared.errors import EntityNotFoundError
from domain.shared.paths import VENDORS, menu_item_path, menu_items_collection, vendor_path
from domain.shared.ports.remote_store import IRemoteStore, QueryFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuListing:
    """Available item together with the vendor offering it."""

    vendor: VendorProfile
    item: MenuItem


class MenuCatalog:
    """
    Menu items live under ``vendors/{vendorId}/menuItems/{itemId}``.

    Example:
        >>> catalog = MenuCatalog(store)
        >>> item = await catalog.add_item("v1", "Pad Thai", "Rice noodles", 12.0, 6.29, serves=2)
        >>> [listing.item.name for listing in await catalog.search_items("noodle")]
        ['Pad Thai']
    """

    def __init__(self, store: IRemoteStore):
        self._store = store

    async def add_item(
        self,
        vendor_id: str,
        name: str,
        description: str,
        price: float,
        discount_price: float,
        serves: int = 1,
    ) -> MenuItem:
        """
        Add an available item to a vendor's menu.

        Raises:
            EntityNotFoundError: If the vendor does not exist
            ValueError: If prices or serves are invalid
        """
        await self._require_vendor(vendor_id)
        item = MenuItem.create(vendor_id, name, description, price, discount_price, serves)
        await self._store.set_document(menu_item_path(vendor_id, item.id), item.to_document())
        logger.info("Menu item added", extra={"vendor_id": vendor_id, "item_id": item.id})
        return item

    async def remove_item(self, vendor_id: str, item_id: str) -> None:
        await self._store.delete_document(menu_item_path(vendor_id, item_id))
        logger.info("Menu item removed", extra={"vendor_id": vendor_id, "item_id": item_id})

    async def set_availability(self, vendor_id: str, item_id: str, is_available: bool) -> MenuItem:
        """
        Mark an item as offered or sold out.

        Raises:
            EntityNotFoundError: If the item does not exist
        """
        path = menu_item_path(vendor_id, item_id)
        document = await self._store.get_document(path)
        if document is None:
            raise EntityNotFoundError(path)
        item = MenuItem.from_document(item_id, document.data).with_availability(is_available)
        await self._store.set_document(path, {"isAvailable": is_available}, merge=True)
        return item

    async def list_items(self, vendor_id: str, available_only: bool = False) -> List[MenuItem]:
        """Items of one vendor, sorted by name."""
        filters = [QueryFilter("isAvailable", "==", True)] if available_only else []
        documents = await self._store.query_documents(menu_items_collection(vendor_id), filters)
        items = [MenuItem.from_document(d.id, d.data) for d in documents]
        return sorted(items, key=lambda item: item.name.lower())

    async def list_vendors(self, category: Optional[str] = None) -> List[VendorProfile]:
        """Vendors, optionally restricted to one category, sorted by name."""
        filters = [QueryFilter("category", "==", category)] if category else []
        documents = await self._store.query_documents(VENDORS, filters)
        vendors = [VendorProfile.from_document(d.id, d.data) for d in documents]
        return sorted(vendors, key=lambda vendor: vendor.name.lower())

    async def search_items(
        self, query: Optional[str] = None, serves_min: Optional[int] = None
    ) -> List[MenuListing]:
        """
        Search available items across all vendors.

        Args:
            query: Case-insensitive text matched against item name,
                description and vendor name (None matches everything)
            serves_min: Minimum servings per item

        Returns:
            Listings sorted by discounted price, then item name
        """
        needle = query.strip().lower() if query else ""
        listings: List[MenuListing] = []

        for vendor in await self.list_vendors():
            vendor_match = bool(needle) and needle in vendor.name.lower()
            for item in await self.list_items(vendor.identity_id, available_only=True):
                if serves_min is not None and item.serves < serves_min:
                    continue
                if needle and not vendor_match and not item.matches(needle):
                    continue
                listings.append(MenuListing(vendor=vendor, item=item))

        return sorted(
            listings, key=lambda listing: (listing.item.discount_price, listing.item.name.lower())
        )

    async def _require_vendor(self, vendor_id: str) -> None:
        if await self._store.get_document(vendor_path(vendor_id)) is None:
            raise EntityNotFoundError(vendor_path(vendor_id))
