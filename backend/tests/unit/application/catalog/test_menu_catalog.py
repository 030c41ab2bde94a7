"""Unit tests for MenuCatalog."""

import pytest
import pytest_asyncio

from application.catalog.menu_catalog import MenuCatalog
from domain.shared.errors import EntityNotFoundError


@pytest_asyncio.fixture
async def catalog(seeded_store, seed):
    """Catalog with two vendors and a few items."""
    await seed(
        seeded_store,
        "vendor-2",
        "thai@campus.edu",
        {"role": "vendor", "name": "Thai Corner", "category": "Asian"},
    )
    catalog = MenuCatalog(seeded_store)
    await catalog.add_item("vendor-1", "Bagel", "Sesame bagel", 3.0, 1.5)
    await catalog.add_item("vendor-1", "Lasagna Tray", "Family tray", 20.0, 9.0, serves=4)
    await catalog.add_item("vendor-2", "Pad Thai", "Rice noodles", 12.0, 6.29, serves=2)
    return catalog


class TestMenuCatalog:
    """Test menu management and search."""

    @pytest.mark.asyncio
    async def test_add_item_requires_vendor(self, store) -> None:
        """Test items cannot be added for an unknown vendor."""
        with pytest.raises(EntityNotFoundError):
            await MenuCatalog(store).add_item("ghost", "Soup", "", 4.0, 2.0)

    @pytest.mark.asyncio
    async def test_list_items_sorted_by_name(self, catalog) -> None:
        """Test a vendor's items come back alphabetically."""
        items = await catalog.list_items("vendor-1")

        assert [item.name for item in items] == ["Bagel", "Lasagna Tray"]

    @pytest.mark.asyncio
    async def test_sold_out_items_hidden(self, catalog) -> None:
        """Test available_only and search skip sold-out items."""
        bagel = (await catalog.list_items("vendor-1"))[0]

        updated = await catalog.set_availability("vendor-1", bagel.id, False)

        assert not updated.is_available
        available = await catalog.list_items("vendor-1", available_only=True)
        assert [item.name for item in available] == ["Lasagna Tray"]
        assert "Bagel" not in [listing.item.name for listing in await catalog.search_items()]

    @pytest.mark.asyncio
    async def test_set_availability_unknown_item(self, catalog) -> None:
        """Test toggling a missing item raises EntityNotFoundError."""
        with pytest.raises(EntityNotFoundError):
            await catalog.set_availability("vendor-1", "missing", True)

    @pytest.mark.asyncio
    async def test_remove_item(self, catalog) -> None:
        """Test removed items disappear from listings."""
        bagel = (await catalog.list_items("vendor-1"))[0]

        await catalog.remove_item("vendor-1", bagel.id)

        assert [item.name for item in await catalog.list_items("vendor-1")] == ["Lasagna Tray"]

    @pytest.mark.asyncio
    async def test_list_vendors_by_category(self, catalog) -> None:
        """Test vendors are filtered by category and sorted by name."""
        all_vendors = await catalog.list_vendors()
        asian = await catalog.list_vendors("Asian")

        assert [v.name for v in all_vendors] == ["Campus Cafe", "Thai Corner"]
        assert [v.identity_id for v in asian] == ["vendor-2"]

    @pytest.mark.asyncio
    async def test_search_sorted_by_discount_price(self, catalog) -> None:
        """Test an empty query lists every available item, cheapest first."""
        listings = await catalog.search_items()

        assert [listing.item.name for listing in listings] == ["Bagel", "Pad Thai", "Lasagna Tray"]

    @pytest.mark.asyncio
    async def test_search_by_text_and_vendor_name(self, catalog) -> None:
        """Test text matches item fields or the vendor name."""
        by_item = await catalog.search_items("NOODLE")
        by_vendor = await catalog.search_items("campus cafe")

        assert [listing.item.name for listing in by_item] == ["Pad Thai"]
        assert by_item[0].vendor.name == "Thai Corner"
        assert {listing.item.name for listing in by_vendor} == {"Bagel", "Lasagna Tray"}

    @pytest.mark.asyncio
    async def test_search_serves_min(self, catalog) -> None:
        """Test serves_min drops items that feed fewer people."""
        listings = await catalog.search_items(serves_min=2)

        assert [listing.item.name for listing in listings] == ["Pad Thai", "Lasagna Tray"]
