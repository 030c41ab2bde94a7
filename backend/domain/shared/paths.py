"""Document key paths used against the remote store.

Paths alternate collection and document segments: ``users/{id}``,
``vendors/{id}/menuItems/{itemId}``. A document path has an even number of
segments, a collection path an odd number.
"""

from typing import Tuple

USERS = "users"
VENDORS = "vendors"
ORDERS = "orders"
MENU_ITEMS = "menuItems"


def _segments(path: str) -> Tuple[str, ...]:
    segments = tuple(path.strip("/").split("/"))
    if any(not s for s in segments):
        raise ValueError(f"Invalid path (empty segment): '{path}'")
    return segments


def document_path(*segments: str) -> str:
    """Join segments into a document path.

    Raises:
        ValueError: If the segment count is odd or any segment is empty
    """
    path = "/".join(segments)
    if len(_segments(path)) % 2 != 0:
        raise ValueError(f"Not a document path: '{path}'")
    return path


def split_document_path(path: str) -> Tuple[str, str]:
    """Split a document path into (collection_path, document_id).

    Examples:
        >>> split_document_path("vendors/v1/menuItems/m1")
        ('vendors/v1/menuItems', 'm1')
    """
    segments = _segments(path)
    if len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: '{path}'")
    return "/".join(segments[:-1]), segments[-1]


def validate_collection_path(path: str) -> str:
    """Return the normalized collection path.

    Raises:
        ValueError: If the path addresses a document instead of a collection
    """
    segments = _segments(path)
    if len(segments) % 2 != 1:
        raise ValueError(f"Not a collection path: '{path}'")
    return "/".join(segments)


def user_path(identity_id: str) -> str:
    return document_path(USERS, identity_id)


def vendor_path(vendor_id: str) -> str:
    return document_path(VENDORS, vendor_id)


def order_path(order_id: str) -> str:
    return document_path(ORDERS, order_id)


def menu_items_collection(vendor_id: str) -> str:
    return f"{VENDORS}/{vendor_id}/{MENU_ITEMS}"


def menu_item_path(vendor_id: str, item_id: str) -> str:
    return document_path(VENDORS, vendor_id, MENU_ITEMS, item_id)
