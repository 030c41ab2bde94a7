"""Unit tests for document key paths."""

import pytest

from domain.shared.paths import (
    document_path,
    menu_item_path,
    menu_items_collection,
    split_document_path,
    user_path,
    validate_collection_path,
    vendor_path,
)


class TestPaths:
    """Test path building and validation."""

    def test_entity_paths(self) -> None:
        """Test helpers build the canonical paths."""
        assert user_path("u1") == "users/u1"
        assert vendor_path("v1") == "vendors/v1"
        assert menu_items_collection("v1") == "vendors/v1/menuItems"
        assert menu_item_path("v1", "m1") == "vendors/v1/menuItems/m1"

    def test_split_nested_document_path(self) -> None:
        """Test splitting a subcollection document path."""
        assert split_document_path("vendors/v1/menuItems/m1") == ("vendors/v1/menuItems", "m1")

    def test_collection_path_is_not_a_document(self) -> None:
        """Test odd segment counts are rejected as document paths."""
        with pytest.raises(ValueError, match="Not a document path"):
            split_document_path("vendors/v1/menuItems")
        with pytest.raises(ValueError):
            document_path("users")

    def test_document_path_is_not_a_collection(self) -> None:
        """Test even segment counts are rejected as collection paths."""
        with pytest.raises(ValueError, match="Not a collection path"):
            validate_collection_path("users/u1")

    def test_empty_segment_rejected(self) -> None:
        """Test empty ids cannot produce a valid path."""
        with pytest.raises(ValueError):
            user_path("")
        with pytest.raises(ValueError, match="empty segment"):
            split_document_path("vendors//menuItems/m1")
