"""Unit tests for counter definitions."""

import pytest

from domain.metrics.core.counters import (
    EntityRef,
    normalize_counter,
    validate_deltas,
    zeroed,
    STUDENT_COUNTERS,
    VENDOR_COUNTERS,
)


class TestEntityRef:
    """Test EntityRef."""

    def test_student_and_vendor_refs(self) -> None:
        """Test refs map to users/ and vendors/ documents."""
        assert EntityRef.student("u1").path == "users/u1"
        assert EntityRef.vendor("v1").path == "vendors/v1"
        assert EntityRef.student("u1").counters == STUDENT_COUNTERS
        assert EntityRef.vendor("v1").counters == VENDOR_COUNTERS

    def test_other_collections_rejected(self) -> None:
        """Test counters cannot be kept on orders."""
        with pytest.raises(ValueError, match="Metrics are kept only"):
            EntityRef("orders", "o1")


class TestDeltas:
    """Test delta validation and normalization."""

    def test_negative_deltas_allowed(self) -> None:
        """Test negative values pass validation unchanged."""
        assert validate_deltas({"moneySaved": -2.5}) == {"moneySaved": -2.5}

    @pytest.mark.parametrize("bad", ["5", None, True])
    def test_non_numeric_rejected(self, bad: object) -> None:
        """Test strings, None and bools are not deltas."""
        with pytest.raises(ValueError, match="must be a number"):
            validate_deltas({"mealsRescued": bad})  # type: ignore[dict-item]

    def test_dotted_name_rejected(self) -> None:
        """Test counter names cannot address nested fields."""
        with pytest.raises(ValueError, match="Invalid counter name"):
            validate_deltas({"metrics.moneySaved": 1})

    def test_currency_rounded_to_cents(self) -> None:
        """Test float drift is removed from currency counters."""
        assert normalize_counter("moneySaved", 0.1 + 0.2) == 0.3
        assert normalize_counter("mealsRescued", 4.0) == 4

    def test_zeroed(self) -> None:
        """Test zero values keep currency as float."""
        assert zeroed(VENDOR_COUNTERS) == {
            "totalRevenue": 0.0,
            "mealsShared": 0,
            "ordersCompleted": 0,
        }
