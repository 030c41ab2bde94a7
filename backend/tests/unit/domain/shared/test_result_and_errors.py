"""Unit tests for Result and the shared error taxonomy."""

import pytest

from domain.shared.errors import (
    DomainError,
    EntityNotFoundError,
    NetworkError,
    PartialWriteError,
)
from domain.shared.result import Result


class TestResult:
    """Test Result success/failure semantics."""

    def test_success_carries_value(self) -> None:
        """Test success result exposes its value."""
        result = Result.success(42)

        assert result.ok
        assert result.error is None
        assert result.unwrap() == 42

    def test_success_without_value(self) -> None:
        """Test success result for operations returning nothing."""
        assert Result.success().ok

    def test_failure_unwrap_raises_error(self) -> None:
        """Test unwrap re-raises the carried domain error."""
        result: Result[int] = Result.failure(EntityNotFoundError("users/x"))

        assert not result.ok
        with pytest.raises(EntityNotFoundError, match="users/x"):
            result.unwrap()

    def test_value_and_error_rejected(self) -> None:
        """Test a result cannot be both success and failure."""
        with pytest.raises(ValueError):
            Result(value=1, error=NetworkError("get_document", "boom"))


class TestErrors:
    """Test error payloads."""

    def test_all_errors_are_domain_errors(self) -> None:
        """Test callers can catch the whole taxonomy with DomainError."""
        assert isinstance(NetworkError("sign_in", "timeout"), DomainError)
        assert isinstance(EntityNotFoundError("vendors/v1"), DomainError)

    def test_partial_write_error_payload(self) -> None:
        """Test PartialWriteError keeps steps, compensation flag and order."""
        order = object()
        error = PartialWriteError(
            "reserve",
            ["create_order"],
            ["vendor_metrics"],
            order=order,
        )

        assert error.completed_steps == ["create_order"]
        assert error.failed_steps == ["vendor_metrics"]
        assert error.compensated is False
        assert error.order is order
        assert "not compensated" in str(error)
