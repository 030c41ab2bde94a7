"""Typed operation result.

Use cases return ``Result`` instead of raising domain errors so the UI layer
decides whether to retry, alert or degrade.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from domain.shared.errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a use case: a value on success, a DomainError on failure.

    Examples:
        >>> result = Result.success(42)
        >>> result.ok
        True
        >>> result.unwrap()
        42

        >>> failed = Result.failure(EntityNotFoundError("users/x"))
        >>> failed.ok
        False
    """

    value: Optional[T] = None
    error: Optional[DomainError] = None

    def __post_init__(self) -> None:
        """Validate that a failure always carries an error."""
        if self.error is not None and self.value is not None:
            raise ValueError("Result cannot carry both a value and an error")

    @property
    def ok(self) -> bool:
        """True when the operation succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        """Build a successful result."""
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        """Build a failed result."""
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error.

        Raises:
            DomainError: The error of a failed result
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
