"""Domain error taxonomy shared by every bounded context.

All failures that SessionManager, OrderWriter and MetricsAggregator surface
through ``Result`` objects inherit from DomainError, so the caller can decide
whether to retry, alert or silently degrade.
"""

from typing import Any, List, Optional, Sequence


class DomainError(Exception):
    """Base exception for Savorly domain errors."""

    pass


class DuplicateEmailError(DomainError):
    """An identity already exists for this email."""

    def __init__(self, email: str):
        """Initialize with the conflicting email.

        Args:
            email: Email that is already registered
        """
        self.email = email
        super().__init__(f"Email already registered: {email}")


class InvalidCredentialError(DomainError):
    """Email/password pair was rejected by the identity provider."""

    def __init__(self, reason: str = "invalid email or password"):
        """Initialize with rejection reason.

        Args:
            reason: Provider reason code or human-readable message
        """
        self.reason = reason
        super().__init__(f"Invalid credentials: {reason}")


class EntityNotFoundError(DomainError):
    """Document addressed by a key path does not exist."""

    def __init__(self, path: str):
        """Initialize with the missing document path.

        Args:
            path: Document path (e.g. ``vendors/abc``)
        """
        self.path = path
        super().__init__(f"Entity not found: {path}")


class NetworkError(DomainError):
    """Transport failure while talking to a remote adapter."""

    def __init__(self, operation: str, reason: str):
        """Initialize with the failed operation.

        Args:
            operation: Adapter operation that failed (e.g. ``get_document``)
            reason: Underlying transport error message
        """
        self.operation = operation
        self.reason = reason
        super().__init__(f"Network error during {operation}: {reason}")


class PartialWriteError(DomainError):
    """A multi-step write completed only part of its steps.

    Attributes:
        operation: Name of the multi-step operation (``sign_up``, ``reserve``)
        completed_steps: Steps that were applied
        failed_steps: Steps that failed
        compensated: True when every applied step was undone
        order: Created order for reservations whose aggregates failed
        cause: First underlying exception
    """

    def __init__(
        self,
        operation: str,
        completed_steps: Sequence[str],
        failed_steps: Sequence[str],
        compensated: bool = False,
        order: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.completed_steps: List[str] = list(completed_steps)
        self.failed_steps: List[str] = list(failed_steps)
        self.compensated = compensated
        self.order = order
        self.cause = cause
        state = "compensated" if compensated else "not compensated"
        super().__init__(
            f"Partial write in {operation}: failed {self.failed_steps} "
            f"after {self.completed_steps} ({state})"
        )


class InvalidOrderTransitionError(DomainError):
    """Order status change not allowed by the order state machine."""

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{requested}'"
        )


class ItemUnavailableError(DomainError):
    """Menu item exists but is not currently offered."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Menu item not available: {path}")


class NonNumericFieldError(DomainError):
    """A counter update hit a stored value that is not a number."""

    def __init__(self, path: str, field: str):
        self.path = path
        self.field = field
        super().__init__(f"Field '{field}' of {path} is not numeric")


class SessionDisposedError(DomainError):
    """Operation attempted on a SessionManager after dispose()."""

    def __init__(self) -> None:
        super().__init__("Session manager has been disposed")
