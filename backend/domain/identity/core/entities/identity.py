"""Identity entity."""

from dataclasses import dataclass
from datetime import datetime

from domain.identity.core.value_objects.role import Role


@dataclass(frozen=True)
class Identity:
    """Authenticated principal (email + role), independent of profile data.

    Invariants:
    - id is assigned by the identity provider and never changes
    - role is fixed for the lifetime of the identity
    - created_at is timezone-aware

    Examples:
        >>> identity = Identity(
        ...     id="uid-1",
        ...     email="ana@berkeley.edu",
        ...     role=Role.STUDENT,
        ...     created_at=datetime.now(timezone.utc),
        ... )
        >>> identity.is_vendor
        False
    """

    id: str
    email: str
    role: Role
    created_at: datetime

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.id:
            raise ValueError("Identity id cannot be empty")
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware (use UTC)")

    @property
    def is_vendor(self) -> bool:
        return self.role is Role.VENDOR

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT
