"""Role value object."""

from enum import Enum


class Role(str, Enum):
    """Role held by an identity for its whole lifetime.

    Decides which profile document schema is materialized at sign-up.
    There is no migration path between roles.
    """

    STUDENT = "student"
    VENDOR = "vendor"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Parse a role from a stored or user-supplied value.

        Args:
            value: Role instance or case-insensitive role name

        Returns:
            Matching Role

        Raises:
            ValueError: If the value is not a known role
        """
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown role: {value!r}. Expected 'student' or 'vendor'")
