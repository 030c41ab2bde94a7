"""Session value object and state machine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.profiles import Profile
from domain.identity.core.value_objects.role import Role


class SessionState(str, Enum):
    """UNKNOWN -> AUTHENTICATING -> {AUTHENTICATED | ANONYMOUS}.

    AUTHENTICATED returns to ANONYMOUS only through sign-out or remote
    session invalidation.
    """

    UNKNOWN = "unknown"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Session:
    """Snapshot of the authenticated-session state.

    Attributes:
        state: Current state machine state
        identity: Present only when AUTHENTICATED
        profile: Role-specific profile of the identity
        degraded: True when the profile is a default because its documents
            could not be fetched
    """

    state: SessionState
    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    degraded: bool = False

    def __post_init__(self) -> None:
        """Validate identity presence against state."""
        if self.state is SessionState.AUTHENTICATED and self.identity is None:
            raise ValueError("AUTHENTICATED session requires an identity")
        if self.state is not SessionState.AUTHENTICATED and self.identity is not None:
            raise ValueError(f"{self.state.value} session cannot carry an identity")

    @staticmethod
    def unknown() -> "Session":
        return Session(SessionState.UNKNOWN)

    @staticmethod
    def authenticating() -> "Session":
        return Session(SessionState.AUTHENTICATING)

    @staticmethod
    def anonymous() -> "Session":
        return Session(SessionState.ANONYMOUS)

    @staticmethod
    def authenticated(
        identity: Identity, profile: Optional[Profile], degraded: bool = False
    ) -> "Session":
        return Session(SessionState.AUTHENTICATED, identity, profile, degraded)

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def role(self) -> Optional[Role]:
        return self.identity.role if self.identity else None
