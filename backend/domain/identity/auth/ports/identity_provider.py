"""Identity provider port (interface)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional


@dataclass(frozen=True)
class AuthUser:
    """Identity as reported by the provider.

    Attributes:
        uid: Provider-assigned identity id
        email: Account email
        id_token: Short-lived session token (None for in-memory sessions)
        refresh_token: Token used to renew id_token
        expires_at: Expiry of id_token (timezone-aware)
    """

    uid: str
    email: str
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None


# Receives the current user, or None when the session ended
AuthStateCallback = Callable[[Optional[AuthUser]], Awaitable[None]]
Unsubscribe = Callable[[], None]


class IIdentityProvider(ABC):
    """Remote identity provider interface.

    Abstracts the hosted identity service (Firebase Authentication in
    production). Allows in-memory doubles in tests.

    Implementations translate failures into the shared taxonomy:
    - DuplicateEmailError: account already exists
    - InvalidCredentialError: email/password rejected
    - NetworkError: transport failure or unexpected provider error

    The auth-state stream fires with the current user on every transition
    (sign-in, sign-up, sign-out, token refresh) and with None when the
    remote session is invalidated.
    """

    @abstractmethod
    async def create_account(self, email: str, password: str) -> AuthUser:
        """Create an account and sign it in.

        Raises:
            DuplicateEmailError: Email already has an account
            NetworkError: Transport failure
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser:
        """Sign in with email and password.

        Raises:
            InvalidCredentialError: Credentials rejected
            NetworkError: Transport failure
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session.

        Raises:
            NetworkError: Remote revocation failed (local state is still cleared)
        """
        pass

    @abstractmethod
    async def delete_account(self, user: AuthUser) -> None:
        """Delete an account (used to compensate a failed sign-up)."""
        pass

    @abstractmethod
    async def send_password_reset(self, email: str) -> None:
        """Send a password reset email."""
        pass

    @abstractmethod
    def observe_auth_state(self, callback: AuthStateCallback) -> Unsubscribe:
        """Subscribe to auth-state transitions.

        Returns:
            Function that removes the subscription
        """
        pass

    @property
    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        """User of the active session, if any."""
        pass
