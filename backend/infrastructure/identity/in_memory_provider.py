"""In-memory identity provider for tests and local development."""

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional
import uuid

from domain.identity.auth.ports.identity_provider import (
    AuthStateCallback,
    AuthUser,
    IIdentityProvider,
    Unsubscribe,
)
from domain.shared.errors import DuplicateEmailError, InvalidCredentialError
from infrastructure.identity.auth_state import AuthStateBroadcaster

logger = logging.getLogger(__name__)


@dataclass
class _Account:
    uid: str
    email: str
    password: str


class InMemoryIdentityProvider(IIdentityProvider):
    """
    In-memory implementation of IIdentityProvider.

    Emails are matched case-insensitively. Besides the port operations it
    exposes hooks to simulate provider-driven transitions:
    ``simulate_token_refresh`` and ``simulate_session_invalidation``.

    Examples:
        >>> provider = InMemoryIdentityProvider()
        >>> user = await provider.create_account("ana@campus.edu", "secret1")
        >>> await provider.simulate_session_invalidation()
        >>> provider.current_user is None
        True
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, _Account] = {}
        self._current: Optional[AuthUser] = None
        self._broadcaster = AuthStateBroadcaster()
        self.password_resets: List[str] = []

    async def create_account(self, email: str, password: str) -> AuthUser:
        key = email.strip().lower()
        if key in self._accounts:
            raise DuplicateEmailError(email)
        account = _Account(uid=str(uuid.uuid4()), email=email.strip(), password=password)
        self._accounts[key] = account
        logger.info("Account created", extra={"uid": account.uid})
        return await self._start_session(account)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        account = self._accounts.get(email.strip().lower())
        if account is None or account.password != password:
            raise InvalidCredentialError()
        return await self._start_session(account)

    async def sign_out(self) -> None:
        if self._current is None:
            return
        self._current = None
        await self._broadcaster.emit(None)

    async def delete_account(self, user: AuthUser) -> None:
        key = user.email.strip().lower()
        account = self._accounts.get(key)
        if account is not None and account.uid == user.uid:
            del self._accounts[key]
            logger.info("Account deleted", extra={"uid": user.uid})
        if self._current is not None and self._current.uid == user.uid:
            self._current = None
            await self._broadcaster.emit(None)

    async def send_password_reset(self, email: str) -> None:
        # Unknown emails are accepted silently, like the hosted provider
        if email.strip().lower() in self._accounts:
            self.password_resets.append(email.strip())

    def observe_auth_state(self, callback: AuthStateCallback) -> Unsubscribe:
        return self._broadcaster.subscribe(callback)

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current

    async def simulate_token_refresh(self) -> None:
        """Re-emit the current user as a refreshed session."""
        if self._current is None:
            raise RuntimeError("No active session to refresh")
        self._current = AuthUser(
            uid=self._current.uid,
            email=self._current.email,
            id_token=f"token-{uuid.uuid4()}",
            refresh_token=self._current.refresh_token,
        )
        await self._broadcaster.emit(self._current)

    async def simulate_session_invalidation(self) -> None:
        """End the session from the provider side (revoked or disabled account)."""
        self._current = None
        await self._broadcaster.emit(None)

    def account_count(self) -> int:
        return len(self._accounts)

    async def _start_session(self, account: _Account) -> AuthUser:
        self._current = AuthUser(
            uid=account.uid,
            email=account.email,
            id_token=f"token-{uuid.uuid4()}",
            refresh_token=f"refresh-{uuid.uuid4()}",
        )
        await self._broadcaster.emit(self._current)
        return self._current
