"""SessionManager - authenticated-session lifecycle and profile resolution."""

from datetime import datetime, timezone
from functools import partial
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

from cachetools import TTLCache

from application.identity.profile_service import ProfileService
from application.shared.saga import Saga, SagaStep
from domain.identity.auth.ports.identity_provider import (
    AuthUser,
    IIdentityProvider,
    Unsubscribe,
)
from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.profiles import Profile, StudentProfile
from domain.identity.core.services.role_resolver import RoleData, RoleResolver
from domain.identity.core.session import Session, SessionState
from domain.identity.core.value_objects.role import Role
from domain.shared.errors import DomainError, PartialWriteError, SessionDisposedError
from domain.shared.paths import user_path, vendor_path
from domain.shared.ports.remote_store import IRemoteStore
from domain.shared.result import Result

logger = logging.getLogger(__name__)

SessionObserver = Callable[[Session], Awaitable[None]]


class SessionManager:
    """
    Own the authenticated session: sign-up, sign-in, sign-out and the
    session stream consumed by the UI.

    Lifecycle: construct, ``start()`` to subscribe to the identity provider,
    ``dispose()`` to release it. Any operation after dispose raises
    SessionDisposedError.

    Session states: UNKNOWN -> AUTHENTICATING -> AUTHENTICATED | ANONYMOUS.
    Provider auth-state emissions received while a sign-in or sign-up is in
    flight are ignored; the operation publishes its own outcome.

    A profile that cannot be fetched after a successful sign-in does not
    fail the session: it degrades to a default student profile with
    ``degraded=True``.

    Example:
        >>> manager = SessionManager(provider, store)
        >>> await manager.start()
        >>> unsubscribe = await manager.observe_session(render)
        >>> result = await manager.sign_up(
        ...     "ana@campus.edu", "secret1", {"role": "student", "firstName": "Ana"}
        ... )
        >>> result.value.role
        <Role.STUDENT: 'student'>
    """

    def __init__(
        self,
        provider: IIdentityProvider,
        store: IRemoteStore,
        role_resolver: Optional[RoleResolver] = None,
        profile_service: Optional[ProfileService] = None,
        profile_cache_ttl: float = 300.0,
    ):
        """
        Initialize session manager.

        Args:
            provider: Identity provider port
            store: Remote document store
            role_resolver: Sign-up document mapper (default: RoleResolver())
            profile_service: Profile reader (default: ProfileService(store))
            profile_cache_ttl: Seconds a resolved profile is reused on token refresh
        """
        self._provider = provider
        self._store = store
        self._resolver = role_resolver or RoleResolver()
        self._profiles = profile_service or ProfileService(store)
        self._profile_cache: TTLCache[str, Tuple[Identity, Profile]] = TTLCache(
            maxsize=128, ttl=profile_cache_ttl
        )

        self._session = Session.unknown()
        self._observers: List[SessionObserver] = []
        self._unsubscribe_provider: Optional[Unsubscribe] = None
        self._in_flight = 0
        self._started = False
        self._disposed = False

    @property
    def current(self) -> Session:
        """Latest session snapshot."""
        return self._session

    async def start(self) -> None:
        """Subscribe to the identity provider and resolve any restored session."""
        self._ensure_not_disposed()
        if self._started:
            return
        self._started = True
        self._unsubscribe_provider = self._provider.observe_auth_state(self._on_auth_state)

        user = self._provider.current_user
        if user is None:
            await self._publish(Session.anonymous())
            return
        await self._publish(Session.authenticating())
        await self._publish(await self._resolve_session(user))

    async def dispose(self) -> None:
        """Release the provider subscription and drop observers. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        if self._unsubscribe_provider is not None:
            self._unsubscribe_provider()
            self._unsubscribe_provider = None
        self._observers.clear()
        self._profile_cache.clear()
        logger.debug("SessionManager disposed")

    async def observe_session(self, callback: SessionObserver) -> Unsubscribe:
        """
        Register a session observer.

        The callback is invoked immediately with the current session and
        then on every transition. A failing observer is logged and does not
        affect the others.

        Returns:
            Function that removes the observer
        """
        self._ensure_not_disposed()
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        await self._notify(callback, self._session)
        return unsubscribe

    async def sign_up(
        self,
        email: str,
        password: str,
        role_data: Union[RoleData, Mapping[str, Any]],
    ) -> Result[Identity]:
        """
        Create an identity and its profile documents.

        Profile writes run as a saga: each write is retried once; if one
        still fails, written documents and the provider account are removed.

        Args:
            email: Account email
            password: Account password
            role_data: RoleData or ``{"role": "student"|"vendor", **fields}``

        Returns:
            Result with the new Identity. Failures: DuplicateEmailError,
            InvalidCredentialError, NetworkError, PartialWriteError

        Raises:
            ValueError: If role_data has no valid role
        """
        self._ensure_ready()
        if not isinstance(role_data, RoleData):
            role_data = RoleData.from_mapping(role_data)

        previous = self._session
        self._in_flight += 1
        try:
            await self._publish(Session.authenticating())
            try:
                user = await self._provider.create_account(email, password)
            except DomainError as e:
                logger.info("Sign-up rejected", extra={"error": str(e)})
                await self._publish(previous if previous.is_authenticated else Session.anonymous())
                return Result.failure(e)

            created_at = datetime.now(timezone.utc)
            writes = self._resolver.resolve(user.uid, user.email or email, role_data, created_at)

            saga = Saga("sign_up")
            for write in writes:
                saga.add_step(
                    SagaStep(
                        name=write.path,
                        action=partial(self._store.set_document, write.path, write.data),
                        compensation=partial(self._store.delete_document, write.path),
                        retries=1,
                    )
                )
            outcome = await saga.run()

            if outcome.aborted:
                account_deleted = await self._delete_account(user)
                await self._publish(Session.anonymous())
                return Result.failure(
                    PartialWriteError(
                        "sign_up",
                        outcome.completed,
                        outcome.failed,
                        compensated=outcome.compensated and account_deleted,
                        cause=outcome.first_error,
                    )
                )

            identity = Identity(
                id=user.uid,
                email=user.email or email,
                role=role_data.role,
                created_at=created_at,
            )
            documents = {write.path: write.data for write in writes}
            profile, degraded = self._profiles.build_profile(
                identity,
                documents.get(user_path(user.uid)),
                documents.get(vendor_path(user.uid)),
            )
            if not degraded:
                self._profile_cache[identity.id] = (identity, profile)

            logger.info(
                "Identity signed up",
                extra={"identity_id": identity.id, "role": identity.role.value},
            )
            await self._publish(Session.authenticated(identity, profile, degraded))
            return Result.success(identity)
        finally:
            self._in_flight -= 1

    async def sign_in(self, email: str, password: str) -> Result[Identity]:
        """
        Sign in with email and password.

        Returns:
            Result with the Identity. Failures: InvalidCredentialError,
            NetworkError
        """
        self._ensure_ready()
        previous = self._session
        self._in_flight += 1
        try:
            await self._publish(Session.authenticating())
            try:
                user = await self._provider.sign_in(email, password)
            except DomainError as e:
                logger.info("Sign-in rejected", extra={"error": str(e)})
                await self._publish(previous if previous.is_authenticated else Session.anonymous())
                return Result.failure(e)

            session = await self._resolve_session(user, use_cache=False)
            await self._publish(session)
            return Result.success(session.identity)
        finally:
            self._in_flight -= 1

    async def sign_out(self) -> None:
        """
        End the session. Always succeeds locally, even if the provider call
        fails or the manager was never started.
        """
        self._ensure_not_disposed()
        try:
            await self._provider.sign_out()
        except Exception as e:
            logger.warning(
                "Provider sign-out failed, clearing local session",
                extra={"error": str(e)},
                exc_info=True,
            )
        self._profile_cache.clear()
        if self._session.state is not SessionState.ANONYMOUS:
            await self._publish(Session.anonymous())

    async def reset_password(self, email: str) -> Result[None]:
        """Ask the provider to send a password reset email."""
        self._ensure_ready()
        try:
            await self._provider.send_password_reset(email)
        except DomainError as e:
            return Result.failure(e)
        return Result.success()

    async def refresh_profile(self) -> Result[Identity]:
        """
        Re-read the current identity's profile, bypassing the cache.

        A failed read keeps the current session and returns the error.

        Raises:
            ValueError: If no session is authenticated
        """
        self._ensure_ready()
        if not self._session.is_authenticated or self._session.identity is None:
            raise ValueError("No authenticated session to refresh")

        identity = self._session.identity
        self._profile_cache.pop(identity.id, None)
        try:
            fresh, profile, degraded = await self._profiles.load(identity.id, identity.email)
        except DomainError as e:
            logger.warning(
                "Profile refresh failed", extra={"identity_id": identity.id, "error": str(e)}
            )
            return Result.failure(e)

        if not degraded:
            self._profile_cache[fresh.id] = (fresh, profile)
        await self._publish(Session.authenticated(fresh, profile, degraded))
        return Result.success(fresh)

    async def _on_auth_state(self, user: Optional[AuthUser]) -> None:
        if self._disposed:
            return
        if self._in_flight:
            logger.debug(
                "Ignoring auth state during sign-in",
                extra={"uid": user.uid if user else None},
            )
            return

        if user is None:
            # Remote invalidation (or sign-out from another caller)
            self._profile_cache.clear()
            if self._session.state is not SessionState.ANONYMOUS:
                logger.info("Session ended by identity provider")
                await self._publish(Session.anonymous())
            return

        current = self._session
        if current.is_authenticated and current.identity and current.identity.id == user.uid:
            # Token refresh: same identity, profile from cache when available
            await self._publish(await self._resolve_session(user))
            return

        await self._publish(Session.authenticating())
        await self._publish(await self._resolve_session(user))

    async def _resolve_session(self, user: AuthUser, use_cache: bool = True) -> Session:
        cached = self._profile_cache.get(user.uid) if use_cache else None
        if cached is not None:
            identity, profile = cached
            return Session.authenticated(identity, profile)

        try:
            identity, profile, degraded = await self._profiles.load(user.uid, user.email)
        except Exception as e:
            logger.warning(
                "Profile fetch failed, using default profile",
                extra={"identity_id": user.uid, "error": str(e)},
                exc_info=True,
            )
            identity = Identity(
                id=user.uid,
                email=user.email,
                role=Role.STUDENT,
                created_at=datetime.now(timezone.utc),
            )
            return Session.authenticated(identity, StudentProfile.default(user.uid), degraded=True)

        if not degraded:
            self._profile_cache[user.uid] = (identity, profile)
        return Session.authenticated(identity, profile, degraded)

    async def _delete_account(self, user: AuthUser) -> bool:
        try:
            await self._provider.delete_account(user)
        except Exception as e:
            logger.error(
                "Could not delete account after failed sign-up",
                extra={"uid": user.uid, "error": str(e)},
                exc_info=True,
            )
            return False
        return True

    async def _publish(self, session: Session) -> None:
        self._session = session
        logger.debug(
            "Session transition",
            extra={
                "state": session.state.value,
                "identity_id": session.identity.id if session.identity else None,
                "degraded": session.degraded,
            },
        )
        for observer in list(self._observers):
            await self._notify(observer, session)

    @staticmethod
    async def _notify(observer: SessionObserver, session: Session) -> None:
        try:
            await observer(session)
        except Exception as e:
            logger.error(
                "Session observer failed",
                extra={
                    "observer": getattr(observer, "__qualname__", repr(observer)),
                    "error": str(e),
                },
                exc_info=True,
            )

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise SessionDisposedError()

    def _ensure_ready(self) -> None:
        self._ensure_not_disposed()
        if not self._started:
            raise RuntimeError("SessionManager is not started; call start() first")
