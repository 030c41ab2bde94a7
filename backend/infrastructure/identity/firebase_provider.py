"""Firebase Authentication provider implementation (REST API)."""

import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

import aiohttp
import jwt
from jwt.exceptions import PyJWTError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from domain.identity.auth.ports.identity_provider import (
    AuthStateCallback,
    AuthUser,
    IIdentityProvider,
    Unsubscribe,
)
from domain.shared.errors import (
    DuplicateEmailError,
    InvalidCredentialError,
    NetworkError,
)
from infrastructure.config import get_firebase_api_key, get_http_timeout
from infrastructure.identity.auth_state import AuthStateBroadcaster

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

CREDENTIAL_ERRORS = frozenset(
    {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
        "USER_DISABLED",
        "INVALID_EMAIL",
        "MISSING_PASSWORD",
        "WEAK_PASSWORD",
    }
)
SESSION_ENDED_ERRORS = frozenset(
    {"TOKEN_EXPIRED", "USER_NOT_FOUND", "USER_DISABLED", "INVALID_REFRESH_TOKEN"}
)

# Refresh when the id token expires within this window
REFRESH_MARGIN = timedelta(minutes=5)


class FirebaseAPIError(NetworkError):
    """Firebase answered with an error the domain has no dedicated type for."""

    def __init__(self, operation: str, status: int, code: str):
        self.status = status
        self.code = code
        super().__init__(operation, f"HTTP {status}: {code}")


class FirebaseIdentityProvider(IIdentityProvider):
    """Firebase Authentication provider over the Identity Toolkit REST API.

    Features:
    - Email/password sign-up and sign-in
    - Password reset emails
    - Id token refresh through the Secure Token API
    - Auth-state stream (sign-in, sign-out, refresh, remote invalidation)
    - Retry on connection errors and timeouts (3 attempts, exponential backoff)

    Environment Variables:
    - FIREBASE_API_KEY: Web API key of the Firebase project
    - HTTP_TIMEOUT_S: Total request timeout (default: 10)

    Examples:
        >>> provider = FirebaseIdentityProvider(api_key="AIza...")
        >>> user = await provider.sign_in("ana@campus.edu", "secret1")
        >>> await provider.refresh_session()
    """

    def __init__(self, api_key: Optional[str] = None, timeout_s: Optional[float] = None):
        """Initialize Firebase provider.

        Args:
            api_key: Web API key (defaults to env FIREBASE_API_KEY)
            timeout_s: Request timeout in seconds (defaults to env HTTP_TIMEOUT_S)

        Raises:
            ValueError: If the API key is missing
        """
        self.api_key = api_key or get_firebase_api_key()
        self.timeout = aiohttp.ClientTimeout(total=timeout_s or get_http_timeout())
        self._current: Optional[AuthUser] = None
        self._broadcaster = AuthStateBroadcaster()

    async def create_account(self, email: str, password: str) -> AuthUser:
        try:
            data = await self._post(
                "create_account",
                f"{IDENTITY_TOOLKIT_URL}/accounts:signUp",
                {"email": email, "password": password, "returnSecureToken": True},
            )
        except FirebaseAPIError as e:
            if e.code == "EMAIL_EXISTS":
                raise DuplicateEmailError(email) from e
            if e.code in CREDENTIAL_ERRORS:
                raise InvalidCredentialError(e.code) from e
            raise

        user = self._user_from_auth_response(data)
        logger.info("Firebase account created", extra={"uid": user.uid})
        await self._set_current(user)
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        try:
            data = await self._post(
                "sign_in",
                f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithPassword",
                {"email": email, "password": password, "returnSecureToken": True},
            )
        except FirebaseAPIError as e:
            if e.code in CREDENTIAL_ERRORS:
                raise InvalidCredentialError(e.code) from e
            raise

        user = self._user_from_auth_response(data)
        await self._set_current(user)
        return user

    async def sign_out(self) -> None:
        # Firebase id tokens are stateless; ending the session is local
        if self._current is None:
            return
        await self._set_current(None)

    async def delete_account(self, user: AuthUser) -> None:
        if not user.id_token:
            raise ValueError(f"Cannot delete account {user.uid} without an id token")
        await self._post(
            "delete_account",
            f"{IDENTITY_TOOLKIT_URL}/accounts:delete",
            {"idToken": user.id_token},
        )
        logger.info("Firebase account deleted", extra={"uid": user.uid})
        if self._current is not None and self._current.uid == user.uid:
            await self._set_current(None)

    async def send_password_reset(self, email: str) -> None:
        try:
            await self._post(
                "send_password_reset",
                f"{IDENTITY_TOOLKIT_URL}/accounts:sendOobCode",
                {"requestType": "PASSWORD_RESET", "email": email},
            )
        except FirebaseAPIError as e:
            # Do not reveal whether an account exists
            if e.code != "EMAIL_NOT_FOUND":
                raise

    def observe_auth_state(self, callback: AuthStateCallback) -> Unsubscribe:
        return self._broadcaster.subscribe(callback)

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current

    async def refresh_session(self, force: bool = False) -> Optional[AuthUser]:
        """Renew the id token of the current session.

        Skips the call while the token is valid for longer than the refresh
        margin, unless ``force`` is set. A refresh token rejected by Firebase
        ends the session and emits None.

        Returns:
            Refreshed user, or None if there is no session (anymore)

        Raises:
            NetworkError: Transport failure (the session is kept)
        """
        current = self._current
        if current is None or not current.refresh_token:
            return None

        now = datetime.now(timezone.utc)
        if not force and current.expires_at and current.expires_at > now + REFRESH_MARGIN:
            return current

        try:
            data = await self._post(
                "refresh_session",
                SECURE_TOKEN_URL,
                {"grant_type": "refresh_token", "refresh_token": current.refresh_token},
                form=True,
            )
        except FirebaseAPIError as e:
            if e.code in SESSION_ENDED_ERRORS:
                logger.warning(
                    "Firebase session invalidated", extra={"uid": current.uid, "code": e.code}
                )
                await self._set_current(None)
                return None
            raise

        id_token = data["id_token"]
        refreshed = AuthUser(
            uid=str(data.get("user_id", current.uid)),
            email=current.email,
            id_token=id_token,
            refresh_token=data.get("refresh_token", current.refresh_token),
            expires_at=self._token_expiry(id_token, data.get("expires_in")),
        )
        await self._set_current(refreshed)
        return refreshed

    async def _set_current(self, user: Optional[AuthUser]) -> None:
        self._current = user
        await self._broadcaster.emit(user)

    async def _post(
        self, operation: str, url: str, payload: Dict[str, Any], form: bool = False
    ) -> Dict[str, Any]:
        """POST to a Firebase endpoint (JSON body, or form-encoded when ``form``).

        Raises:
            FirebaseAPIError: Firebase returned an error response
            NetworkError: Transport failure
        """
        body: Dict[str, Any] = {"data": payload} if form else {"json": payload}
        try:
            return await self._send(operation, url, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "Firebase request failed", extra={"operation": operation, "error": str(e)}
            )
            raise NetworkError(operation, str(e)) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type((asyncio.TimeoutError, aiohttp.ClientConnectionError)),
        reraise=True,
    )
    async def _send(self, operation: str, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url, params={"key": self.api_key}, timeout=self.timeout, **body
            ) as resp:
                if resp.status >= 400:
                    raise FirebaseAPIError(operation, resp.status, await self._error_code(resp))
                data: Dict[str, Any] = await resp.json()
                return data

    @staticmethod
    async def _error_code(resp: Any) -> str:
        """Extract the Firebase error code (``"WEAK_PASSWORD : ..."`` -> ``WEAK_PASSWORD``)."""
        try:
            body = await resp.json(content_type=None)
            message = str(body["error"]["message"])
        except (ValueError, KeyError, TypeError, aiohttp.ContentTypeError):
            return f"HTTP_{resp.status}"
        return message.split(":", 1)[0].strip()

    def _user_from_auth_response(self, data: Dict[str, Any]) -> AuthUser:
        try:
            id_token = data["idToken"]
            return AuthUser(
                uid=str(data["localId"]),
                email=str(data.get("email", "")),
                id_token=id_token,
                refresh_token=data.get("refreshToken"),
                expires_at=self._token_expiry(id_token, data.get("expiresIn")),
            )
        except KeyError as e:
            raise NetworkError("auth_response", f"Invalid Firebase response: missing {e}") from e

    @staticmethod
    def _token_expiry(id_token: str, expires_in: Any) -> Optional[datetime]:
        """Read ``exp`` from the id token, falling back to ``expires_in`` seconds."""
        try:
            claims = jwt.decode(id_token, options={"verify_signature": False})
            return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        except (PyJWTError, KeyError, ValueError, TypeError):
            pass
        if expires_in is None:
            return None
        try:
            return datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        except (TypeError, ValueError):
            return None
