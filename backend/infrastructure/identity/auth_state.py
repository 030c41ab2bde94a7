"""Auth-state listener registry shared by identity provider adapters."""

import logging
from typing import List, Optional

from domain.identity.auth.ports.identity_provider import (
    AuthStateCallback,
    AuthUser,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class AuthStateBroadcaster:
    """
    Fans an auth-state change out to every registered callback.

    Callbacks run sequentially in registration order. A failing callback is
    logged and the remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._callbacks: List[AuthStateCallback] = []

    def subscribe(self, callback: AuthStateCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def emit(self, user: Optional[AuthUser]) -> None:
        for callback in list(self._callbacks):
            try:
                await callback(user)
            except Exception as e:
                logger.error(
                    "Auth state listener failed",
                    extra={
                        "listener": getattr(callback, "__qualname__", repr(callback)),
                        "uid": user.uid if user else None,
                        "error": str(e),
                    },
                    exc_info=True,
                )

    @property
    def listener_count(self) -> int:
        return len(self._callbacks)
