"""FavoritesCache - device-local favorite vendors per identity."""

import json
import logging
from typing import FrozenSet, Optional, Set

from domain.identity.core.session import Session, SessionState
from domain.shared.ports.local_cache import ILocalCache

logger = logging.getLogger(__name__)

KEY_PREFIX = "favorites_"


def favorites_key(identity_id: str) -> str:
    return f"{KEY_PREFIX}{identity_id}"


class FavoritesCache:
    """
    Favorite vendor names of the signed-in identity, kept on this device.

    Entries are stored under ``favorites_{identityId}`` as a sorted JSON
    array. Nothing is synced to the remote store, so the same identity on
    another device starts with an empty set. Every toggle persists the
    whole set immediately.

    Example:
        >>> favorites = FavoritesCache(local_cache)
        >>> await favorites.hydrate("u1")
        set()
        >>> await favorites.toggle("u1", "Campus Cafe")
        >>> favorites.is_favorite("Campus Cafe")
        True
    """

    def __init__(self, cache: ILocalCache):
        self._cache = cache
        self._identity_id: Optional[str] = None
        self._favorites: Set[str] = set()

    @property
    def identity_id(self) -> Optional[str]:
        """Identity whose favorites are loaded, if any."""
        return self._identity_id

    @property
    def favorites(self) -> FrozenSet[str]:
        return frozenset(self._favorites)

    async def hydrate(self, identity_id: str) -> Set[str]:
        """
        Load the identity's favorites from the local cache.

        An absent entry yields an empty set. A corrupt entry yields an empty
        set and is logged; it is overwritten by the next toggle.
        """
        key = favorites_key(identity_id)
        self._favorites = _decode(key, await self._cache.get(key))
        self._identity_id = identity_id
        logger.debug(
            "Favorites hydrated",
            extra={"identity_id": identity_id, "count": len(self._favorites)},
        )
        return set(self._favorites)

    async def toggle(self, identity_id: str, vendor_name: str) -> None:
        """
        Add the vendor if absent, remove it if present, then persist.

        The in-memory set changes only once the cache write succeeded; a
        failing write propagates and leaves both sides as they were.
        """
        if self._identity_id != identity_id:
            await self.hydrate(identity_id)

        updated = set(self._favorites)
        if vendor_name in updated:
            updated.discard(vendor_name)
        else:
            updated.add(vendor_name)

        await self._cache.set(favorites_key(identity_id), json.dumps(sorted(updated)))
        self._favorites = updated

    def is_favorite(self, vendor_name: str) -> bool:
        return vendor_name in self._favorites

    async def clear(self, identity_id: str) -> None:
        """Delete the identity's stored favorites on this device."""
        await self._cache.remove(favorites_key(identity_id))
        if self._identity_id == identity_id:
            self._favorites = set()

    async def on_session(self, session: Session) -> None:
        """
        Session observer: hydrate when a new identity signs in, drop the
        in-memory set on sign-out. Stored entries are kept across sign-outs.
        """
        if session.is_authenticated and session.identity is not None:
            if session.identity.id != self._identity_id:
                await self.hydrate(session.identity.id)
        elif session.state is SessionState.ANONYMOUS:
            self._identity_id = None
            self._favorites = set()


def _decode(key: str, raw: Optional[str]) -> Set[str]:
    if raw is None:
        return set()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt favorites entry, starting empty", extra={"key": key, "error": str(e)})
        return set()
    if not isinstance(data, list) or not all(isinstance(name, str) for name in data):
        logger.warning("Favorites entry is not a list of names, starting empty", extra={"key": key})
        return set()
    return set(data)
