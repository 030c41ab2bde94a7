"""Local cache port.

String-keyed, string-valued persistent store scoped to one device. Used for
state that must survive restarts but is never shared with the remote store.
"""

from typing import Optional, Protocol


class ILocalCache(Protocol):
    """Port for the device-local key/value cache."""

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        ...
