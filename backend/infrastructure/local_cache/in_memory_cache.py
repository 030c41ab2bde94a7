"""In-memory local cache (one instance per simulated device)."""

from typing import Dict, Optional


class InMemoryLocalCache:
    """
    In-memory implementation of the ILocalCache port.

    Two instances model two devices: nothing is shared between them.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    async def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries (test cleanup)."""
        self._entries.clear()
