"""JSON-file local cache.

Persists the device-local key/value cache in a single JSON object file so
favorites survive process restarts.
"""

import asyncio
import json
import logging
import os
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonFileLocalCache:
    """
    File-backed implementation of the ILocalCache port.

    Writes go to a temporary file first and replace the original with
    ``os.replace``. An unreadable or corrupt file is treated as an empty
    cache and overwritten by the next write.

    Example:
        >>> cache = JsonFileLocalCache("/tmp/savorly/cache.json")
        >>> await cache.set("favorites_u1", '["Campus Cafe"]')
    """

    def __init__(self, file_path: str):
        """
        Initialize the cache.

        Args:
            file_path: JSON file holding all entries (created on first write)
        """
        self.file_path = file_path
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entries = await self._in_executor(self._read_all)
            return entries.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            entries = await self._in_executor(self._read_all)
            entries[key] = value
            await self._in_executor(self._write_all, entries)

    async def remove(self, key: str) -> None:
        async with self._lock:
            entries = await self._in_executor(self._read_all)
            if entries.pop(key, None) is not None:
                await self._in_executor(self._write_all, entries)

    @staticmethod
    async def _in_executor(func: Callable[..., T], *args: Any) -> T:
        # File IO runs on the default thread pool, off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _read_all(self) -> Dict[str, str]:
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(
                "Local cache file is corrupt, starting empty",
                extra={"path": self.file_path, "error": str(e)},
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Local cache file is not a JSON object, starting empty",
                extra={"path": self.file_path},
            )
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, entries: Dict[str, str]) -> None:
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        temp_path = self.file_path + ".tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.file_path)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
