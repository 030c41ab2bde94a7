"""Local cache factory.

LOCAL_CACHE_BACKEND selects the implementation:
- "inmemory": InMemoryLocalCache (default)
- "file": JsonFileLocalCache at LOCAL_CACHE_PATH
"""

from domain.shared.ports.local_cache import ILocalCache
from infrastructure.config import get_local_cache_backend, get_local_cache_path
from infrastructure.local_cache.in_memory_cache import InMemoryLocalCache
from infrastructure.local_cache.json_file_cache import JsonFileLocalCache


def create_local_cache() -> ILocalCache:
    """Create the device-local cache based on environment configuration."""
    if get_local_cache_backend() == "file":
        return JsonFileLocalCache(get_local_cache_path())
    return InMemoryLocalCache()
