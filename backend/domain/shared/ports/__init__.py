"""Domain ports (interfaces for infrastructure adapters)."""

from domain.shared.ports.remote_store import IRemoteStore, Document, QueryFilter
from domain.shared.ports.local_cache import ILocalCache
from domain.shared.ports.event_bus import IEventBus

__all__ = [
    "IRemoteStore",
    "Document",
    "QueryFilter",
    "ILocalCache",
    "IEventBus",
]
