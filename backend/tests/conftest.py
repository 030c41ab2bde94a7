"""Shared test fixtures.

Every fixture wires in-memory adapters; no test needs MongoDB, Firebase or
network access.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest
import pytest_asyncio

from domain.identity.core.services.role_resolver import RoleResolver
from domain.shared.errors import NetworkError
from domain.shared.ports.remote_store import Document, OrderBy, QueryFilter
from infrastructure.events.in_memory_bus import InMemoryEventBus
from infrastructure.identity.in_memory_provider import InMemoryIdentityProvider
from infrastructure.local_cache.in_memory_cache import InMemoryLocalCache
from infrastructure.remote_store.in_memory_store import InMemoryRemoteStore

STUDENT_ID = "student-1"
VENDOR_ID = "vendor-1"


class FlakyRemoteStore:
    """Remote store wrapper that raises NetworkError on chosen calls.

    ``fail("increment_fields", "vendors/v1", times=1)`` makes the next call
    of that operation on that path fail once. ``path=None`` matches any path.
    """

    def __init__(self, inner: InMemoryRemoteStore):
        self.inner = inner
        self._failures: Dict[Tuple[str, Optional[str]], int] = {}
        self.calls: List[Tuple[str, str]] = []

    def fail(self, operation: str, path: Optional[str] = None, times: int = 1) -> None:
        self._failures[(operation, path)] = times

    def _check(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        for key in ((operation, path), (operation, None)):
            remaining = self._failures.get(key, 0)
            if remaining > 0:
                self._failures[key] = remaining - 1
                raise NetworkError(operation, "simulated outage")

    async def get_document(self, path: str) -> Optional[Document]:
        self._check("get_document", path)
        return await self.inner.get_document(path)

    async def set_document(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        self._check("set_document", path)
        await self.inner.set_document(path, data, merge=merge)

    async def delete_document(self, path: str) -> None:
        self._check("delete_document", path)
        await self.inner.delete_document(path)

    async def query_documents(
        self,
        collection_path: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        self._check("query_documents", collection_path)
        return await self.inner.query_documents(collection_path, filters, order_by, limit)

    async def increment_fields(self, path: str, deltas: Mapping[str, float]) -> Document:
        self._check("increment_fields", path)
        return await self.inner.increment_fields(path, deltas)


async def seed_identity(
    store: Any, identity_id: str, email: str, role_data: Mapping[str, Any]
) -> None:
    """Write the documents sign-up would have written for an identity."""
    writes = RoleResolver().resolve(identity_id, email, role_data, datetime.now(timezone.utc))
    for write in writes:
        await store.set_document(write.path, write.data)


@pytest.fixture
def store() -> InMemoryRemoteStore:
    """Fixture providing an empty in-memory remote store."""
    return InMemoryRemoteStore()


@pytest.fixture
def flaky_store(store: InMemoryRemoteStore) -> FlakyRemoteStore:
    """Fixture wrapping the store with failure injection."""
    return FlakyRemoteStore(store)


@pytest.fixture
def local_cache() -> InMemoryLocalCache:
    return InMemoryLocalCache()


@pytest.fixture
def provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest_asyncio.fixture
async def seeded_store(store: InMemoryRemoteStore) -> InMemoryRemoteStore:
    """Store holding one student and one vendor, all counters at zero."""
    await seed_identity(
        store,
        STUDENT_ID,
        "ana@campus.edu",
        {"role": "student", "firstName": "Ana", "lastName": "Lopez"},
    )
    await seed_identity(
        store,
        VENDOR_ID,
        "cafe@campus.edu",
        {"role": "vendor", "name": "Campus Cafe", "category": "Cafe"},
    )
    return store


@pytest.fixture
def seed():
    """Fixture exposing seed_identity to tests."""
    return seed_identity
