"""Remote store factory for environment-based selection.

This factory creates the appropriate store implementation based on the
REMOTE_STORE_BACKEND environment variable:
- "inmemory": InMemoryRemoteStore (for testing and local development)
- "mongodb": MongoRemoteStore (for production)

Default: inmemory
"""

import logging

from domain.shared.ports.remote_store import IRemoteStore
from infrastructure.config import get_remote_store_backend
from infrastructure.remote_store.in_memory_store import InMemoryRemoteStore

logger = logging.getLogger(__name__)


def create_remote_store() -> IRemoteStore:
    """Create remote store based on environment configuration.

    Returns:
        IRemoteStore: The configured store implementation

    Environment Variables:
        REMOTE_STORE_BACKEND: "inmemory" | "mongodb" (default: inmemory)
        MONGODB_URI: MongoDB connection string (required for mongodb)
        MONGODB_DATABASE: Database name (default: savorly)
    """
    backend = get_remote_store_backend()
    logger.info("Creating remote store", extra={"backend": backend})

    if backend == "mongodb":
        # Imported lazily so in-memory setups do not need a Mongo driver
        from infrastructure.remote_store.mongo_store import MongoRemoteStore

        return MongoRemoteStore()

    return InMemoryRemoteStore()
