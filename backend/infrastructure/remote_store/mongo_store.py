"""MongoDB remote store adapter.

Maps the key-path document model onto MongoDB:
- one MongoDB collection per collection name (last collection segment, so
  ``vendors/v1/menuItems`` lives in ``menuItems``)
- ``_id`` is the full document path
- ``_collection`` holds the collection path, used to scope queries
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, OperationFailure

from domain.shared.errors import EntityNotFoundError, NetworkError, NonNumericFieldError
from domain.shared.paths import split_document_path, validate_collection_path
from domain.shared.ports.remote_store import Document, OrderBy, QueryFilter
from infrastructure.config import get_mongodb_database, get_mongodb_uri
from infrastructure.remote_store.documents import flatten

logger = logging.getLogger(__name__)

ID_FIELD = "_id"
COLLECTION_FIELD = "_collection"
# Server error code for $inc on a non-numeric field
TYPE_MISMATCH = 14

_MONGO_OPERATORS: Dict[str, str] = {
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}


class MongoRemoteStore:
    """
    MongoDB implementation of the IRemoteStore port.

    Connection pooling is handled by motor. Connection failures (including
    server selection timeouts) become NetworkError; other PyMongoError
    subclasses propagate unchanged.

    Example:
        >>> store = MongoRemoteStore()
        >>> await store.set_document("orders/o1", {"status": "pending"})
        >>> await store.increment_fields("users/u1", {"metrics.mealsRescued": 2})
    """

    def __init__(self, client: Optional[AsyncIOMotorClient[Dict[str, Any]]] = None):
        """
        Initialize store with optional client.

        Args:
            client: Motor client (if None, creates new one from config)
        """
        if client is None:
            uri = get_mongodb_uri()
            if not uri:
                raise ValueError(
                    "MONGODB_URI not configured. "
                    "Set MONGODB_URI, MONGODB_USER, "
                    "and MONGODB_PASSWORD environment variables."
                )
            self._client: AsyncIOMotorClient[Dict[str, Any]] = AsyncIOMotorClient(uri)
        else:
            self._client = client

        self._db = self._client[get_mongodb_database()]
        logger.info("Initialized MongoRemoteStore", extra={"database": self._db.name})

    def _collection_for(self, collection_path: str) -> AsyncIOMotorCollection[Dict[str, Any]]:
        return self._db[collection_path.rsplit("/", 1)[-1]]

    async def get_document(self, path: str) -> Optional[Document]:
        collection_path, _ = split_document_path(path)
        try:
            raw = await self._collection_for(collection_path).find_one({ID_FIELD: path})
        except ConnectionFailure as e:
            raise self._network_error("get_document", path, e) from e
        if raw is None:
            return None
        return self._to_document(raw)

    async def set_document(
        self, path: str, data: Mapping[str, Any], merge: bool = False
    ) -> None:
        collection_path, _ = split_document_path(path)
        collection = self._collection_for(collection_path)
        try:
            if merge:
                fields = dict(flatten(data))
                fields[COLLECTION_FIELD] = collection_path
                await collection.update_one({ID_FIELD: path}, {"$set": fields}, upsert=True)
            else:
                replacement = {**dict(data), COLLECTION_FIELD: collection_path}
                await collection.replace_one({ID_FIELD: path}, replacement, upsert=True)
        except ConnectionFailure as e:
            raise self._network_error("set_document", path, e) from e

    async def delete_document(self, path: str) -> None:
        collection_path, _ = split_document_path(path)
        try:
            await self._collection_for(collection_path).delete_one({ID_FIELD: path})
        except ConnectionFailure as e:
            raise self._network_error("delete_document", path, e) from e

    async def query_documents(
        self,
        collection_path: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        collection_path = validate_collection_path(collection_path)
        filter_dict: Dict[str, Any] = {COLLECTION_FIELD: collection_path}
        for query_filter in filters:
            condition = self._condition(query_filter)
            existing = filter_dict.get(query_filter.field)
            if isinstance(existing, dict) and isinstance(condition, dict):
                existing.update(condition)
            else:
                filter_dict[query_filter.field] = condition

        try:
            cursor = self._collection_for(collection_path).find(filter_dict)
            if order_by is not None:
                field_name, direction = order_by
                cursor = cursor.sort(field_name, -1 if direction.lower() == "desc" else 1)
            if limit:
                cursor = cursor.limit(limit)
            raws = await cursor.to_list(length=limit)
        except ConnectionFailure as e:
            raise self._network_error("query_documents", collection_path, e) from e

        return [self._to_document(raw) for raw in raws]

    async def increment_fields(
        self, path: str, deltas: Mapping[str, float]
    ) -> Document:
        collection_path, _ = split_document_path(path)
        try:
            raw = await self._collection_for(collection_path).find_one_and_update(
                {ID_FIELD: path},
                {"$inc": dict(deltas)},
                return_document=ReturnDocument.AFTER,
            )
        except ConnectionFailure as e:
            raise self._network_error("increment_fields", path, e) from e
        except OperationFailure as e:
            if e.code == TYPE_MISMATCH:
                raise NonNumericFieldError(path, ", ".join(deltas)) from e
            raise
        if raw is None:
            raise EntityNotFoundError(path)
        return self._to_document(raw)

    async def close(self) -> None:
        """Close MongoDB connection."""
        self._client.close()
        logger.info("Closed MongoRemoteStore connection")

    @staticmethod
    def _condition(query_filter: QueryFilter) -> Any:
        if query_filter.op == "==":
            return query_filter.value
        value = query_filter.value
        if query_filter.op == "in":
            value = list(value)
        # Missing fields never match, as with the in-memory store
        return {"$exists": True, _MONGO_OPERATORS[query_filter.op]: value}

    @staticmethod
    def _to_document(raw: Mapping[str, Any]) -> Document:
        path = str(raw[ID_FIELD])
        _, doc_id = split_document_path(path)
        data = {k: v for k, v in raw.items() if k not in (ID_FIELD, COLLECTION_FIELD)}
        return Document(path=path, id=doc_id, data=data)

    @staticmethod
    def _network_error(operation: str, path: str, error: ConnectionFailure) -> NetworkError:
        logger.error(
            "MongoDB connection failed",
            extra={"operation": operation, "path": path, "error": str(error)},
        )
        return NetworkError(operation, str(error))
