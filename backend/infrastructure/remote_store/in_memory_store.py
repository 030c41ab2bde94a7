"""In-memory remote store for tests and local development."""

from copy import deepcopy
import logging
import operator
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from domain.shared.errors import EntityNotFoundError, NonNumericFieldError
from domain.shared.paths import split_document_path, validate_collection_path
from domain.shared.ports.remote_store import Document, OrderBy, QueryFilter
from infrastructure.remote_store.documents import _MISSING, add_to_field, deep_merge, get_field

logger = logging.getLogger(__name__)

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


class InMemoryRemoteStore:
    """
    In-memory implementation of the IRemoteStore port.

    Stores documents in a dict keyed by full path. Every read returns a deep
    copy and every write stores one, so callers never alias stored state.
    ``increment_fields`` does not suspend between read and write, which makes
    it atomic with respect to other coroutines on the same event loop.

    Examples:
        >>> store = InMemoryRemoteStore()
        >>> await store.set_document("users/u1", {"role": "student"})
        >>> (await store.get_document("users/u1")).data
        {'role': 'student'}
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def get_document(self, path: str) -> Optional[Document]:
        split_document_path(path)
        data = self._documents.get(path)
        if data is None:
            return None
        return self._snapshot(path, data)

    async def set_document(
        self, path: str, data: Mapping[str, Any], merge: bool = False
    ) -> None:
        split_document_path(path)
        existing = self._documents.get(path)
        if merge and existing is not None:
            deep_merge(existing, data)
        else:
            self._documents[path] = deepcopy(dict(data))
        logger.debug("Document written", extra={"path": path, "merge": merge})

    async def delete_document(self, path: str) -> None:
        split_document_path(path)
        self._documents.pop(path, None)

    async def query_documents(
        self,
        collection_path: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        collection = validate_collection_path(collection_path)
        matches: List[Document] = []
        for path, data in self._documents.items():
            parent, _ = split_document_path(path)
            if parent != collection:
                continue
            if all(self._matches(data, f) for f in filters):
                matches.append(self._snapshot(path, data))

        if order_by is not None:
            field_name, direction = order_by
            matches = [d for d in matches if get_field(d.data, field_name, _MISSING) is not _MISSING]
            matches.sort(
                key=lambda d: get_field(d.data, field_name),
                reverse=direction.lower() == "desc",
            )

        if limit is not None:
            matches = matches[:limit]
        return matches

    async def increment_fields(
        self, path: str, deltas: Mapping[str, float]
    ) -> Document:
        split_document_path(path)
        existing = self._documents.get(path)
        if existing is None:
            raise EntityNotFoundError(path)

        # Apply to a copy first so a bad field leaves the document untouched
        updated = deepcopy(existing)
        for dotted, delta in deltas.items():
            try:
                add_to_field(updated, dotted, delta)
            except TypeError as e:
                raise NonNumericFieldError(path, dotted) from e
        self._documents[path] = updated
        return self._snapshot(path, updated)

    def clear(self) -> None:
        """Remove all documents (test cleanup)."""
        self._documents.clear()

    def count(self) -> int:
        """Number of stored documents."""
        return len(self._documents)

    @staticmethod
    def _snapshot(path: str, data: Mapping[str, Any]) -> Document:
        _, doc_id = split_document_path(path)
        return Document(path=path, id=doc_id, data=deepcopy(dict(data)))

    @staticmethod
    def _matches(data: Mapping[str, Any], query_filter: QueryFilter) -> bool:
        value = get_field(data, query_filter.field, _MISSING)
        if value is _MISSING:
            return False
        try:
            return bool(_COMPARATORS[query_filter.op](value, query_filter.value))
        except TypeError:
            # Mixed types never match, as in Firestore
            return False
