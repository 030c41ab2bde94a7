"""Remote document store port (interface).

Defines the key-path document contract consumed by the core. The store itself
(Firestore, MongoDB, ...) is an external collaborator; infrastructure provides
the adapters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

QUERY_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "in"})


@dataclass(frozen=True)
class Document:
    """Snapshot of a stored document.

    Attributes:
        path: Full document path (``orders/abc``)
        id: Last path segment
        data: Document fields (a copy, safe to mutate)
    """

    path: str
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryFilter:
    """Single field filter for ``query_documents``.

    Examples:
        >>> QueryFilter("studentId", "==", "u1")
        >>> QueryFilter("status", "in", ["pending", "ready"])
    """

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        """Validate operator."""
        if self.op not in QUERY_OPERATORS:
            raise ValueError(
                f"Unsupported query operator '{self.op}'. "
                f"Expected one of {sorted(QUERY_OPERATORS)}"
            )
        if self.op == "in" and not isinstance(self.value, (list, tuple, set, frozenset)):
            raise ValueError("Operator 'in' requires a list of values")


# (field, "asc" | "desc")
OrderBy = Tuple[str, str]


class IRemoteStore(Protocol):
    """Port for the remote document store.

    Implementations must:
    - return copies (callers never alias stored state)
    - deep-merge nested maps when ``merge=True``
    - raise NetworkError on transport failures
    - apply ``increment_fields`` atomically with respect to other writers
    """

    async def get_document(self, path: str) -> Optional[Document]:
        """Read a document.

        Args:
            path: Document path

        Returns:
            Document snapshot, or None if absent
        """
        ...

    async def set_document(
        self, path: str, data: Mapping[str, Any], merge: bool = False
    ) -> None:
        """Write a document.

        Args:
            path: Document path
            data: Fields to write
            merge: Deep-merge into the existing document instead of replacing it
        """
        ...

    async def delete_document(self, path: str) -> None:
        """Delete a document. Deleting an absent document is a no-op."""
        ...

    async def query_documents(
        self,
        collection_path: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Query documents in one collection.

        Args:
            collection_path: Collection path (``orders``, ``vendors/v1/menuItems``)
            filters: Conjunction of field filters
            order_by: Optional (field, direction) sort
            limit: Optional maximum number of documents

        Returns:
            Matching documents
        """
        ...

    async def increment_fields(
        self, path: str, deltas: Mapping[str, float]
    ) -> Document:
        """Atomically add deltas to numeric fields.

        Args:
            path: Document path
            deltas: Dotted field name -> delta (``{"metrics.moneySaved": 5}``)

        Returns:
            Document snapshot after the increment

        Raises:
            EntityNotFoundError: If the document does not exist (nothing written)
            NonNumericFieldError: If a target field holds a non-number (nothing written)
        """
        ...
