"""MetricsAggregator - applies counter increments to student/vendor documents."""

import logging
from typing import Any, Dict, Mapping

from domain.metrics.core.counters import (
    METRICS_FIELD,
    EntityRef,
    MetricsUpdateMode,
    Number,
    normalize_counter,
    validate_deltas,
)
from domain.shared.errors import DomainError, EntityNotFoundError, NonNumericFieldError
from domain.shared.ports.remote_store import IRemoteStore
from domain.shared.result import Result

logger = logging.getLogger(__name__)


class MetricsAggregator:
    """
    Increment aggregate counters kept in an entity's ``metrics`` map.

    Modes:
    - ATOMIC (default): one ``increment_fields`` call on the store, so
      concurrent reservations never lose an update.
    - READ_MODIFY_WRITE: read the document, add, merge the map back. Two
      overlapping increments on the same entity can overwrite each other;
      kept to reproduce the behavior of older clients.

    Negative deltas are applied as given (no clamping). An absent entity
    fails with EntityNotFoundError and nothing is written.

    Example:
        >>> aggregator = MetricsAggregator(store)
        >>> result = await aggregator.increment_metrics(
        ...     EntityRef.student("u1"), {"moneySaved": 6.29, "mealsRescued": 2}
        ... )
        >>> result.value
        {'moneySaved': 6.29, 'mealsRescued': 2}
    """

    def __init__(
        self,
        store: IRemoteStore,
        mode: MetricsUpdateMode = MetricsUpdateMode.ATOMIC,
    ):
        """
        Initialize aggregator.

        Args:
            store: Remote document store
            mode: Counter update strategy
        """
        self._store = store
        self._mode = mode

    @property
    def mode(self) -> MetricsUpdateMode:
        return self._mode

    async def increment_metrics(
        self, entity: EntityRef, deltas: Mapping[str, Number]
    ) -> Result[Dict[str, Number]]:
        """
        Add deltas to the entity's counters.

        Args:
            entity: Student or vendor document
            deltas: Counter name -> delta (missing counters start at 0)

        Returns:
            Result with the entity's counters after the update. Failures:
            EntityNotFoundError, NonNumericFieldError, NetworkError

        Raises:
            ValueError: If a delta is not a number
        """
        checked = validate_deltas(deltas)

        try:
            if not checked:
                metrics = await self._read_metrics(entity)
            elif self._mode is MetricsUpdateMode.ATOMIC:
                metrics = await self._increment_atomic(entity, checked)
            else:
                metrics = await self._read_modify_write(entity, checked)
            normalized = _normalized(entity, metrics)
        except DomainError as e:
            logger.warning(
                "Metrics increment failed",
                extra={"entity": entity.path, "deltas": checked, "error": str(e)},
            )
            return Result.failure(e)

        logger.debug(
            "Metrics incremented",
            extra={"entity": entity.path, "mode": self._mode.value, "deltas": checked},
        )
        return Result.success(normalized)

    async def _read_metrics(self, entity: EntityRef) -> Mapping[str, Any]:
        document = await self._store.get_document(entity.path)
        if document is None:
            raise EntityNotFoundError(entity.path)
        return document.data.get(METRICS_FIELD) or {}

    async def _increment_atomic(
        self, entity: EntityRef, deltas: Mapping[str, Number]
    ) -> Mapping[str, Any]:
        document = await self._store.increment_fields(
            entity.path, {f"{METRICS_FIELD}.{key}": delta for key, delta in deltas.items()}
        )
        return document.data.get(METRICS_FIELD) or {}

    async def _read_modify_write(
        self, entity: EntityRef, deltas: Mapping[str, Number]
    ) -> Mapping[str, Any]:
        metrics = dict(await self._read_metrics(entity))
        for key, delta in deltas.items():
            current = _require_number(entity, key, metrics.get(key, 0))
            metrics[key] = normalize_counter(key, current + delta)
        # No version check between the read above and this write
        await self._store.set_document(entity.path, {METRICS_FIELD: metrics}, merge=True)
        return metrics


def _require_number(entity: EntityRef, key: str, value: Any) -> Number:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise NonNumericFieldError(entity.path, f"{METRICS_FIELD}.{key}")
    return value


def _normalized(entity: EntityRef, metrics: Mapping[str, Any]) -> Dict[str, Number]:
    return {
        key: normalize_counter(key, _require_number(entity, key, value))
        for key, value in metrics.items()
    }
