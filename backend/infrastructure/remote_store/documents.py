"""Document helpers shared by remote store adapters."""

from copy import deepcopy
from typing import Any, Dict, Iterator, Mapping, Tuple

_MISSING = object()


def deep_merge(target: Dict[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge patch into target in place, recursing into nested maps.

    Non-map values (lists included) replace the existing value.
    """
    for key, value in patch.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = deepcopy(value)
    return target


def flatten(data: Mapping[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """Yield (dotted_key, value) pairs for leaf values.

    Empty maps are yielded as leaves so a merge can still create them.

    Examples:
        >>> dict(flatten({"metrics": {"moneySaved": 1.5}, "name": "x"}))
        {'metrics.moneySaved': 1.5, 'name': 'x'}
    """
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            yield from flatten(value, f"{dotted}.")
        else:
            yield dotted, value


def get_field(data: Mapping[str, Any], dotted: str, default: Any = None) -> Any:
    """Read a possibly nested field by dotted name."""
    current: Any = data
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def add_to_field(data: Dict[str, Any], dotted: str, delta: Any) -> None:
    """Add delta to a nested numeric field, creating it (as 0) when missing.

    Raises:
        TypeError: If an intermediate or the target value is not numeric/map
    """
    parts = dotted.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part, _MISSING)
        if nxt is _MISSING:
            nxt = {}
            current[part] = nxt
        if not isinstance(nxt, dict):
            raise TypeError(f"Field '{part}' of '{dotted}' is not a map")
        current = nxt
    leaf = parts[-1]
    value = current.get(leaf, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Field '{dotted}' is not numeric: {value!r}")
    current[leaf] = value + delta
