"""Query key domain type.

A query key is an ordered tuple ``(resource_name, *params)``. Keys compare by
deep structure, so params that arrive as dicts or lists are frozen into
tuples before use.
"""

from collections.abc import Mapping, Sequence, Set
from typing import Any, TypeAlias

QueryKey: TypeAlias = tuple[Any, ...]


def freeze(value: Any) -> Any:
    """Convert a key part into a hashable, structurally comparable value.

    Mappings become tuples of ``(key, value)`` pairs sorted by key, sequences
    become tuples and sets become sorted tuples. Primitives pass through.
    """
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), freeze(v)) for k, v in value.items()))
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, Set):
        return tuple(sorted(freeze(v) for v in value))
    if isinstance(value, Sequence):
        return tuple(freeze(v) for v in value)
    return value


def make_key(*parts: Any) -> QueryKey:
    """Build a normalized query key from its parts."""
    return tuple(freeze(part) for part in parts)


def normalize_key(key: Sequence[Any]) -> QueryKey:
    """Normalize an existing key-like sequence (list, tuple)."""
    return make_key(*key)


def matches(key: QueryKey, prefix: QueryKey, exact: bool = False) -> bool:
    """Check whether ``key`` falls in the region described by ``prefix``.

    Args:
        key: A normalized cache key
        prefix: A normalized leading sub-tuple
        exact: When True only the literal key matches

    Returns:
        True if the key matches
    """
    if exact:
        return key == prefix
    return len(prefix) <= len(key) and key[: len(prefix)] == prefix
