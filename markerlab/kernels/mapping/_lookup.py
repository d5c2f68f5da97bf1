"""Identifier to index lookup operations."""

from __future__ import annotations

from typing import Hashable, Iterable

import numpy as np

__all__ = ["build_lookup", "lookup_indices"]


def _as_keys(identifiers: Iterable[Hashable]) -> list:
    # numpy scalars hash like their Python counterparts but tolist() is faster
    if isinstance(identifiers, np.ndarray):
        return identifiers.tolist()
    return list(identifiers)


def build_lookup(identifiers: Iterable[Hashable]) -> dict:
    """Map each identifier to its row index.

    When an identifier occurs more than once, the last occurrence wins.

    Args:
        identifiers: One identifier per row (integer codes or names).

    Returns:
        dict: Identifier -> row index.

    Example:
        >>> build_lookup([7, 3, 7])
        {7: 2, 3: 1}
    """
    return {key: i for i, key in enumerate(_as_keys(identifiers))}


def lookup_indices(
    mapping: dict,
    queries: Iterable[Hashable],
    fallback_value: int = -1,
) -> np.ndarray:
    """Perform vectorized dictionary lookup (identifier -> int).

    Args:
        mapping: Dictionary mapping identifiers to integers.
        queries: Iterable of keys to query.
        fallback_value: Value to return when key is not found.

    Returns:
        np.ndarray: int32 array of mapped integers or fallback_value.
    """
    query_list = _as_keys(queries)
    results = np.empty(len(query_list), dtype=np.int32)

    for i, key in enumerate(query_list):
        results[i] = mapping.get(key, fallback_value)

    return results
