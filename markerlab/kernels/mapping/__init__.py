"""Identifier mapping kernels.

Available Functions:
    - build_lookup: identifier -> row index map (last occurrence wins)
    - lookup_indices: vectorized dictionary lookup
    - intersect_identifiers: ordered intersection across several inputs

Examples:
    >>> from markerlab.kernels.mapping import intersect_identifiers
    >>> common, selections = intersect_identifiers([["A", "B", "C"], ["C", "B"]])
    >>> common
    ['B', 'C']
"""

from ._intersect import intersect_identifiers
from ._lookup import build_lookup, lookup_indices

__all__ = [
    "build_lookup",
    "lookup_indices",
    "intersect_identifiers",
]
