from .mapping import build_lookup, intersect_identifiers, lookup_indices
from .statistics import group_block_moments, pairwise_auc

__all__ = [
    "build_lookup",
    "lookup_indices",
    "intersect_identifiers",
    "group_block_moments",
    "pairwise_auc",
]
