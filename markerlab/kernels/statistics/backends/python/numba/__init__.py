"""Numba backend for statistics kernels."""

from ._markers import group_block_moments_numba, pairwise_auc_numba

__all__ = [
    "group_block_moments_numba",
    "pairwise_auc_numba",
]
