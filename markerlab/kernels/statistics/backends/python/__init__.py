"""NumPy backend for statistics kernels."""

from ._markers import group_block_moments_numpy, pairwise_auc_numpy

__all__ = [
    "group_block_moments_numpy",
    "pairwise_auc_numpy",
]
