"""Statistical computing kernels for marker scoring.

This package provides the per-feature kernels behind
:func:`markerlab.analysis.score_markers`, with a Numba implementation and a
NumPy implementation selectable by name.

Available Functions:
    - group_block_moments: mean, detected proportion and variance per
      group/block combination
    - pairwise_auc: Mann-Whitney U numerators for every ordered group pair

Examples:
    >>> import numpy as np
    >>> from markerlab.kernels.statistics import group_block_moments
    >>>
    >>> X = np.random.rand(50, 100)
    >>> combo = np.repeat([0, 1], 50)
    >>> means, detected, variances = group_block_moments(X, combo, 2)
"""

# Import from ops modules (no ops/__init__.py needed)
from .ops._markers import (
    available_backends,
    get_backend,
    group_block_moments,
    pairwise_auc,
    set_backend,
)

__all__ = [
    "group_block_moments",
    "pairwise_auc",
    "available_backends",
    "get_backend",
    "set_backend",
]
