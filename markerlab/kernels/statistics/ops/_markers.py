"""Group/block moment and pairwise AUC operations.

This module provides a unified interface over the available kernel
backends. Backends are selected by name, globally with :func:`set_backend`
or per call with ``backend=``.

Backends: "numba" (default) and "python" (NumPy)
"""

from __future__ import annotations

import numpy as np

from markerlab.core.exceptions import InvalidConfigError
from markerlab.utils import get_logger

from ..backends.python import group_block_moments_numpy, pairwise_auc_numpy
from ..backends.python.numba import group_block_moments_numba, pairwise_auc_numba

logger = get_logger("markerlab.kernels")

__all__ = [
    "group_block_moments",
    "pairwise_auc",
    "available_backends",
    "get_backend",
    "set_backend",
]


# =============================================================================
# Backend Registry
# =============================================================================

_BACKENDS = {
    "numba": (group_block_moments_numba, pairwise_auc_numba),
    "python": (group_block_moments_numpy, pairwise_auc_numpy),
}

_BACKEND_NAME = "numba"


def available_backends() -> list[str]:
    """Names of the registered kernel backends."""
    return list(_BACKENDS)


def get_backend() -> str:
    """Name of the backend used when ``backend=None``."""
    return _BACKEND_NAME


def _resolve(backend: str | None):
    name = _BACKEND_NAME if backend is None else backend
    if name not in _BACKENDS:
        raise InvalidConfigError(
            f"Unknown backend {name!r}. Available backends: {available_backends()}"
        )
    return _BACKENDS[name]


def set_backend(name: str) -> None:
    """Set the default kernel backend.

    Parameters
    ----------
    name : {'numba', 'python'}
        Backend name.
    """
    global _BACKEND_NAME
    _resolve(name)
    _BACKEND_NAME = name
    logger.debug(f"Statistics backend: {name}")


# =============================================================================
# Wrapper Functions (with input preprocessing)
# =============================================================================


def group_block_moments(
    X: np.ndarray,
    combo: np.ndarray,
    n_combos: int,
    *,
    backend: str | None = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Mean, detected proportion and sample variance per feature and combination.

    Parameters
    ----------
    X : np.ndarray
        Dense block, shape (n_features, n_obs).
    combo : np.ndarray
        Combination of each observation, ``block * n_groups + group``,
        shape (n_obs,).
    n_combos : int
        Number of combinations (``n_groups * n_blocks``).
    backend : str, optional
        Backend name; defaults to :func:`get_backend`.

    Returns
    -------
    means : np.ndarray
        Shape (n_features, n_combos); NaN for empty combinations.
    detected : np.ndarray
        Proportion of non-zero values, shape (n_features, n_combos).
    variances : np.ndarray
        Sample variances (ddof=1), NaN with fewer than two observations.

    Examples
    --------
    >>> X = np.array([[1.0, 3.0, 0.0, 2.0]])
    >>> means, detected, variances = group_block_moments(X, np.array([0, 0, 1, 1]), 2)
    >>> means
    array([[2., 1.]])
    >>> detected
    array([[1. , 0.5]])
    """
    moments_impl, _ = _resolve(backend)
    X = np.ascontiguousarray(X, dtype=np.float64)
    combo = np.ascontiguousarray(combo, dtype=np.int64)
    return moments_impl(X, combo, int(n_combos))


def pairwise_auc(
    X: np.ndarray,
    order: np.ndarray,
    offsets: np.ndarray,
    n_groups: int,
    n_blocks: int,
    threshold: float = 0.0,
    *,
    backend: str | None = None,
) -> np.ndarray:
    """Summed Mann-Whitney U numerators for all ordered pairs of groups.

    Dividing the result by the summed ``n1 * n2`` over blocks gives the
    weighted-average AUC with ties counted as one half.

    Parameters
    ----------
    X : np.ndarray
        Dense block, shape (n_features, n_obs).
    order : np.ndarray
        Observation indices sorted by combination.
    offsets : np.ndarray
        Segment boundaries into ``order``, length ``n_groups * n_blocks + 1``.
    n_groups, n_blocks : int
        Number of groups and blocks.
    threshold : float, default=0.0
        Shift subtracted from the focal group's values.
    backend : str, optional
        Backend name; defaults to :func:`get_backend`.

    Returns
    -------
    np.ndarray
        Shape (n_features, n_groups, n_groups).
    """
    _, auc_impl = _resolve(backend)
    X = np.ascontiguousarray(X, dtype=np.float64)
    order = np.ascontiguousarray(order, dtype=np.int64)
    offsets = np.ascontiguousarray(offsets, dtype=np.int64)
    return auc_impl(X, order, offsets, int(n_groups), int(n_blocks), float(threshold))
