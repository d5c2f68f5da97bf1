"""NumPy implementation of the marker-scoring kernels.

Always available; slower than the Numba backend for large inputs.
"""

from __future__ import annotations

import numpy as np

__all__ = ["group_block_moments_numpy", "pairwise_auc_numpy"]


def group_block_moments_numpy(
    X: np.ndarray,
    combo: np.ndarray,
    n_combos: int,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-feature mean, detected proportion and variance of each combination.

    Parameters
    ----------
    X : np.ndarray
        Dense block, shape (n_features, n_obs).
    combo : np.ndarray
        Combination index (``block * n_groups + group``) of each observation.
    n_combos : int
        Number of combinations.

    Returns
    -------
    means, detected, variances : np.ndarray
        Each of shape (n_features, n_combos). Means and detected proportions
        are NaN for empty combinations; variances (ddof=1) are NaN for
        combinations with fewer than two observations.
    """
    n_features = X.shape[0]
    means = np.full((n_features, n_combos), np.nan)
    detected = np.full((n_features, n_combos), np.nan)
    variances = np.full((n_features, n_combos), np.nan)

    for c in range(n_combos):
        cols = np.flatnonzero(combo == c)
        n = len(cols)
        if n == 0:
            continue

        sub = X[:, cols]
        center = sub.sum(axis=1) / n
        means[:, c] = center
        detected[:, c] = np.count_nonzero(sub, axis=1) / n

        if n > 1:
            resid = sub - center[:, None]
            variances[:, c] = (resid * resid).sum(axis=1) / (n - 1)

    return means, detected, variances


def pairwise_auc_numpy(
    X: np.ndarray,
    order: np.ndarray,
    offsets: np.ndarray,
    n_groups: int,
    n_blocks: int,
    threshold: float = 0.0,
) -> np.ndarray:
    """Summed Mann-Whitney U numerators for every ordered pair of groups.

    For groups ``g1``, ``g2`` and each block, counts the pairs of observations
    with ``x1 - threshold > x2`` plus half the pairs where they are equal,
    then sums over blocks.

    Parameters
    ----------
    X : np.ndarray
        Dense block, shape (n_features, n_obs).
    order : np.ndarray
        Observation indices sorted by combination.
    offsets : np.ndarray
        ``order[offsets[c]:offsets[c + 1]]`` are the observations of combination ``c``.
    n_groups, n_blocks : int
        Number of groups and blocks.
    threshold : float, default=0.0
        Shift applied to the focal group's values.

    Returns
    -------
    np.ndarray
        Shape (n_features, n_groups, n_groups); entry ``[f, g1, g2]`` is the
        summed U numerator with ``g1`` as the focal group.
    """
    n_features = X.shape[0]
    out = np.zeros((n_features, n_groups, n_groups), dtype=np.float64)
    symmetric = threshold == 0.0

    for f in range(n_features):
        values = X[f, order]

        for b in range(n_blocks):
            segments = []
            for g in range(n_groups):
                c = b * n_groups + g
                segments.append(np.sort(values[offsets[c]:offsets[c + 1]]))

            for g1 in range(n_groups):
                x1 = segments[g1]
                if len(x1) == 0:
                    continue

                shifted = x1 - threshold
                for g2 in range(g1 + 1 if symmetric else 0, n_groups):
                    x2 = segments[g2]
                    if g2 == g1 or len(x2) == 0:
                        continue

                    lo = np.searchsorted(x2, shifted, side="left")
                    hi = np.searchsorted(x2, shifted, side="right")
                    u = float(lo.sum()) + 0.5 * float((hi - lo).sum())
                    out[f, g1, g2] += u
                    if symmetric:
                        out[f, g2, g1] += len(x1) * len(x2) - u

    return out
