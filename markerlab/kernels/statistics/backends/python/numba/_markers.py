"""
Numba backend for the marker-scoring kernels.

All kernels release the GIL so a thread pool can run them concurrently on
disjoint feature chunks. Each feature is processed in a fixed sequential
order, so results do not depend on how features are chunked.
"""

import numba
import numpy as np


@numba.njit(cache=True, nogil=True)
def group_block_moments_numba(
    X: np.ndarray,
    combo: np.ndarray,
    n_combos: int,
):
    """Per-feature mean, detected proportion and variance (Numba backend).

    Args:
        X: Dense C-contiguous float64 block, shape (n_features, n_obs)
        combo: int64 combination index of each observation
        n_combos: Number of combinations

    Returns:
        (means, detected, variances), each of shape (n_features, n_combos)
    """
    n_features = X.shape[0]
    n_obs = X.shape[1]

    counts = np.zeros(n_combos, dtype=np.int64)
    for j in range(n_obs):
        counts[combo[j]] += 1

    means = np.empty((n_features, n_combos), dtype=np.float64)
    detected = np.empty((n_features, n_combos), dtype=np.float64)
    variances = np.empty((n_features, n_combos), dtype=np.float64)

    sums = np.empty(n_combos, dtype=np.float64)
    nonzero = np.empty(n_combos, dtype=np.float64)
    squares = np.empty(n_combos, dtype=np.float64)

    for f in range(n_features):
        sums[:] = 0.0
        nonzero[:] = 0.0
        squares[:] = 0.0

        for j in range(n_obs):
            val = X[f, j]
            c = combo[j]
            sums[c] += val
            if val != 0.0:
                nonzero[c] += 1.0

        for c in range(n_combos):
            n = counts[c]
            if n > 0:
                means[f, c] = sums[c] / n
                detected[f, c] = nonzero[c] / n
            else:
                means[f, c] = np.nan
                detected[f, c] = np.nan

        for j in range(n_obs):
            c = combo[j]
            diff = X[f, j] - means[f, c]
            squares[c] += diff * diff

        for c in range(n_combos):
            n = counts[c]
            if n > 1:
                variances[f, c] = squares[c] / (n - 1)
            else:
                variances[f, c] = np.nan

    return means, detected, variances


@numba.njit(cache=True, nogil=True, inline='always')
def _count_greater(values, s1, e1, s2, e2, threshold):
    """U numerator for two sorted segments: #(x1 - t > x2) + 0.5 * #(x1 - t == x2)."""
    lo = s2
    hi = s2
    total = 0.0
    for i in range(s1, e1):
        x = values[i] - threshold
        while lo < e2 and values[lo] < x:
            lo += 1
        if hi < lo:
            hi = lo
        while hi < e2 and values[hi] <= x:
            hi += 1
        total += (lo - s2) + 0.5 * (hi - lo)
    return total


@numba.njit(cache=True, nogil=True)
def pairwise_auc_numba(
    X: np.ndarray,
    order: np.ndarray,
    offsets: np.ndarray,
    n_groups: int,
    n_blocks: int,
    threshold: float,
):
    """Summed Mann-Whitney U numerators for every ordered pair (Numba backend).

    Args:
        X: Dense C-contiguous float64 block, shape (n_features, n_obs)
        order: int64 observation indices sorted by combination
        offsets: int64 segment boundaries, length n_groups * n_blocks + 1
        n_groups: Number of groups
        n_blocks: Number of blocks
        threshold: Shift applied to the focal group's values

    Returns:
        Array of shape (n_features, n_groups, n_groups)
    """
    n_features = X.shape[0]
    n_sel = order.shape[0]
    n_combos = n_groups * n_blocks
    symmetric = threshold == 0.0

    out = np.zeros((n_features, n_groups, n_groups), dtype=np.float64)
    buffer = np.empty(n_sel, dtype=np.float64)

    for f in range(n_features):
        for k in range(n_sel):
            buffer[k] = X[f, order[k]]

        for c in range(n_combos):
            start = offsets[c]
            end = offsets[c + 1]
            if end - start > 1:
                buffer[start:end] = np.sort(buffer[start:end])

        for b in range(n_blocks):
            for g1 in range(n_groups):
                c1 = b * n_groups + g1
                s1 = offsets[c1]
                e1 = offsets[c1 + 1]
                n1 = e1 - s1
                if n1 == 0:
                    continue

                first = g1 + 1 if symmetric else 0
                for g2 in range(first, n_groups):
                    if g2 == g1:
                        continue
                    c2 = b * n_groups + g2
                    s2 = offsets[c2]
                    e2 = offsets[c2 + 1]
                    n2 = e2 - s2
                    if n2 == 0:
                        continue

                    u = _count_greater(buffer, s1, e1, s2, e2, threshold)
                    out[f, g1, g2] += u
                    if symmetric:
                        out[f, g2, g1] += n1 * n2 - u

    return out
