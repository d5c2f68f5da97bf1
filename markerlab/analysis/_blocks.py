"""Averaging of per-block statistics."""

from __future__ import annotations

import numpy as np

__all__ = ["average_vectors", "average_blocks"]


def average_vectors(vectors: np.ndarray) -> np.ndarray:
    """Average equal-length vectors, skipping NaN entries.

    Parameters
    ----------
    vectors : np.ndarray
        Shape (n_vectors, n_features). NaN marks an entry that should not
        contribute, e.g. a block with no observations of the group.

    Returns
    -------
    np.ndarray
        Length n_features; NaN where every vector is NaN.

    Examples
    --------
    >>> average_vectors(np.array([[1.0, np.nan], [3.0, np.nan]]))
    array([ 2., nan])
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    valid = ~np.isnan(vectors)
    n_valid = valid.sum(axis=0)
    total = np.where(valid, vectors, 0.0).sum(axis=0)

    out = np.full(vectors.shape[1:], np.nan)
    np.divide(total, n_valid, out=out, where=n_valid > 0)
    return out


def average_blocks(per_block: np.ndarray) -> np.ndarray:
    """Average per-block statistics for every group.

    Parameters
    ----------
    per_block : np.ndarray
        Shape (n_groups, n_blocks, n_features).

    Returns
    -------
    np.ndarray
        Shape (n_groups, n_features). With a single block this is a view of
        block 0, not a copy.
    """
    n_groups, n_blocks, n_features = per_block.shape
    if n_blocks == 1:
        return per_block[:, 0, :]

    out = np.full((n_groups, n_features), np.nan)
    for g in range(n_groups):
        out[g] = average_vectors(per_block[g])
    return out
