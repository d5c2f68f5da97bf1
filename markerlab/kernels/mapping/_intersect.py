"""Ordered intersection of row identifiers across several inputs."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Hashable, Sequence

import numpy as np

from markerlab.utils import get_logger

from ._lookup import _as_keys, build_lookup, lookup_indices

logger = get_logger("markerlab.kernels")

__all__ = ["intersect_identifiers"]


def intersect_identifiers(
    identifiers: Sequence[Sequence[Hashable]],
    num_threads: int = 1,
) -> tuple[list, list[np.ndarray]]:
    """Intersect identifier arrays, keeping the order of the first input.

    Each input gets its own identifier -> row map (last occurrence wins);
    the maps are built independently, on a thread pool when ``num_threads > 1``,
    and merged afterwards.

    Parameters
    ----------
    identifiers : sequence of sequences
        One identifier array per input.
    num_threads : int, default=1
        Number of worker threads used to build the per-input maps.

    Returns
    -------
    common : list
        Identifiers present in every input, ordered by first occurrence in
        input 0.
    selections : list of np.ndarray
        For each input, the int32 row indices of ``common`` in that input.

    Examples
    --------
    >>> common, sel = intersect_identifiers([[1, 2, 3], [2, 3, 4]])
    >>> common
    [2, 3]
    >>> [s.tolist() for s in sel]
    [[1, 2], [0, 1]]
    """
    if num_threads > 1 and len(identifiers) > 1:
        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            lookups = list(executor.map(build_lookup, identifiers))
    else:
        lookups = [build_lookup(ids) for ids in identifiers]

    # Smallest map first so the membership test rejects early
    others = sorted(lookups[1:], key=len)

    seen = set()
    common = []
    for key in _as_keys(identifiers[0]):
        if key in seen:
            continue
        seen.add(key)
        if all(key in other for other in others):
            common.append(key)

    logger.debug(
        f"Intersected {len(lookups)} identifier sets: {len(common)} common of "
        f"{len(lookups[0])} in the first input"
    )

    selections = [lookup_indices(lookup, common) for lookup in lookups]
    return common, selections
