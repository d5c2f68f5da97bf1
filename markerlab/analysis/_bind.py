"""Delayed row/column binding of matrix handles."""

from __future__ import annotations

from typing import Hashable, Sequence

import numpy as np

from markerlab.core.exceptions import (
    EmptyInputError,
    EmptyIntersectionError,
    InvalidConfigError,
    ShapeMismatchError,
)
from markerlab.kernels.mapping import intersect_identifiers
from markerlab.types import BoundMatrix, MatrixHandle, SubsetMatrix, as_matrix
from markerlab.utils import get_logger

logger = get_logger("markerlab.analysis")

__all__ = ["cbind", "rbind", "cbind_with_rownames", "subset_rows", "subset_columns"]


def _bind(matrices: Sequence, axis: int, name: str) -> MatrixHandle:
    if len(matrices) == 0:
        raise EmptyInputError(f"need at least one matrix to {name}")

    handles = [as_matrix(m) for m in matrices]
    if len(handles) == 1:
        return handles[0]

    other = 1 - axis
    label = "rows" if other == 0 else "columns"
    expected = handles[0].shape[other]
    for i, current in enumerate(handles[1:], start=1):
        if current.shape[other] != expected:
            raise ShapeMismatchError(
                f"all matrices to {name} should have the same number of {label}: "
                f"matrix {i} has {current.shape[other]}, matrix 0 has {expected}",
                index=i,
                axis=label,
                expected=expected,
                actual=current.shape[other],
            )

    bound = BoundMatrix(handles, axis=axis)
    logger.debug(f"{name}: {len(handles)} matrices -> shape {bound.shape}")
    return bound


def cbind(matrices: Sequence) -> MatrixHandle:
    """Combine matrices by column.

    Parameters
    ----------
    matrices : sequence of MatrixHandle or array-like
        Matrices to combine; all must have the same number of rows.

    Returns
    -------
    MatrixHandle
        Delayed composite whose columns are the concatenation of the inputs'
        columns. A single input is returned as-is.

    Raises
    ------
    EmptyInputError
        If ``matrices`` is empty.
    ShapeMismatchError
        If any matrix has a different number of rows from the first;
        ``.index`` identifies the offending input.

    Examples
    --------
    >>> import numpy as np
    >>> A = np.arange(6.0).reshape(2, 3)
    >>> B = np.ones((2, 2))
    >>> cbind([A, B]).shape
    (2, 5)
    """
    return _bind(matrices, axis=1, name="cbind")


def rbind(matrices: Sequence) -> MatrixHandle:
    """Combine matrices by row.

    All matrices must have the same number of columns; see :func:`cbind`.
    """
    return _bind(matrices, axis=0, name="rbind")


def cbind_with_rownames(
    matrices: Sequence,
    row_identifiers: Sequence[Sequence[Hashable]],
    *,
    num_threads: int = 1,
) -> tuple[MatrixHandle, np.ndarray]:
    """Combine matrices by column after intersecting their row identifiers.

    Only rows whose identifier is present in every input are kept. Rows are
    ordered by the first occurrence of their identifier in the first input;
    within any input, a repeated identifier maps to its last occurrence.

    Parameters
    ----------
    matrices : sequence of MatrixHandle or array-like
        Matrices to combine.
    row_identifiers : sequence of sequences
        For each matrix, one identifier (integer code or name) per row.
    num_threads : int, default=1
        Number of threads used to index the identifiers of each input.

    Returns
    -------
    combined : MatrixHandle
        Delayed composite with one row per common identifier and the
        columns of all inputs.
    first_input_row_indices : np.ndarray
        int32 array; entry ``i`` is the row of the first input that
        corresponds to row ``i`` of ``combined``. Use it to recover row
        labels from the first input's names.

    Raises
    ------
    EmptyInputError
        If ``matrices`` is empty.
    ShapeMismatchError
        If the number of identifier arrays differs from the number of
        matrices, or an identifier array's length differs from its
        matrix's row count.
    EmptyIntersectionError
        If no identifier is shared by all inputs.

    Examples
    --------
    >>> import numpy as np
    >>> A, B = np.zeros((3, 2)), np.ones((3, 4))
    >>> combined, idx = cbind_with_rownames([A, B], [[1, 2, 3], [2, 3, 4]])
    >>> combined.shape
    (2, 6)
    >>> idx.tolist()
    [1, 2]
    """
    if len(matrices) == 0:
        raise EmptyInputError("need at least one matrix to cbind")
    if num_threads < 1:
        raise InvalidConfigError(f"num_threads must be at least 1, got {num_threads}")

    handles = [as_matrix(m) for m in matrices]
    if len(row_identifiers) != len(handles):
        raise ShapeMismatchError(
            f"expected {len(handles)} row identifier arrays, got {len(row_identifiers)}",
            axis="identifiers",
            expected=len(handles),
            actual=len(row_identifiers),
        )

    for i, (current, ids) in enumerate(zip(handles, row_identifiers)):
        if len(ids) != current.nrow:
            raise ShapeMismatchError(
                f"row identifiers for matrix {i} have length {len(ids)}, "
                f"but the matrix has {current.nrow} rows",
                index=i,
                axis="rows",
                expected=current.nrow,
                actual=len(ids),
            )

    common, selections = intersect_identifiers(row_identifiers, num_threads=num_threads)
    if len(common) == 0:
        raise EmptyIntersectionError(
            f"no row identifiers are shared by all {len(handles)} matrices"
        )

    resliced = [SubsetMatrix(current, sel, axis=0) for current, sel in zip(handles, selections)]
    combined = BoundMatrix(resliced, axis=1)

    logger.debug(
        f"cbind_with_rownames: {len(handles)} matrices -> {len(common)} common rows, "
        f"{combined.ncol} columns"
    )
    return combined, selections[0]


def subset_rows(matrix, indices) -> MatrixHandle:
    """Delayed selection of rows.

    Raises
    ------
    InvalidConfigError
        If an index is negative or not less than the number of rows.
    """
    return SubsetMatrix(as_matrix(matrix), indices, axis=0)


def subset_columns(matrix, indices) -> MatrixHandle:
    """Delayed selection of columns.

    Examples
    --------
    >>> import numpy as np
    >>> X = np.arange(20.0).reshape(2, 10)
    >>> subset_columns(X, [1, 5, 7]).column(1).tolist()
    [5.0, 15.0]
    """
    return SubsetMatrix(as_matrix(matrix), indices, axis=1)
