"""Immutable matrix handles with delayed composition.

A handle is a read-only view over a feature x observation matrix. Three
variants share one small interface:

- ``LeafMatrix`` owns (a read-only view of) a dense or sparse buffer;
- ``BoundMatrix`` concatenates several handles along rows or columns without
  copying them, routing every read to the owning input plus offset;
- ``SubsetMatrix`` selects or permutes the rows or columns of a parent.

Handles can be nested freely and shared between composites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
import scipy.sparse

from markerlab.core.exceptions import EmptyInputError, InvalidConfigError, ShapeMismatchError

__all__ = [
    "MatrixHandle",
    "LeafMatrix",
    "BoundMatrix",
    "SubsetMatrix",
    "as_matrix",
]

_AXIS_NAMES = ("rows", "columns")


def _as_index_array(indices, extent: int, axis: int) -> np.ndarray:
    """Validate and normalize an index selection against an extent."""
    if isinstance(indices, slice):
        return np.arange(extent, dtype=np.int64)[indices]

    idx = np.asarray(indices)
    if idx.ndim != 1:
        raise InvalidConfigError(f"{_AXIS_NAMES[axis][:-1]} indices must be 1-dimensional")
    if idx.size == 0:
        return np.empty(0, dtype=np.int64)
    if not np.issubdtype(idx.dtype, np.integer):
        raise InvalidConfigError(
            f"{_AXIS_NAMES[axis][:-1]} indices must be integers, got dtype {idx.dtype}"
        )
    if idx.min() < 0:
        raise InvalidConfigError(f"{_AXIS_NAMES[axis][:-1]} indices must be non-negative")
    if idx.max() >= extent:
        raise InvalidConfigError(
            f"{_AXIS_NAMES[axis][:-1]} indices must be less than the number of "
            f"{_AXIS_NAMES[axis]} ({extent})"
        )
    return idx.astype(np.int64, copy=False)


def _readonly(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


class MatrixHandle(ABC):
    """Read-only numeric matrix with features in rows and observations in columns."""

    @property
    @abstractmethod
    def shape(self) -> tuple[int, int]:
        """Return ``(n_rows, n_columns)``."""

    @property
    def nrow(self) -> int:
        return self.shape[0]

    @property
    def ncol(self) -> int:
        return self.shape[1]

    @abstractmethod
    def _rows(self, indices: np.ndarray) -> np.ndarray:
        """Dense ``(len(indices), ncol)`` block for validated row indices."""

    @abstractmethod
    def _columns(self, indices: np.ndarray) -> np.ndarray:
        """Dense ``(nrow, len(indices))`` block for validated column indices."""

    def rows(self, indices) -> np.ndarray:
        """Extract a dense float64 block of rows.

        Parameters
        ----------
        indices : array-like of int or slice
            Row indices to extract, in the requested order.

        Returns
        -------
        np.ndarray
            Array of shape ``(len(indices), ncol)``. The caller owns it.
        """
        return self._rows(_as_index_array(indices, self.nrow, 0))

    def columns(self, indices) -> np.ndarray:
        """Extract a dense float64 block of columns, shape ``(nrow, len(indices))``."""
        return self._columns(_as_index_array(indices, self.ncol, 1))

    def fetch_rows(self, start: int, stop: int) -> np.ndarray:
        """Extract the contiguous row range ``[start, stop)``."""
        return self.rows(slice(start, stop))

    def row(self, i: int) -> np.ndarray:
        """Return row ``i`` as a read-only 1-D array."""
        return _readonly(self.rows([i])[0])

    def column(self, j: int) -> np.ndarray:
        """Return column ``j`` as a read-only 1-D array."""
        return _readonly(self.columns([j])[:, 0])

    def to_numpy(self) -> np.ndarray:
        """Realize the full matrix as a dense float64 array."""
        return self.rows(slice(None))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(shape={self.shape})"


class LeafMatrix(MatrixHandle):
    """Handle over a concrete dense or sparse buffer.

    Dense input is kept as a read-only view (no copy when the input is
    already float64). Sparse input is stored in CSR form so row extraction
    is cheap.
    """

    def __init__(self, data: np.ndarray | scipy.sparse.spmatrix):
        if scipy.sparse.issparse(data):
            if data.ndim != 2:
                raise ShapeMismatchError("sparse input must be 2-dimensional", axis="ndim")
            csr = data.tocsr() if data.format != "csr" else data
            self._sparse = True
            self._data = csr.astype(np.float64, copy=False)
        else:
            arr = np.asarray(data, dtype=np.float64)
            if arr.ndim != 2:
                raise ShapeMismatchError(
                    f"matrix input must be 2-dimensional, got {arr.ndim} dimensions",
                    axis="ndim",
                )
            self._sparse = False
            self._data = _readonly(arr)
        self._shape = (int(self._data.shape[0]), int(self._data.shape[1]))

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def is_sparse(self) -> bool:
        return self._sparse

    def _rows(self, indices: np.ndarray) -> np.ndarray:
        if self._sparse:
            return self._data[indices].toarray()
        return self._data[indices]

    def _columns(self, indices: np.ndarray) -> np.ndarray:
        if self._sparse:
            return self._data[:, indices].toarray()
        return self._data[:, indices]


class BoundMatrix(MatrixHandle):
    """Delayed concatenation of handles along rows (``axis=0``) or columns (``axis=1``).

    The inputs are referenced, not copied. ``offsets[k]`` is the position of
    input ``k`` along the bound axis.
    """

    def __init__(self, inputs: Sequence[MatrixHandle], axis: int):
        if axis not in (0, 1):
            raise InvalidConfigError(f"axis must be 0 or 1, got {axis}")
        if len(inputs) == 0:
            raise EmptyInputError("need at least one matrix to bind")

        other = 1 - axis
        expected = inputs[0].shape[other]
        for i, current in enumerate(inputs):
            if current.shape[other] != expected:
                raise ShapeMismatchError(
                    f"matrix {i} has {current.shape[other]} {_AXIS_NAMES[other]}, "
                    f"expected {expected}",
                    index=i,
                    axis=_AXIS_NAMES[other],
                    expected=expected,
                    actual=current.shape[other],
                )

        self._inputs = tuple(inputs)
        self._axis = axis
        extents = [m.shape[axis] for m in self._inputs]
        self._offsets = np.concatenate([[0], np.cumsum(extents)]).astype(np.int64)

        total = int(self._offsets[-1])
        self._shape = (total, expected) if axis == 0 else (expected, total)

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def axis(self) -> int:
        return self._axis

    @property
    def inputs(self) -> tuple[MatrixHandle, ...]:
        return self._inputs

    def _route(self, indices: np.ndarray):
        """Yield ``(input, local_indices, output_positions)`` for each owning input."""
        owner = np.searchsorted(self._offsets, indices, side="right") - 1
        for k in np.unique(owner):
            positions = np.flatnonzero(owner == k)
            yield self._inputs[k], indices[positions] - self._offsets[k], positions

    def _gather(self, indices: np.ndarray, along: int) -> np.ndarray:
        n_other = self._shape[1 - along]
        if along == 0:
            out = np.empty((len(indices), n_other), dtype=np.float64)
        else:
            out = np.empty((n_other, len(indices)), dtype=np.float64)

        for current, local, positions in self._route(indices):
            if along == 0:
                out[positions, :] = current._rows(local)
            else:
                out[:, positions] = current._columns(local)
        return out

    def _rows(self, indices: np.ndarray) -> np.ndarray:
        if self._axis == 0:
            return self._gather(indices, 0)
        return np.hstack([m._rows(indices) for m in self._inputs])

    def _columns(self, indices: np.ndarray) -> np.ndarray:
        if self._axis == 1:
            return self._gather(indices, 1)
        return np.vstack([m._columns(indices) for m in self._inputs])


class SubsetMatrix(MatrixHandle):
    """Row (``axis=0``) or column (``axis=1``) selection of a parent handle."""

    def __init__(self, parent: MatrixHandle, indices, axis: int):
        if axis not in (0, 1):
            raise InvalidConfigError(f"axis must be 0 or 1, got {axis}")
        self._parent = parent
        self._axis = axis
        self._indices = _readonly(_as_index_array(indices, parent.shape[axis], axis))

        if axis == 0:
            self._shape = (len(self._indices), parent.ncol)
        else:
            self._shape = (parent.nrow, len(self._indices))

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def parent(self) -> MatrixHandle:
        return self._parent

    @property
    def indices(self) -> np.ndarray:
        return self._indices

    def _rows(self, indices: np.ndarray) -> np.ndarray:
        if self._axis == 0:
            return self._parent._rows(self._indices[indices])
        return self._parent._rows(indices)[:, self._indices]

    def _columns(self, indices: np.ndarray) -> np.ndarray:
        if self._axis == 1:
            return self._parent._columns(self._indices[indices])
        return self._parent._columns(indices)[self._indices, :]


def as_matrix(x) -> MatrixHandle:
    """Wrap ``x`` as a :class:`MatrixHandle`.

    Handles are returned unchanged; numpy arrays, array-likes and scipy
    sparse matrices become a :class:`LeafMatrix`.
    """
    if isinstance(x, MatrixHandle):
        return x
    return LeafMatrix(x)
