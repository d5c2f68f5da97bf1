"""Tests for markerlab.types matrix handles.

This module tests:
- LeafMatrix over dense and sparse buffers
- BoundMatrix routing along rows and columns
- SubsetMatrix selection and nesting
- Read-only guarantees and index validation
"""

import numpy as np
import pytest
import scipy.sparse as sp

from markerlab.core.exceptions import EmptyInputError, InvalidConfigError, ShapeMismatchError
from markerlab.types import BoundMatrix, LeafMatrix, MatrixHandle, SubsetMatrix, as_matrix


@pytest.fixture
def dense():
    return np.arange(12, dtype=float).reshape(3, 4)


# =============================================================================
# Test LeafMatrix
# =============================================================================


class TestLeafMatrix:
    """Tests for LeafMatrix."""

    def test_shape(self, dense):
        m = LeafMatrix(dense)
        assert m.shape == (3, 4)
        assert m.nrow == 3
        assert m.ncol == 4

    def test_rows_and_columns(self, dense):
        m = LeafMatrix(dense)
        np.testing.assert_array_equal(m.rows([2, 0]), dense[[2, 0]])
        np.testing.assert_array_equal(m.columns([3, 1]), dense[:, [3, 1]])
        np.testing.assert_array_equal(m.fetch_rows(1, 3), dense[1:3])

    def test_row_and_column(self, dense):
        m = LeafMatrix(dense)
        np.testing.assert_array_equal(m.row(1), dense[1])
        np.testing.assert_array_equal(m.column(2), dense[:, 2])

    def test_row_is_read_only(self, dense):
        m = LeafMatrix(dense)
        with pytest.raises(ValueError):
            m.row(0)[0] = 100.0

    def test_extracted_blocks_are_owned(self, dense):
        m = LeafMatrix(dense)
        block = m.rows([0])
        block[0, 0] = -1.0
        assert dense[0, 0] == 0.0
        assert m.row(0)[0] == 0.0

    def test_sparse_matches_dense(self, dense):
        m = LeafMatrix(sp.csc_matrix(dense))
        assert m.is_sparse
        np.testing.assert_array_equal(m.to_numpy(), dense)
        np.testing.assert_array_equal(m.columns([1]), dense[:, [1]])

    def test_integer_input_converted(self):
        m = LeafMatrix(np.array([[1, 2], [3, 4]]))
        assert m.to_numpy().dtype == np.float64

    def test_non_2d_raises(self):
        with pytest.raises(ShapeMismatchError):
            LeafMatrix(np.zeros(5))

    def test_negative_index_raises(self, dense):
        m = LeafMatrix(dense)
        with pytest.raises(InvalidConfigError, match="non-negative"):
            m.rows([-1])

    def test_out_of_range_raises(self, dense):
        m = LeafMatrix(dense)
        with pytest.raises(InvalidConfigError, match="less than the number of columns"):
            m.column(4)

    def test_as_matrix(self, dense):
        m = as_matrix(dense)
        assert isinstance(m, MatrixHandle)
        assert as_matrix(m) is m


# =============================================================================
# Test BoundMatrix
# =============================================================================


class TestBoundMatrix:
    """Tests for BoundMatrix."""

    @pytest.fixture
    def parts(self):
        A = np.arange(6, dtype=float).reshape(2, 3)
        B = 100 + np.arange(4, dtype=float).reshape(2, 2)
        return A, B

    def test_column_binding(self, parts):
        A, B = parts
        m = BoundMatrix([LeafMatrix(A), LeafMatrix(B)], axis=1)
        assert m.shape == (2, 5)
        np.testing.assert_array_equal(m.to_numpy(), np.hstack([A, B]))

    def test_column_routing(self, parts):
        A, B = parts
        m = BoundMatrix([LeafMatrix(A), LeafMatrix(B)], axis=1)
        for c in range(3):
            np.testing.assert_array_equal(m.column(c), A[:, c])
        for c in range(3, 5):
            np.testing.assert_array_equal(m.column(c), B[:, c - 3])

    def test_mixed_selection_order(self, parts):
        A, B = parts
        m = BoundMatrix([LeafMatrix(A), LeafMatrix(B)], axis=1)
        expected = np.hstack([A, B])[:, [4, 0, 3, 2]]
        np.testing.assert_array_equal(m.columns([4, 0, 3, 2]), expected)

    def test_row_binding(self, parts):
        A, _ = parts
        C = -np.ones((1, 3))
        m = BoundMatrix([LeafMatrix(A), LeafMatrix(C)], axis=0)
        assert m.shape == (3, 3)
        np.testing.assert_array_equal(m.row(2), C[0])
        np.testing.assert_array_equal(m.columns([1]), np.vstack([A, C])[:, [1]])

    def test_empty_input_between(self, parts):
        A, B = parts
        empty = np.zeros((2, 0))
        m = BoundMatrix([LeafMatrix(A), LeafMatrix(empty), LeafMatrix(B)], axis=1)
        np.testing.assert_array_equal(m.column(3), B[:, 0])

    def test_shape_mismatch_reports_index(self, parts):
        A, _ = parts
        with pytest.raises(ShapeMismatchError) as excinfo:
            BoundMatrix([LeafMatrix(A), LeafMatrix(A), LeafMatrix(np.zeros((3, 1)))], axis=1)
        assert excinfo.value.index == 2
        assert excinfo.value.axis == "rows"

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            BoundMatrix([], axis=1)

    def test_invalid_axis_raises(self, parts):
        with pytest.raises(InvalidConfigError):
            BoundMatrix([LeafMatrix(parts[0])], axis=2)

    def test_shared_inputs(self, parts):
        A, _ = parts
        leaf = LeafMatrix(A)
        m = BoundMatrix([leaf, leaf], axis=1)
        np.testing.assert_array_equal(m.to_numpy(), np.hstack([A, A]))
        assert m.inputs[0] is m.inputs[1]


# =============================================================================
# Test SubsetMatrix
# =============================================================================


class TestSubsetMatrix:
    """Tests for SubsetMatrix."""

    def test_row_subset(self, dense):
        m = SubsetMatrix(LeafMatrix(dense), [2, 0], axis=0)
        assert m.shape == (2, 4)
        np.testing.assert_array_equal(m.to_numpy(), dense[[2, 0]])
        np.testing.assert_array_equal(m.column(1), dense[[2, 0], 1])

    def test_column_subset(self, dense):
        m = SubsetMatrix(LeafMatrix(dense), [3, 3, 1], axis=1)
        np.testing.assert_array_equal(m.to_numpy(), dense[:, [3, 3, 1]])
        np.testing.assert_array_equal(m.row(0), dense[0, [3, 3, 1]])

    def test_nested(self, dense):
        bound = BoundMatrix([LeafMatrix(dense), LeafMatrix(dense * 10)], axis=1)
        m = SubsetMatrix(bound, [1, 2], axis=0)
        expected = np.hstack([dense, dense * 10])[[1, 2]]
        np.testing.assert_array_equal(m.to_numpy(), expected)

    def test_indices_read_only(self, dense):
        m = SubsetMatrix(LeafMatrix(dense), [0, 1], axis=0)
        with pytest.raises(ValueError):
            m.indices[0] = 2

    def test_out_of_range_raises(self, dense):
        with pytest.raises(InvalidConfigError):
            SubsetMatrix(LeafMatrix(dense), [0, 3], axis=0)
