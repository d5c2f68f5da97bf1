"""Tests for matrix binding and identifier intersection."""

import numpy as np
import pytest
import scipy.sparse as sp

from markerlab.analysis import cbind, cbind_with_rownames, rbind, subset_columns, subset_rows
from markerlab.core.exceptions import (
    EmptyInputError,
    EmptyIntersectionError,
    InvalidConfigError,
    ShapeMismatchError,
)
from markerlab.kernels.mapping import build_lookup, intersect_identifiers, lookup_indices
from markerlab.types import LeafMatrix


# =============================================================================
# Test cbind / rbind
# =============================================================================


class TestBind:
    """Tests for cbind and rbind."""

    @pytest.fixture
    def matrices(self):
        rng = np.random.default_rng(0)
        return rng.normal(size=(4, 3)), rng.normal(size=(4, 5)), rng.normal(size=(4, 2))

    def test_cbind(self, matrices):
        A, B, C = matrices
        m = cbind([A, B, C])
        assert m.shape == (4, 10)
        np.testing.assert_array_equal(m.to_numpy(), np.hstack([A, B, C]))

    def test_cbind_column_routing(self, matrices):
        A, B, _ = matrices
        m = cbind([A, B])
        for c in range(A.shape[1] + B.shape[1]):
            expected = A[:, c] if c < A.shape[1] else B[:, c - A.shape[1]]
            np.testing.assert_array_equal(m.column(c), expected)

    def test_rbind(self, matrices):
        A, B, _ = matrices
        m = rbind([A.T, B.T])
        assert m.shape == (8, 4)
        np.testing.assert_array_equal(m.to_numpy(), np.vstack([A.T, B.T]))

    def test_single_input_returned(self, matrices):
        leaf = LeafMatrix(matrices[0])
        assert cbind([leaf]) is leaf
        assert rbind([leaf]) is leaf

    def test_single_array_equal(self, matrices):
        A = matrices[0]
        np.testing.assert_array_equal(cbind([A]).to_numpy(), A)

    def test_mixed_sparse_dense(self, matrices):
        A, B, _ = matrices
        m = cbind([sp.csr_matrix(A), B])
        np.testing.assert_allclose(m.to_numpy(), np.hstack([A, B]))

    def test_nested_binds(self, matrices):
        A, B, C = matrices
        m = cbind([cbind([A, B]), C])
        np.testing.assert_array_equal(m.to_numpy(), np.hstack([A, B, C]))

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            cbind([])
        with pytest.raises(EmptyInputError):
            rbind([])

    def test_row_mismatch_raises(self, matrices):
        A, B, _ = matrices
        with pytest.raises(ShapeMismatchError) as excinfo:
            cbind([A, B, np.zeros((3, 2))])
        assert excinfo.value.index == 2
        assert excinfo.value.expected == 4
        assert excinfo.value.actual == 3

    def test_column_mismatch_raises(self, matrices):
        A, B, _ = matrices
        with pytest.raises(ShapeMismatchError) as excinfo:
            rbind([A, B])
        assert excinfo.value.index == 1
        assert excinfo.value.axis == "columns"


# =============================================================================
# Test cbind_with_rownames
# =============================================================================


class TestCbindWithRownames:
    """Tests for name-matched column binding."""

    def test_basic_intersection(self):
        A = np.arange(6, dtype=float).reshape(3, 2)
        B = 10 + np.arange(12, dtype=float).reshape(3, 4)
        combined, idx = cbind_with_rownames([A, B], [[1, 2, 3], [2, 3, 4]])

        assert combined.shape == (2, 6)
        assert idx.tolist() == [1, 2]
        assert idx.dtype == np.int32
        np.testing.assert_array_equal(combined.to_numpy(), np.hstack([A[[1, 2]], B[[0, 1]]]))

    def test_order_follows_first_input(self):
        A = np.arange(4, dtype=float)[:, None]
        B = 10 + np.arange(4, dtype=float)[:, None]
        combined, idx = cbind_with_rownames([A, B], [["d", "b", "c", "a"], ["a", "b", "c", "d"]])

        assert idx.tolist() == [0, 1, 2, 3]
        np.testing.assert_array_equal(combined.column(1), [13.0, 11.0, 12.0, 10.0])

    def test_duplicates_use_last_occurrence(self):
        A = np.arange(3, dtype=float)[:, None]
        B = 10 + np.arange(2, dtype=float)[:, None]
        combined, idx = cbind_with_rownames([A, B], [["x", "y", "x"], ["y", "x"]])

        assert combined.nrow == 2
        assert idx.tolist() == [2, 1]
        np.testing.assert_array_equal(combined.column(1), [11.0, 10.0])

    def test_three_inputs_threaded(self):
        rng = np.random.default_rng(1)
        names = [f"g{i}" for i in range(20)]
        mats = [rng.normal(size=(20, k)) for k in (2, 3, 4)]
        ids = [names, names[::-1], names[5:] + names[:5]]

        serial, idx1 = cbind_with_rownames(mats, ids)
        threaded, idx4 = cbind_with_rownames(mats, ids, num_threads=4)

        np.testing.assert_array_equal(idx1, idx4)
        np.testing.assert_array_equal(serial.to_numpy(), threaded.to_numpy())

    def test_single_input(self):
        A = np.arange(3, dtype=float)[:, None]
        combined, idx = cbind_with_rownames([A], [[5, 6, 7]])
        assert idx.tolist() == [0, 1, 2]
        np.testing.assert_array_equal(combined.to_numpy(), A)

    def test_empty_intersection_raises(self):
        A = np.zeros((2, 1))
        with pytest.raises(EmptyIntersectionError):
            cbind_with_rownames([A, A], [[1, 2], [3, 4]])

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            cbind_with_rownames([], [])

    def test_identifier_length_mismatch(self):
        A = np.zeros((2, 1))
        with pytest.raises(ShapeMismatchError) as excinfo:
            cbind_with_rownames([A, A], [[1, 2], [1, 2, 3]])
        assert excinfo.value.index == 1

    def test_identifier_count_mismatch(self):
        A = np.zeros((2, 1))
        with pytest.raises(ShapeMismatchError):
            cbind_with_rownames([A, A], [[1, 2]])

    def test_invalid_threads(self):
        A = np.zeros((2, 1))
        with pytest.raises(InvalidConfigError):
            cbind_with_rownames([A], [[1, 2]], num_threads=0)


# =============================================================================
# Test subsetting and mapping kernels
# =============================================================================


class TestSubset:
    """Tests for subset_rows / subset_columns."""

    def test_subset_rows(self):
        X = np.arange(12, dtype=float).reshape(4, 3)
        np.testing.assert_array_equal(subset_rows(X, [3, 1]).to_numpy(), X[[3, 1]])

    def test_subset_columns(self):
        X = np.arange(12, dtype=float).reshape(4, 3)
        np.testing.assert_array_equal(subset_columns(X, [2]).to_numpy(), X[:, [2]])

    def test_subset_rows_out_of_range(self):
        with pytest.raises(InvalidConfigError):
            subset_rows(np.zeros((2, 2)), [2])


class TestMapping:
    """Tests for identifier lookup kernels."""

    def test_build_lookup_last_wins(self):
        assert build_lookup(["a", "b", "a"]) == {"a": 2, "b": 1}

    def test_lookup_indices_fallback(self):
        out = lookup_indices({"a": 0, "b": 1}, ["b", "z", "a"])
        assert out.tolist() == [1, -1, 0]
        assert out.dtype == np.int32

    def test_numpy_identifiers(self):
        common, sel = intersect_identifiers([np.array([3, 1, 2]), np.array([2, 3])])
        assert common == [3, 2]
        assert [s.tolist() for s in sel] == [[0, 2], [1, 0]]
