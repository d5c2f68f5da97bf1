"""Tests for markerlab.kernels.statistics.

Both backends are checked against straightforward NumPy references and
against each other.
"""

import numpy as np
import pytest

from markerlab.core.exceptions import InvalidConfigError
from markerlab.kernels.statistics import (
    available_backends,
    get_backend,
    group_block_moments,
    pairwise_auc,
    set_backend,
)

BACKENDS = ["numba", "python"]


def _layout(groups, blocks, n_groups, n_blocks):
    combo = np.asarray(blocks) * n_groups + np.asarray(groups)
    counts = np.bincount(combo, minlength=n_groups * n_blocks)
    order = np.argsort(combo, kind="stable")
    offsets = np.concatenate([[0], np.cumsum(counts)])
    return combo, order, offsets


def _reference_u(x1, x2, threshold):
    diff = (x1[:, None] - threshold) - x2[None, :]
    return float((diff > 0).sum() + 0.5 * (diff == 0).sum())


@pytest.fixture
def data():
    rng = np.random.default_rng(42)
    X = rng.poisson(1.0, size=(30, 60)).astype(float)
    groups = rng.integers(0, 3, size=60)
    blocks = rng.integers(0, 2, size=60)
    return X, groups, blocks


# =============================================================================
# Test group_block_moments
# =============================================================================


class TestGroupBlockMoments:
    """Tests for group_block_moments."""

    @pytest.mark.parametrize("backend", BACKENDS)
    def test_against_reference(self, data, backend):
        X, groups, blocks = data
        combo, _, _ = _layout(groups, blocks, 3, 2)
        means, detected, variances = group_block_moments(X, combo, 6, backend=backend)

        assert means.shape == (30, 6)
        for c in range(6):
            sub = X[:, combo == c]
            np.testing.assert_allclose(means[:, c], sub.mean(axis=1))
            np.testing.assert_allclose(detected[:, c], (sub != 0).mean(axis=1))
            np.testing.assert_allclose(variances[:, c], sub.var(axis=1, ddof=1))

    @pytest.mark.parametrize("backend", BACKENDS)
    def test_empty_and_singleton_combos(self, backend):
        X = np.array([[1.0, 0.0, 4.0]])
        combo = np.array([0, 0, 2])
        means, detected, variances = group_block_moments(X, combo, 3, backend=backend)

        np.testing.assert_allclose(means[0], [0.5, np.nan, 4.0])
        np.testing.assert_allclose(detected[0], [0.5, np.nan, 1.0])
        np.testing.assert_allclose(variances[0], [0.5, np.nan, np.nan])

    def test_backends_agree(self, data):
        X, groups, blocks = data
        combo, _, _ = _layout(groups, blocks, 3, 2)
        numba_out = group_block_moments(X, combo, 6, backend="numba")
        python_out = group_block_moments(X, combo, 6, backend="python")
        for a, b in zip(numba_out, python_out):
            np.testing.assert_allclose(a, b, equal_nan=True)


# =============================================================================
# Test pairwise_auc
# =============================================================================


class TestPairwiseAuc:
    """Tests for pairwise_auc."""

    @pytest.mark.parametrize("backend", BACKENDS)
    @pytest.mark.parametrize("threshold", [0.0, 0.5])
    def test_against_reference(self, data, backend, threshold):
        X, groups, blocks = data
        _, order, offsets = _layout(groups, blocks, 3, 2)
        u = pairwise_auc(X, order, offsets, 3, 2, threshold, backend=backend)

        assert u.shape == (30, 3, 3)
        for f in [0, 7, 29]:
            for g1 in range(3):
                for g2 in range(3):
                    if g1 == g2:
                        continue
                    expected = 0.0
                    for b in range(2):
                        x1 = X[f, (groups == g1) & (blocks == b)]
                        x2 = X[f, (groups == g2) & (blocks == b)]
                        expected += _reference_u(x1, x2, threshold)
                    assert u[f, g1, g2] == pytest.approx(expected)

    @pytest.mark.parametrize("backend", BACKENDS)
    def test_complement(self, data, backend):
        X, groups, _ = data
        _, order, offsets = _layout(groups, np.zeros_like(groups), 3, 1)
        u = pairwise_auc(X, order, offsets, 3, 1, backend=backend)

        sizes = np.bincount(groups, minlength=3)
        for g1 in range(3):
            for g2 in range(g1 + 1, 3):
                total = sizes[g1] * sizes[g2]
                np.testing.assert_allclose(u[:, g1, g2] + u[:, g2, g1], total)

    def test_ties_count_half(self):
        X = np.array([[1.0, 1.0]])
        u = pairwise_auc(X, np.array([0, 1]), np.array([0, 1, 2]), 2, 1)
        assert u[0, 0, 1] == 0.5
        assert u[0, 1, 0] == 0.5

    def test_backends_agree(self, data):
        X, groups, blocks = data
        _, order, offsets = _layout(groups, blocks, 3, 2)
        np.testing.assert_allclose(
            pairwise_auc(X, order, offsets, 3, 2, 0.25, backend="numba"),
            pairwise_auc(X, order, offsets, 3, 2, 0.25, backend="python"),
        )


# =============================================================================
# Test backend registry
# =============================================================================


class TestBackendRegistry:
    """Tests for backend selection."""

    def test_available(self):
        assert set(available_backends()) == {"numba", "python"}

    def test_set_backend(self):
        previous = get_backend()
        try:
            set_backend("python")
            assert get_backend() == "python"
        finally:
            set_backend(previous)
        assert get_backend() == previous

    def test_unknown_backend_raises(self):
        with pytest.raises(InvalidConfigError):
            set_backend("cuda")
        with pytest.raises(InvalidConfigError):
            group_block_moments(np.zeros((1, 2)), np.array([0, 0]), 1, backend="cuda")
