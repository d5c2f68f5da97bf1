"""Pairwise effect sizes between groups of observations."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import numpy as np
from tqdm import tqdm

from markerlab.core.config import ScoreMarkersConfig
from markerlab.core.exceptions import InvalidConfigError, ShapeMismatchError
from markerlab.kernels.statistics import available_backends, group_block_moments, pairwise_auc
from markerlab.types import MatrixHandle, as_matrix
from markerlab.utils import get_logger

logger = get_logger("markerlab.analysis")

__all__ = ["PairwiseEffects", "pairwise_effects", "resolve_config"]

_FLOAT_OPTIONS = ("lfc_threshold", "sd_floor")
_INT_OPTIONS = ("num_threads", "chunk_size")
_BOOL_OPTIONS = ("compute_auc", "compute_median", "compute_max", "show_progress")


def resolve_config(config: ScoreMarkersConfig | None = None, **overrides: Any) -> ScoreMarkersConfig:
    """Merge keyword overrides into a copy of ``config`` and validate it.

    ``None`` overrides are ignored. NumPy scalars are converted to Python
    scalars so they pass the config's type checks.
    """
    base = config.to_dict() if config is not None else {}

    for key, value in overrides.items():
        if value is None:
            continue
        try:
            if key in _FLOAT_OPTIONS:
                value = float(value)
            elif key in _INT_OPTIONS and isinstance(value, np.integer):
                value = int(value)
            elif key in _BOOL_OPTIONS:
                value = bool(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"Invalid value for {key}: {value!r}") from e
        base[key] = value

    try:
        resolved = ScoreMarkersConfig.from_dict(base)
    except TypeError as e:
        raise InvalidConfigError(str(e)) from e
    return resolved.validate()


def _as_assignment(values, n_obs: int, name: str) -> np.ndarray:
    """Validate a group/block assignment array and return it as int64."""
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise InvalidConfigError(f"{name} must be 1-dimensional, got {arr.ndim} dimensions")
    if len(arr) != n_obs:
        raise ShapeMismatchError(
            f"length of {name} ({len(arr)}) must equal the number of columns ({n_obs})",
            axis=name,
            expected=n_obs,
            actual=len(arr),
        )
    if arr.size == 0:
        return arr.astype(np.int64)

    if arr.dtype.kind == "f":
        if not np.all(np.isfinite(arr)) or not np.all(arr == np.floor(arr)):
            raise InvalidConfigError(f"{name} must contain integer ids")
    elif arr.dtype.kind not in "iu":
        raise InvalidConfigError(f"{name} must contain integer ids, got dtype {arr.dtype}")

    arr = arr.astype(np.int64)
    if arr.min() < 0:
        raise InvalidConfigError(f"{name} ids must be non-negative")
    return arr


@dataclass
class PairwiseEffects:
    """Effect sizes for every ordered pair of groups.

    Attributes
    ----------
    cohen, lfc, delta_detected : np.ndarray
        Shape (n_groups, n_groups, n_features). Entry ``[g, h, f]`` is the
        effect of group ``g`` relative to group ``h`` for feature ``f``;
        the diagonal is NaN, as is any pair that never shares a block.
    auc : np.ndarray or None
        Same layout, or None when the AUC was not computed.
    means, detected : np.ndarray
        Per-block statistics, shape (n_groups, n_blocks, n_features).
    group_sizes : np.ndarray
        Number of observations per group and block, shape (n_groups, n_blocks).
    lfc_threshold : float
        Threshold used for Cohen's d and the AUC.
    """

    cohen: np.ndarray
    lfc: np.ndarray
    delta_detected: np.ndarray
    auc: np.ndarray | None
    means: np.ndarray
    detected: np.ndarray
    group_sizes: np.ndarray
    lfc_threshold: float = 0.0

    @property
    def n_groups(self) -> int:
        return self.means.shape[0]

    @property
    def n_blocks(self) -> int:
        return self.means.shape[1]

    @property
    def n_features(self) -> int:
        return self.means.shape[2]

    def metrics(self) -> dict[str, np.ndarray]:
        """Computed effect arrays by name."""
        out = {
            "cohen": self.cohen,
            "lfc": self.lfc,
            "delta_detected": self.delta_detected,
        }
        if self.auc is not None:
            out["auc"] = self.auc
        return out


class _Layout:
    """Grouping of observations into (block, group) combinations."""

    def __init__(self, groups: np.ndarray, blocks: np.ndarray | None):
        self.n_groups = int(groups.max()) + 1 if groups.size else 0
        if blocks is None:
            self.n_blocks = 1
            blocks = np.zeros_like(groups)
        else:
            self.n_blocks = int(blocks.max()) + 1 if blocks.size else 1

        self.n_combos = self.n_groups * self.n_blocks
        self.combo = blocks * self.n_groups + groups

        counts = np.bincount(self.combo, minlength=self.n_combos)
        self.counts = counts.reshape(self.n_blocks, self.n_groups)
        self.order = np.argsort(self.combo, kind="stable")
        self.offsets = np.concatenate([[0], np.cumsum(counts)]).astype(np.int64)

        sizes = self.counts.astype(np.float64)
        # weights[b, g, h] = n_gb * n_hb, zero when either group is absent
        self.weights = sizes[:, :, None] * sizes[:, None, :]
        self.total_weight = self.weights.sum(axis=0)


def _weighted_over_blocks(per_block, layout: _Layout) -> np.ndarray:
    """Weighted mean over blocks of (n_features, n_groups, n_groups) arrays."""
    acc = None
    for b, values in enumerate(per_block):
        w = layout.weights[b]
        term = np.where(w > 0, values * w, 0.0)
        acc = term if acc is None else acc + term

    out = np.full(acc.shape, np.nan)
    np.divide(acc, layout.total_weight, out=out, where=layout.total_weight > 0)
    return out


def _pooled_sd(var: np.ndarray, sd_floor: float) -> np.ndarray:
    """Pooled SD for every pair, from per-group variances of shape (n_features, n_groups)."""
    v1 = var[:, :, None]
    v2 = var[:, None, :]
    miss1 = np.isnan(v1)
    miss2 = np.isnan(v2)

    pooled = np.where(
        miss1,
        np.where(miss2, 0.0, v2),
        np.where(miss2, v1, (v1 + v2) / 2.0),
    )
    return np.maximum(np.sqrt(pooled), sd_floor)


def _score_chunk(
    matrix: MatrixHandle,
    start: int,
    stop: int,
    layout: _Layout,
    config: ScoreMarkersConfig,
) -> dict[str, np.ndarray]:
    """All per-feature statistics for rows ``[start, stop)``."""
    X = matrix.fetch_rows(start, stop)
    n_chunk = stop - start
    G, B = layout.n_groups, layout.n_blocks
    threshold = config.lfc_threshold

    means, detected, variances = group_block_moments(
        X, layout.combo, layout.n_combos, backend=config.backend
    )
    means = means.reshape(n_chunk, B, G)
    detected = detected.reshape(n_chunk, B, G)
    variances = variances.reshape(n_chunk, B, G)

    lfc_blocks, delta_blocks, cohen_blocks = [], [], []
    for b in range(B):
        m = means[:, b, :]
        d = detected[:, b, :]
        diff = m[:, :, None] - m[:, None, :]
        lfc_blocks.append(diff)
        delta_blocks.append(d[:, :, None] - d[:, None, :])
        cohen_blocks.append((diff - threshold) / _pooled_sd(variances[:, b, :], config.sd_floor))

    result = {
        "means": means,
        "detected": detected,
        "lfc": _weighted_over_blocks(lfc_blocks, layout),
        "delta_detected": _weighted_over_blocks(delta_blocks, layout),
        "cohen": _weighted_over_blocks(cohen_blocks, layout),
    }

    if config.compute_auc:
        u = pairwise_auc(
            X, layout.order, layout.offsets, G, B, threshold, backend=config.backend
        )
        auc = np.full(u.shape, np.nan)
        np.divide(u, layout.total_weight, out=auc, where=layout.total_weight > 0)
        result["auc"] = auc

    diagonal = np.arange(G)
    for key in ("lfc", "delta_detected", "cohen", "auc"):
        if key in result:
            result[key][:, diagonal, diagonal] = np.nan

    return result


def compute_pairwise_effects(
    matrix: MatrixHandle,
    groups: np.ndarray,
    blocks: np.ndarray | None,
    config: ScoreMarkersConfig,
) -> PairwiseEffects:
    """Chunked, optionally threaded computation behind :func:`pairwise_effects`.

    ``groups`` and ``blocks`` must already be validated int64 arrays.
    """
    if config.backend not in available_backends():
        raise InvalidConfigError(
            f"Unknown backend {config.backend!r}. Available backends: {available_backends()}"
        )

    layout = _Layout(groups, blocks)
    G, B = layout.n_groups, layout.n_blocks
    n_features = matrix.nrow

    if G < 2:
        logger.warning(f"Only {G} group(s) supplied; pairwise effects will be NaN")
    empty = np.flatnonzero(layout.counts.sum(axis=0) == 0)
    if empty.size:
        logger.warning(f"Groups with no observations: {empty.tolist()}")

    cohen = np.full((G, G, n_features), np.nan)
    lfc = np.full((G, G, n_features), np.nan)
    delta_detected = np.full((G, G, n_features), np.nan)
    auc = np.full((G, G, n_features), np.nan) if config.compute_auc else None
    means = np.full((G, B, n_features), np.nan)
    detected = np.full((G, B, n_features), np.nan)

    bounds = [
        (start, min(start + config.chunk_size, n_features))
        for start in range(0, n_features, config.chunk_size)
    ]
    logger.debug(
        f"Scoring {n_features} features in {len(bounds)} chunks "
        f"({G} groups, {B} blocks, {config.num_threads} threads, backend={config.backend})"
    )

    def _run(bound):
        return _score_chunk(matrix, bound[0], bound[1], layout, config)

    def _store(bound, result):
        start, stop = bound
        cohen[:, :, start:stop] = result["cohen"].transpose(1, 2, 0)
        lfc[:, :, start:stop] = result["lfc"].transpose(1, 2, 0)
        delta_detected[:, :, start:stop] = result["delta_detected"].transpose(1, 2, 0)
        if auc is not None:
            auc[:, :, start:stop] = result["auc"].transpose(1, 2, 0)
        means[:, :, start:stop] = result["means"].transpose(2, 1, 0)
        detected[:, :, start:stop] = result["detected"].transpose(2, 1, 0)

    progress = dict(total=len(bounds), desc="Scoring markers", disable=not config.show_progress)
    if G > 0 and bounds:
        if config.num_threads > 1:
            with ThreadPoolExecutor(max_workers=config.num_threads) as executor:
                results = executor.map(_run, bounds)
                for bound, result in tqdm(zip(bounds, results), **progress):
                    _store(bound, result)
        else:
            for bound in tqdm(bounds, **progress):
                _store(bound, _run(bound))

    return PairwiseEffects(
        cohen=cohen,
        lfc=lfc,
        delta_detected=delta_detected,
        auc=auc,
        means=means,
        detected=detected,
        group_sizes=layout.counts.T.copy(),
        lfc_threshold=config.lfc_threshold,
    )


def pairwise_effects(
    matrix,
    groups,
    blocks=None,
    *,
    lfc_threshold: float | None = None,
    compute_auc: bool | None = None,
    num_threads: int | None = None,
    config: ScoreMarkersConfig | None = None,
    **options: Any,
) -> PairwiseEffects:
    """Effect sizes for every ordered pair of groups and every feature.

    Within each block, Cohen's d, the log-fold change, the difference in
    detected proportions and (optionally) the AUC are computed for each pair
    of groups present in that block. Per-block values are then averaged with
    weights equal to the product of the two groups' sizes in the block.

    Parameters
    ----------
    matrix : MatrixHandle or array-like
        Log-expression values, features in rows and observations in columns.
    groups : array-like of int
        Group of each observation; consecutive ids starting at 0.
    blocks : array-like of int, optional
        Block of each observation; consecutive ids starting at 0.
    lfc_threshold : float, optional
        Non-negative threshold on the log-fold change (default 0). It is
        subtracted from the mean difference for Cohen's d and from the focal
        group's values for the AUC, in both directions of each pair.
    compute_auc : bool, optional
        Whether to compute the AUC (default True).
    num_threads : int, optional
        Size of the worker pool (default 1).
    config : ScoreMarkersConfig, optional
        Base configuration; explicit keyword arguments take precedence.
    **options
        Other :class:`ScoreMarkersConfig` fields (``backend``, ``chunk_size``,
        ``sd_floor``, ``show_progress``).

    Returns
    -------
    PairwiseEffects

    Notes
    -----
    With ``lfc_threshold == 0``, Cohen's d, log-fold change and delta-detected
    are antisymmetric (``x[g, h] == -x[h, g]``) and ``auc[g, h] + auc[h, g] == 1``.

    Examples
    --------
    >>> import numpy as np
    >>> X = np.array([[0.0, 1.0, 5.0, 6.0]])
    >>> eff = pairwise_effects(X, [0, 0, 1, 1])
    >>> float(eff.auc[1, 0, 0])
    1.0
    """
    resolved = resolve_config(
        config,
        lfc_threshold=lfc_threshold,
        compute_auc=compute_auc,
        num_threads=num_threads,
        **options,
    )
    handle = as_matrix(matrix)
    group_arr = _as_assignment(groups, handle.ncol, "groups")
    block_arr = None if blocks is None else _as_assignment(blocks, handle.ncol, "blocks")
    return compute_pairwise_effects(handle, group_arr, block_arr, resolved)
