"""Marker scoring: pairwise comparisons summarized per group."""

from __future__ import annotations

import numpy as np
import pandas as pd

from markerlab.core.config import ScoreMarkersConfig
from markerlab.core.exceptions import InvalidConfigError, UnavailableStatisticError
from markerlab.types import as_matrix
from markerlab.utils import get_logger

from ._blocks import average_blocks
from ._pairwise import PairwiseEffects, _as_assignment, compute_pairwise_effects, resolve_config
from ._summaries import ComputeSummaries, SummaryType, summarize_effects

logger = get_logger("markerlab.analysis")

__all__ = ["AVERAGE", "METRICS", "ScoreMarkersResults", "score_markers"]

#: Block index meaning "averaged across blocks".
AVERAGE = -1

METRICS = ("cohen", "lfc", "delta_detected", "auc")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


class ScoreMarkersResults:
    """Per-group marker statistics returned by :func:`score_markers`.

    The object is immutable. Vector accessors return read-only views of
    length ``num_features()`` into the object's storage.

    Examples
    --------
    >>> res = score_markers(X, groups)
    >>> res.cohen(0, SummaryType.MIN)   # worst-case Cohen's d for group 0
    >>> res.means(1, AVERAGE)           # mean expression of group 1
    """

    def __init__(
        self,
        effects: PairwiseEffects,
        summaries: dict[str, dict[SummaryType, np.ndarray]],
        computed: ComputeSummaries,
        config: ScoreMarkersConfig,
    ):
        self._n_groups = effects.n_groups
        self._n_blocks = effects.n_blocks
        self._n_features = effects.n_features

        self._means = _frozen(effects.means)
        self._detected = _frozen(effects.detected)
        self._average_means = _frozen(average_blocks(self._means))
        self._average_detected = _frozen(average_blocks(self._detected))
        self._group_sizes = _frozen(effects.group_sizes)

        self._summaries = {
            metric: {s: _frozen(values) for s, values in by_summary.items()}
            for metric, by_summary in summaries.items()
        }
        self._pairwise = {metric: _frozen(values) for metric, values in effects.metrics().items()}
        self._computed = computed
        self._config = config

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    def num_groups(self) -> int:
        return self._n_groups

    def num_blocks(self) -> int:
        return self._n_blocks

    def num_features(self) -> int:
        return self._n_features

    @property
    def config(self) -> ScoreMarkersConfig:
        """Options the result was computed with."""
        return ScoreMarkersConfig.from_dict(self._config.to_dict())

    @property
    def group_sizes(self) -> np.ndarray:
        """Observations per group and block, shape (num_groups, num_blocks)."""
        return self._group_sizes

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_group(self, group) -> int:
        if isinstance(group, bool) or not isinstance(group, (int, np.integer)):
            raise InvalidConfigError(f"group must be an integer, got {group!r}")
        if not 0 <= group < self._n_groups:
            raise InvalidConfigError(
                f"group {group} is out of range for {self._n_groups} groups"
            )
        return int(group)

    def _check_block(self, block) -> int:
        if isinstance(block, bool) or not isinstance(block, (int, np.integer)):
            raise InvalidConfigError(f"block must be an integer or AVERAGE, got {block!r}")
        if block != AVERAGE and not 0 <= block < self._n_blocks:
            raise InvalidConfigError(
                f"block {block} is out of range for {self._n_blocks} blocks"
            )
        return int(block)

    def _summary(self, metric: str, group, summary) -> np.ndarray:
        g = self._check_group(group)
        s = SummaryType.parse(summary)
        by_summary = self._summaries.get(metric)
        if by_summary is None:
            raise UnavailableStatisticError(metric)
        if s not in by_summary:
            raise UnavailableStatisticError(metric, s.label)
        return by_summary[s][g]

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def means(self, group: int, block: int = 0) -> np.ndarray:
        """Mean expression of ``group`` in ``block``, or across blocks with ``AVERAGE``.

        NaN for features of a block in which the group has no observations.
        """
        g = self._check_group(group)
        b = self._check_block(block)
        if b == AVERAGE:
            return self._average_means[g]
        return self._means[g, b]

    def detected(self, group: int, block: int = 0) -> np.ndarray:
        """Proportion of non-zero values of ``group`` in ``block`` (or ``AVERAGE``)."""
        g = self._check_group(group)
        b = self._check_block(block)
        if b == AVERAGE:
            return self._average_detected[g]
        return self._detected[g, b]

    def cohen(self, group: int, summary=SummaryType.MEAN) -> np.ndarray:
        """Summary of Cohen's d of ``group`` against every other group."""
        return self._summary("cohen", group, summary)

    def lfc(self, group: int, summary=SummaryType.MEAN) -> np.ndarray:
        """Summary of the log-fold change of ``group`` against every other group."""
        return self._summary("lfc", group, summary)

    def delta_detected(self, group: int, summary=SummaryType.MEAN) -> np.ndarray:
        """Summary of the difference in detected proportions."""
        return self._summary("delta_detected", group, summary)

    def auc(self, group: int, summary=SummaryType.MEAN) -> np.ndarray:
        """Summary of the AUC; requires ``compute_auc=True``."""
        return self._summary("auc", group, summary)

    def pairwise(self, metric: str) -> np.ndarray:
        """Full pairwise effects, shape (num_groups, num_groups, num_features)."""
        if metric not in METRICS:
            raise InvalidConfigError(f"Unknown metric {metric!r}; expected one of {list(METRICS)}")
        if metric not in self._pairwise:
            raise UnavailableStatisticError(metric)
        return self._pairwise[metric]

    def available_summaries(self, metric: str) -> list[SummaryType]:
        """Summary types that can be requested for ``metric``."""
        if metric not in METRICS:
            raise InvalidConfigError(f"Unknown metric {metric!r}; expected one of {list(METRICS)}")
        return sorted(self._summaries.get(metric, {}))

    def to_dataframe(self, group: int, block: int = AVERAGE, feature_names=None) -> pd.DataFrame:
        """Tabulate every available statistic for one group.

        Columns are ``mean``, ``detected`` and ``<metric>_<summary>`` for each
        computed metric and summary (e.g. ``cohen_min_rank``).
        """
        columns = {
            "mean": np.array(self.means(group, block)),
            "detected": np.array(self.detected(group, block)),
        }
        for metric in METRICS:
            for s in self.available_summaries(metric):
                columns[f"{metric}_{s.label}"] = np.array(self._summary(metric, group, s))

        if feature_names is not None and len(feature_names) != self._n_features:
            raise InvalidConfigError(
                f"feature_names has length {len(feature_names)}, expected {self._n_features}"
            )
        return pd.DataFrame(columns, index=feature_names)

    def __repr__(self) -> str:
        metrics = [m for m in METRICS if m in self._summaries]
        summaries = [s.label for s in self._computed.enabled()]
        return (
            f"ScoreMarkersResults(n_groups={self._n_groups}, n_blocks={self._n_blocks}, "
            f"n_features={self._n_features}, metrics={metrics}, summaries={summaries})"
        )


def score_markers(
    matrix,
    groups,
    blocks=None,
    *,
    lfc_threshold: float | None = None,
    compute_auc: bool | None = None,
    compute_median: bool | None = None,
    compute_max: bool | None = None,
    num_threads: int | None = None,
    config: ScoreMarkersConfig | None = None,
    backend: str | None = None,
    chunk_size: int | None = None,
    show_progress: bool | None = None,
) -> ScoreMarkersResults:
    """Score every feature as a marker for every group.

    Each group is compared with every other group (within blocks, when
    given). The resulting Cohen's d, log-fold change, delta-detected and AUC
    values are summarized per focal group by their minimum, mean, median,
    maximum and minimum rank.

    Parameters
    ----------
    matrix : MatrixHandle, np.ndarray or scipy.sparse matrix
        Log-expression values with features in rows and observations in
        columns.
    groups : array-like of int
        Group of each observation (column), ids ``0..n_groups-1``.
    blocks : array-like of int, optional
        Block of each observation, ids ``0..n_blocks-1``.
    lfc_threshold : float, optional
        Non-negative log-fold change threshold (default 0).
    compute_auc : bool, optional
        Compute the AUC (default True).
    compute_median : bool, optional
        Report the median summary (default False).
    compute_max : bool, optional
        Report the maximum summary (default False).
    num_threads : int, optional
        Worker threads (default 1). Results do not depend on this value.
    config : ScoreMarkersConfig, optional
        Base options. Keyword arguments that are not None override it.
    backend : {'numba', 'python'}, optional
        Kernel backend.
    chunk_size : int, optional
        Features per task.
    show_progress : bool, optional
        Show a progress bar.

    Returns
    -------
    ScoreMarkersResults

    Raises
    ------
    ShapeMismatchError
        If ``groups`` or ``blocks`` does not have one entry per column.
    InvalidConfigError
        For a negative threshold, ``num_threads < 1``, negative or
        non-integer ids, or other invalid options.

    Examples
    --------
    >>> import numpy as np
    >>> from markerlab.analysis import score_markers, SummaryType
    >>> X = np.array([[0, 0, 0, 5, 5, 5], [1, 2, 3, 1, 2, 3], [5, 5, 5, 0, 0, 0]], dtype=float)
    >>> res = score_markers(X, [0, 0, 0, 1, 1, 1])
    >>> res.lfc(1, SummaryType.MEAN)
    array([ 5.,  0., -5.])
    """
    resolved = resolve_config(
        config,
        lfc_threshold=lfc_threshold,
        compute_auc=compute_auc,
        compute_median=compute_median,
        compute_max=compute_max,
        num_threads=num_threads,
        backend=backend,
        chunk_size=chunk_size,
        show_progress=show_progress,
    )

    handle = as_matrix(matrix)
    group_arr = _as_assignment(groups, handle.ncol, "groups")
    block_arr = None if blocks is None else _as_assignment(blocks, handle.ncol, "blocks")

    logger.info(
        f"Scoring markers for {handle.nrow} features x {handle.ncol} observations"
    )
    effects = compute_pairwise_effects(handle, group_arr, block_arr, resolved)

    computed = ComputeSummaries.default(
        median=resolved.compute_median, max=resolved.compute_max
    )
    summaries = {
        metric: summarize_effects(
            values,
            computed,
            num_threads=resolved.num_threads,
            chunk_size=resolved.chunk_size,
        )
        for metric, values in effects.metrics().items()
    }

    results = ScoreMarkersResults(effects, summaries, computed, resolved)
    logger.info(
        f"Scored {results.num_groups()} groups across {results.num_blocks()} block(s)"
    )
    return results
