"""Summaries of pairwise effect sizes for each focal group."""

from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from markerlab.core.exceptions import InvalidConfigError

__all__ = [
    "SummaryType",
    "ComputeSummaries",
    "summarize_effects",
    "compute_min_rank",
]


class SummaryType(IntEnum):
    """Reduction applied to a focal group's pairwise effects."""

    MIN = 0
    MEAN = 1
    MEDIAN = 2
    MAX = 3
    MIN_RANK = 4

    @classmethod
    def parse(cls, value: "SummaryType | int | str") -> "SummaryType":
        """Accept an enum member, its integer value or its name ("min_rank")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                pass
        elif isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass
        names = [s.name.lower() for s in cls]
        raise InvalidConfigError(
            f"Unknown summary type {value!r}; expected one of {names} or 0-{len(names) - 1}"
        )

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class ComputeSummaries:
    """Which summaries to compute.

    MIN, MEAN and MIN_RANK are cheap and enabled by default; MEDIAN and MAX
    are opt-in.
    """

    min: bool = True
    mean: bool = True
    median: bool = False
    max: bool = False
    min_rank: bool = True

    @classmethod
    def default(cls, median: bool = False, max: bool = False) -> "ComputeSummaries":
        return cls(median=bool(median), max=bool(max))

    @classmethod
    def none(cls) -> "ComputeSummaries":
        return cls(min=False, mean=False, median=False, max=False, min_rank=False)

    def is_enabled(self, summary: SummaryType) -> bool:
        return getattr(self, SummaryType.parse(summary).label)

    def enabled(self) -> list[SummaryType]:
        return [s for s in SummaryType if getattr(self, s.label)]


def _reduce_chunk(values: np.ndarray, summaries: list[SummaryType]) -> dict:
    """Reduce ``values`` (n_comparisons, n_features) along comparisons, skipping NaN."""
    out = {}
    valid = ~np.isnan(values)
    n_valid = valid.sum(axis=0)

    if SummaryType.MIN in summaries:
        out[SummaryType.MIN] = np.fmin.reduce(values, axis=0)
    if SummaryType.MAX in summaries:
        out[SummaryType.MAX] = np.fmax.reduce(values, axis=0)
    if SummaryType.MEAN in summaries:
        total = np.where(valid, values, 0.0).sum(axis=0)
        mean = np.full(values.shape[1], np.nan)
        np.divide(total, n_valid, out=mean, where=n_valid > 0)
        out[SummaryType.MEAN] = mean
    if SummaryType.MEDIAN in summaries:
        with warnings.catch_warnings():
            # All-NaN features legitimately produce NaN
            warnings.simplefilter("ignore", category=RuntimeWarning)
            out[SummaryType.MEDIAN] = np.nanmedian(values, axis=0)
    return out


def compute_min_rank(effects: np.ndarray, group: int) -> np.ndarray:
    """Best rank of each feature across the focal group's comparisons.

    Within each comparison ``(group, other)``, features with a non-NaN effect
    are ranked by decreasing effect size, ties broken by feature index, with
    rank 1 for the largest. The minimum over all comparisons is reported;
    features never ranked are NaN.

    Parameters
    ----------
    effects : np.ndarray
        Pairwise effects, shape (n_groups, n_groups, n_features).
    group : int
        Focal group.

    Returns
    -------
    np.ndarray
        float64 array of length n_features.
    """
    n_groups, _, n_features = effects.shape
    best = np.full(n_features, np.nan)
    ranks = np.empty(n_features)

    for other in range(n_groups):
        if other == group:
            continue
        current = effects[group, other]
        keep = np.flatnonzero(~np.isnan(current))
        if keep.size == 0:
            continue

        # Stable sort on the negated values keeps index order among ties
        ordering = keep[np.argsort(-current[keep], kind="stable")]
        ranks.fill(np.nan)
        ranks[ordering] = np.arange(1, keep.size + 1, dtype=np.float64)
        best = np.fmin(best, ranks)

    return best


def summarize_effects(
    effects: np.ndarray,
    summaries: ComputeSummaries,
    num_threads: int = 1,
    chunk_size: int = 1024,
) -> dict[SummaryType, np.ndarray]:
    """Summarize pairwise effects for every focal group.

    Parameters
    ----------
    effects : np.ndarray
        Shape (n_groups, n_groups, n_features); ``effects[g, h]`` is the
        effect of ``g`` relative to ``h``. The diagonal is ignored.
    summaries : ComputeSummaries
        Enabled summaries.
    num_threads : int, default=1
        Worker threads; 1 runs sequentially.
    chunk_size : int, default=1024
        Features per task for the MIN/MEAN/MEDIAN/MAX reductions.

    Returns
    -------
    dict
        ``SummaryType -> array (n_groups, n_features)`` for each enabled
        summary. All values are NaN when there are fewer than two groups.
    """
    n_groups, _, n_features = effects.shape
    enabled = summaries.enabled()
    out = {s: np.full((n_groups, n_features), np.nan) for s in enabled}

    if n_groups < 2 or not enabled:
        return out

    reducers = [s for s in enabled if s != SummaryType.MIN_RANK]
    tasks = []
    if reducers:
        for g in range(n_groups):
            others = [h for h in range(n_groups) if h != g]
            for start in range(0, n_features, chunk_size):
                tasks.append((g, others, start, min(start + chunk_size, n_features)))

    def _run_reduce(task):
        g, others, start, stop = task
        return _reduce_chunk(effects[g][others, start:stop], reducers)

    def _run_rank(g):
        return compute_min_rank(effects, g)

    rank_groups = list(range(n_groups)) if summaries.min_rank else []

    if num_threads > 1:
        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            reduced = list(executor.map(_run_reduce, tasks))
            ranked = list(executor.map(_run_rank, rank_groups))
    else:
        reduced = [_run_reduce(task) for task in tasks]
        ranked = [_run_rank(g) for g in rank_groups]

    for (g, _, start, stop), result in zip(tasks, reduced):
        for s, values in result.items():
            out[s][g, start:stop] = values

    for g, values in zip(rank_groups, ranked):
        out[SummaryType.MIN_RANK][g] = values

    return out
