from ._bind import cbind, cbind_with_rownames, rbind, subset_columns, subset_rows
from ._blocks import average_blocks, average_vectors
from ._de import rank_markers
from ._markers import AVERAGE, METRICS, ScoreMarkersResults, score_markers
from ._pairwise import PairwiseEffects, pairwise_effects
from ._summaries import ComputeSummaries, SummaryType, compute_min_rank, summarize_effects

__all__ = [
    # Binding
    "cbind",
    "rbind",
    "cbind_with_rownames",
    "subset_rows",
    "subset_columns",
    # Pairwise comparisons
    "PairwiseEffects",
    "pairwise_effects",
    # Summaries
    "SummaryType",
    "ComputeSummaries",
    "summarize_effects",
    "compute_min_rank",
    # Block averaging
    "average_vectors",
    "average_blocks",
    # Results
    "AVERAGE",
    "METRICS",
    "ScoreMarkersResults",
    "score_markers",
    "rank_markers",
]
